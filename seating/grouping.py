"""
Grouping Resolver

Partitions a roster into named groups (department, academic year, subject or
department/subject pair) and orders each group by roll number so that every
allocation run over the same input is reproducible.
"""

import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List

from .exceptions import InvalidMapping

logger = logging.getLogger(__name__)

DEPARTMENT = 'department'
ACADEMIC_YEAR = 'academic_year'
SUBJECT = 'subject'
DEPARTMENT_SUBJECT = 'department_subject'

GROUPING_KEYS = (DEPARTMENT, ACADEMIC_YEAR, SUBJECT, DEPARTMENT_SUBJECT)
SUBJECT_AWARE_KEYS = (SUBJECT, DEPARTMENT_SUBJECT)


@dataclass
class GroupingResult:
    groups: "OrderedDict[str, list]"
    excluded: List = field(default_factory=list)
    excluded_departments: List[str] = field(default_factory=list)
    subjects: Dict[str, object] = field(default_factory=dict)

    @property
    def total_students(self):
        return sum(len(members) for members in self.groups.values())

    def group_sizes(self):
        return OrderedDict((key, len(members)) for key, members in self.groups.items())

    def subject_for(self, student):
        return self.subjects.get(student.roll_no)


def department_name(student):
    department = student.department
    return department.name if department is not None else None


def roster_order(student):
    return (student.roll_no, student.pk or 0)


def subject_order(subject):
    return (
        subject.exam_date or date.max,
        subject.start_time or time.min,
        subject.code,
    )


def _subject_identity(subject):
    if subject.pk is not None:
        return subject.pk
    return (subject.code, subject.exam_date, subject.start_time, subject.end_time)


def windows_overlap(first, second):
    """
    Two subjects clash when they sit on the same date and their half-open
    time windows intersect. A subject without times blocks its whole day;
    a subject without a date never clashes.
    """
    if first.exam_date is None or second.exam_date is None:
        return False
    if first.exam_date != second.exam_date:
        return False
    if None in (first.start_time, first.end_time, second.start_time, second.end_time):
        return True
    # Time Overlap Check: [StartA < EndB] AND [EndA > StartB]
    return first.start_time < second.end_time and first.end_time > second.start_time


def _subjects_by_department(mappings):
    resolved = defaultdict(list)
    unresolved = set()
    for mapping in mappings:
        dept = mapping.department.name
        subject = mapping.subject
        if subject is None:
            unresolved.add(dept)
            continue
        if all(_subject_identity(s) != _subject_identity(subject) for s in resolved[dept]):
            resolved[dept].append(subject)
    unresolved -= set(resolved)
    for subjects in resolved.values():
        subjects.sort(key=subject_order)
    return resolved, sorted(unresolved)


def find_mapping_conflicts(mappings):
    """
    Return the mapping problems for a set of department -> subject rows.

    Returns:
        list of dicts, one per unresolved department or overlapping pair
    """
    resolved, unresolved = _subjects_by_department(mappings)
    conflicts = [
        {'department': dept, 'reason': 'no_subject'}
        for dept in unresolved
    ]

    for dept in sorted(resolved):
        subjects = resolved[dept]
        for i, first in enumerate(subjects):
            for second in subjects[i + 1:]:
                if windows_overlap(first, second):
                    conflicts.append({
                        'department': dept,
                        'reason': 'overlapping_subjects',
                        'subjects': [first.code, second.code],
                        'exam_date': first.exam_date,
                    })
    return conflicts


def _validate_mappings(mappings):
    conflicts = find_mapping_conflicts(mappings)
    if not conflicts:
        return
    lines = []
    for conflict in conflicts:
        if conflict['reason'] == 'no_subject':
            lines.append(f"Department {conflict['department']} is not mapped to any subject.")
        else:
            first, second = conflict['subjects']
            lines.append(
                f"Department {conflict['department']} has overlapping subjects {first} and {second} "
                f"on {conflict['exam_date']}."
            )
    raise InvalidMapping(" ".join(lines), conflicts=conflicts)


def _plain_key(student, grouping_key):
    if grouping_key == DEPARTMENT:
        return department_name(student)
    return student.academic_year or None


def resolve_groups(students, grouping_key, mappings=None):
    """
    Partition ``students`` into ordered groups.

    Args:
        students: iterable of Student records
        grouping_key: one of GROUPING_KEYS
        mappings: DepartmentSubject rows, required for subject-aware keys

    Returns:
        GroupingResult with group keys ascending and members by roll number
    """
    if grouping_key not in GROUPING_KEYS:
        raise ValueError(f"Unknown grouping key: {grouping_key}")

    buckets = defaultdict(list)
    excluded = []
    excluded_departments = set()
    subjects = {}

    if grouping_key in SUBJECT_AWARE_KEYS:
        mappings = list(mappings or [])
        _validate_mappings(mappings)
        subjects_by_dept, _ = _subjects_by_department(mappings)

        for student in students:
            dept = department_name(student)
            dept_subjects = subjects_by_dept.get(dept)
            if not dept_subjects:
                excluded.append(student)
                excluded_departments.add(dept or '')
                continue
            # One seat per student: the earliest scheduled subject wins
            subject = dept_subjects[0]
            subjects[student.roll_no] = subject
            if grouping_key == SUBJECT:
                key = subject.code
            else:
                key = f"{dept} / {subject.code}"
            buckets[key].append(student)
    else:
        for student in students:
            key = _plain_key(student, grouping_key)
            if key is None:
                excluded.append(student)
                continue
            buckets[str(key)].append(student)

    groups = OrderedDict()
    for key in sorted(buckets):
        groups[key] = sorted(buckets[key], key=roster_order)

    if excluded:
        logger.warning(
            "Excluded %d student(s) without a %s (departments: %s)",
            len(excluded), grouping_key, sorted(excluded_departments) or 'n/a',
        )
    logger.info("Segregated students into %d groups: %s", len(groups), list(groups))

    return GroupingResult(
        groups=groups,
        excluded=sorted(excluded, key=roster_order),
        excluded_departments=sorted(excluded_departments),
        subjects=subjects,
    )
