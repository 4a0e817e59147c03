"""
Seat allocation service.

Runs one allocation for a scope: lock the scope, read the roster, rooms and
mappings inside the same transaction, group, check capacity, place, commit,
and finally cover the used rooms with invigilators outside the seat
transaction.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import DatabaseError, transaction

from .capacity import CapacityPlan, ensure_capacity, plan_capacity
from .conf import get_setting
from .coverage import CoverageReport, assign_invigilators
from .exceptions import InvalidMapping
from .grouping import SUBJECT_AWARE_KEYS, resolve_groups
from .layout import normalize
from .models import DepartmentSubject, Room, Student
from .policies import SeatPlan, get_policy
from .transactions import commit_plan, lock_scope, scope_for_exam

logger = logging.getLogger(__name__)


@dataclass
class RunParameters:
    grouping_key: Optional[str] = None
    pattern: Optional[str] = None
    students_per_bench: Optional[int] = None
    room_ids: Optional[List[int]] = None
    exam: Optional[object] = None
    scope: Optional[str] = None

    def resolved_scope(self):
        """Exam runs always use the exam's own scope key."""
        if self.exam is not None:
            exam_scope = scope_for_exam(self.exam)
            if self.scope and self.scope != exam_scope:
                raise ValueError(
                    f"Exam runs are stored under {exam_scope}; a separate scope key ({self.scope}) "
                    f"would seat the exam twice"
                )
            return exam_scope
        if self.scope:
            return self.scope
        raise ValueError("An allocation run needs an exam or an explicit scope key")


@dataclass
class AllocationResult:
    scope: str
    pattern: str
    grouping_key: str
    assigned_count: int
    replaced_count: int
    capacity: CapacityPlan
    placements: list = field(default_factory=list)
    rooms_used: List[str] = field(default_factory=list)
    group_sizes: dict = field(default_factory=dict)
    excluded: List[str] = field(default_factory=list)
    excluded_departments: List[str] = field(default_factory=list)
    skipped_rooms: List[str] = field(default_factory=list)
    adjacency_conflicts: List[dict] = field(default_factory=list)
    coverage: Optional[CoverageReport] = None

    @property
    def message(self):
        text = (
            f"Successfully allocated {self.assigned_count} students across "
            f"{len(self.rooms_used)} room(s) using {self.pattern}."
        )
        if self.adjacency_conflicts:
            text += f" {len(self.adjacency_conflicts)} column(s) could not avoid a same-group neighbour."
        if self.excluded:
            text += f" {len(self.excluded)} student(s) had no {self.grouping_key} and were not seated."
        if self.coverage is not None and self.coverage.vacant_rooms:
            text += f" No invigilator for: {', '.join(self.coverage.vacant_rooms)}."
        return text

    def as_dict(self):
        return {
            'scope': self.scope,
            'pattern': self.pattern,
            'grouping_key': self.grouping_key,
            'assigned_count': self.assigned_count,
            'replaced_count': self.replaced_count,
            'rooms_used': list(self.rooms_used),
            'group_sizes': dict(self.group_sizes),
            'excluded': list(self.excluded),
            'excluded_departments': list(self.excluded_departments),
            'skipped_rooms': list(self.skipped_rooms),
            'adjacency_conflicts': list(self.adjacency_conflicts),
            'capacity': self.capacity.as_dict(),
            'coverage': self.coverage.as_dict() if self.coverage is not None else None,
        }


def _roster(exam):
    students = Student.objects.select_related('department').order_by('roll_no')
    if exam is not None and exam.departments.exists():
        students = students.filter(department__in=exam.departments.all())
    return list(students)


def _mappings(exam):
    if exam is None:
        raise InvalidMapping("Subject grouping needs an exam with department-subject mappings.")
    mappings = list(
        DepartmentSubject.objects.filter(exam=exam)
        .select_related('department', 'subject')
        .order_by('department__name', 'id')
    )
    if not mappings:
        raise InvalidMapping(
            f"No department-subject mappings found for {exam}. Configure subjects for departments first.",
            exam_id=exam.pk,
        )
    return mappings


def _rooms(params):
    rooms = Room.objects.order_by('room_no')
    if params.room_ids:
        rooms = list(rooms.filter(pk__in=params.room_ids))
        missing = set(params.room_ids) - {room.pk for room in rooms}
        if missing:
            logger.warning("Ignoring unknown room id(s): %s", sorted(missing))
        return rooms
    if params.exam is not None and params.exam.rooms.exists():
        return list(params.exam.rooms.order_by('room_no'))
    return list(rooms)


def _cover_rooms(rooms):
    try:
        return assign_invigilators(rooms)
    except DatabaseError:
        # seats are already committed; coverage can be retried on its own
        logger.exception("Invigilator assignment failed for rooms %s", [room.room_no for room in rooms])
        return None


def allocate_seats(params):
    """
    Allocate seats for one scope and return an AllocationResult.

    Raises:
        InvalidMapping, InsufficientCapacity, AllocationIncomplete,
        UniquenessViolation, PolicyMismatch, UnknownPattern: nothing is
        written and earlier assignments for the scope stay in place
    """
    pattern = params.pattern or get_setting('DEFAULT_PATTERN')
    grouping_key = params.grouping_key or get_setting('DEFAULT_GROUPING_KEY')
    policy = get_policy(pattern, params.students_per_bench)
    scope = params.resolved_scope()
    exam = params.exam

    with transaction.atomic():
        lock_scope(scope, exam)

        students = _roster(exam)
        mappings = _mappings(exam) if grouping_key in SUBJECT_AWARE_KEYS else None
        rooms = _rooms(params)

        grouping = resolve_groups(students, grouping_key, mappings)

        layouts = [normalize(room) for room in rooms]
        eligible = [layout for layout in layouts if policy.accepts(layout)]
        skipped = [layout.room_no for layout in layouts if not policy.accepts(layout)]
        if skipped:
            logger.info("Pattern %s cannot use room(s) %s", policy.name, skipped)

        capacity = ensure_capacity(plan_capacity(grouping.total_students, eligible))

        if grouping.total_students:
            plan = policy.place(grouping.groups, eligible)
        else:
            logger.info("No students to seat for %s; clearing the scope", scope)
            plan = SeatPlan(pattern=policy.name)

        committed = commit_plan(
            scope,
            plan.placements,
            exam=exam,
            pattern=policy.name,
            grouping_key=grouping_key,
            subject_for=grouping.subject_for,
        )

    coverage = None
    if get_setting('ASSIGN_INVIGILATORS') and plan.placements:
        coverage = _cover_rooms(plan.rooms_used)

    return AllocationResult(
        scope=scope,
        pattern=policy.name,
        grouping_key=grouping_key,
        assigned_count=committed.assigned_count,
        replaced_count=committed.replaced_count,
        capacity=capacity,
        placements=plan.placements,
        rooms_used=[room.room_no for room in plan.rooms_used],
        group_sizes=grouping.group_sizes(),
        excluded=[student.roll_no for student in grouping.excluded],
        excluded_departments=grouping.excluded_departments,
        skipped_rooms=skipped,
        adjacency_conflicts=plan.adjacency_conflicts,
        coverage=coverage,
    )
