from django import forms

from .grouping import DEPARTMENT, GROUPING_KEYS, SUBJECT_AWARE_KEYS, find_mapping_conflicts
from .models import DepartmentSubject, Exam, Room
from .policies import BENCH_PATTERNS, CRISS_CROSS, PATTERN_CHOICES
from .services import RunParameters

GROUPING_KEY_CHOICES = [(key, key.replace('_', ' ').title()) for key in GROUPING_KEYS]


# -------------------------
# Room Layout
# -------------------------

class RoomForm(forms.ModelForm):
    class Meta:
        model = Room
        fields = ['room_no', 'capacity', 'benches', 'seats_per_bench', 'floor']
        widgets = {
            'room_no': forms.TextInput(attrs={'class': 'form-control'}),
            'capacity': forms.NumberInput(attrs={'class': 'form-control', 'min': 1}),
            'benches': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
            'seats_per_bench': forms.NumberInput(attrs={'class': 'form-control', 'min': 0}),
        }

    def clean(self):
        cleaned_data = super().clean()
        benches = cleaned_data.get('benches') or 0
        seats_per_bench = cleaned_data.get('seats_per_bench') or 0
        # A grid needs both dimensions; 0 x 0 means "flat capacity only"
        if (benches == 0) != (seats_per_bench == 0):
            raise forms.ValidationError(
                "Set both benches and seats per bench, or leave both at 0 for a flat room."
            )
        return cleaned_data


# -------------------------
# Department -> Subject Mapping
# -------------------------

class DepartmentSubjectForm(forms.ModelForm):
    class Meta:
        model = DepartmentSubject
        fields = ['exam', 'department', 'subject']

    def clean(self):
        cleaned_data = super().clean()
        exam = cleaned_data.get('exam')
        department = cleaned_data.get('department')
        subject = cleaned_data.get('subject')
        if not (exam and department and subject):
            if exam and department and subject is None:
                raise forms.ValidationError("Select the subject this department writes.")
            return cleaned_data

        existing = list(
            DepartmentSubject.objects.filter(exam=exam, department=department)
            .exclude(pk=self.instance.pk)
            .select_related('department', 'subject')
        )
        candidate = DepartmentSubject(exam=exam, department=department, subject=subject)
        conflicts = [
            conflict for conflict in find_mapping_conflicts(existing + [candidate])
            if conflict['reason'] == 'overlapping_subjects' and subject.code in conflict['subjects']
        ]
        if conflicts:
            other = next(code for code in conflicts[0]['subjects'] if code != subject.code)
            raise forms.ValidationError(
                f"{department.name} already writes {other} at an overlapping time on {subject.exam_date}."
            )
        return cleaned_data


# -------------------------
# Allocation Run
# -------------------------

class AllocationRunForm(forms.Form):
    exam = forms.ModelChoiceField(
        queryset=Exam.objects.all().order_by('date'),
        required=False,
        label="Select Exam",
    )
    scope = forms.CharField(max_length=64, required=False, help_text="Run key when no exam is selected.")
    grouping_key = forms.ChoiceField(choices=GROUPING_KEY_CHOICES, initial=DEPARTMENT)
    pattern = forms.ChoiceField(choices=PATTERN_CHOICES)
    students_per_bench = forms.TypedChoiceField(
        choices=[('', '---'), ('2', '2'), ('3', '3')],
        coerce=int,
        empty_value=None,
        required=False,
    )
    rooms = forms.ModelMultipleChoiceField(
        queryset=Room.objects.all().order_by('room_no'),
        required=False,
        label="Select Rooms",
    )

    def clean(self):
        cleaned_data = super().clean()
        exam = cleaned_data.get('exam')
        pattern = cleaned_data.get('pattern')
        grouping_key = cleaned_data.get('grouping_key')

        if not exam and not cleaned_data.get('scope'):
            raise forms.ValidationError("Select an exam or give a scope key for this run.")
        if exam and cleaned_data.get('scope'):
            self.add_error('scope', "Exam runs use the exam's own scope; leave the scope key empty.")
        if grouping_key in SUBJECT_AWARE_KEYS and not exam:
            self.add_error('grouping_key', "Subject grouping needs an exam with department-subject mappings.")
        if pattern == CRISS_CROSS and not cleaned_data.get('students_per_bench'):
            self.add_error('students_per_bench', "Choose 2 or 3 students per bench for the criss-cross pattern.")
        return cleaned_data

    def to_parameters(self):
        data = self.cleaned_data
        rooms = data.get('rooms')
        return RunParameters(
            grouping_key=data['grouping_key'],
            pattern=data['pattern'],
            students_per_bench=data.get('students_per_bench') if data['pattern'] in BENCH_PATTERNS else None,
            room_ids=[room.pk for room in rooms] if rooms else None,
            exam=data.get('exam'),
            scope=data.get('scope') or None,
        )
