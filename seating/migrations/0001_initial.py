import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Department',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('room_no', models.CharField(max_length=50, unique=True)),
                ('capacity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('benches', models.PositiveIntegerField(default=0, help_text='Number of benches (rows) in the room.')),
                ('seats_per_bench', models.PositiveIntegerField(default=0, help_text='Seats on each bench.')),
                ('floor', models.CharField(blank=True, max_length=20)),
            ],
            options={
                'ordering': ['room_no'],
            },
        ),
        migrations.CreateModel(
            name='Invigilator',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('employee_id', models.CharField(max_length=50, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='invigilators', to='seating.department')),
            ],
            options={
                'ordering': ['name', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('roll_no', models.CharField(max_length=50, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('academic_year', models.CharField(blank=True, max_length=20)),
                ('department', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='students', to='seating.department')),
            ],
            options={
                'ordering': ['roll_no'],
            },
        ),
        migrations.CreateModel(
            name='Exam',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('exam_name', models.CharField(max_length=255)),
                ('date', models.DateField()),
                ('start_time', models.TimeField(blank=True, null=True)),
                ('end_time', models.TimeField(blank=True, null=True)),
                ('departments', models.ManyToManyField(blank=True, related_name='exams', to='seating.department')),
                ('rooms', models.ManyToManyField(blank=True, related_name='exams', to='seating.room')),
            ],
        ),
        migrations.CreateModel(
            name='Subject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(max_length=50)),
                ('name', models.CharField(max_length=255)),
                ('exam_date', models.DateField(blank=True, null=True)),
                ('start_time', models.TimeField(blank=True, null=True)),
                ('end_time', models.TimeField(blank=True, null=True)),
                ('exam', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='subjects', to='seating.exam')),
            ],
            options={
                'ordering': ['exam_date', 'start_time', 'code'],
            },
        ),
        migrations.CreateModel(
            name='DepartmentSubject',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('department', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subject_mappings', to='seating.department')),
                ('exam', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='department_subjects', to='seating.exam')),
                ('subject', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='department_mappings', to='seating.subject')),
            ],
            options={
                'constraints': [models.UniqueConstraint(fields=('exam', 'department', 'subject'), name='unique_department_subject_per_exam')],
            },
        ),
        migrations.CreateModel(
            name='AllocationRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scope', models.CharField(max_length=64, unique=True)),
                ('pattern', models.CharField(blank=True, max_length=32)),
                ('grouping_key', models.CharField(blank=True, max_length=32)),
                ('assigned_count', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('exam', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocation_runs', to='seating.exam')),
            ],
        ),
        migrations.CreateModel(
            name='SeatAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scope', models.CharField(db_index=True, max_length=64)),
                ('seat_number', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('group_key', models.CharField(blank=True, max_length=255)),
                ('pattern', models.CharField(blank=True, max_length=32)),
                ('allotted_at', models.DateTimeField(auto_now_add=True)),
                ('exam', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='seat_assignments', to='seating.exam')),
                ('room', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='seat_assignments', to='seating.room')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='seat_assignments', to='seating.student')),
                ('subject', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='seat_assignments', to='seating.subject')),
            ],
            options={
                'ordering': ['scope', 'room__room_no', 'seat_number'],
                'constraints': [
                    models.UniqueConstraint(fields=('scope', 'student'), name='unique_student_seat_per_scope'),
                    models.UniqueConstraint(fields=('scope', 'room', 'seat_number'), name='unique_seat_in_room_per_scope'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InvigilatorAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('invigilator', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='assignment', to='seating.invigilator')),
                ('room', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='invigilator_assignment', to='seating.room')),
            ],
        ),
    ]
