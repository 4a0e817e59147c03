from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('seating', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='seatassignment',
            constraint=models.UniqueConstraint(
                condition=models.Q(exam__isnull=False),
                fields=('exam', 'student'),
                name='unique_student_seat_per_exam',
            ),
        ),
        migrations.AddConstraint(
            model_name='seatassignment',
            constraint=models.UniqueConstraint(
                condition=models.Q(exam__isnull=False),
                fields=('exam', 'room', 'seat_number'),
                name='unique_seat_in_room_per_exam',
            ),
        ),
    ]
