from datetime import date

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from academics.models import Attendance, LeaveRequest, Mark, SchoolClass, Subject

DEMO_PASSWORD = "password123"

SUBJECTS = (
    ("Mathematics", "Class 10A"),
    ("Physics", "Class 10A"),
    ("Chemistry", "Class 10A"),
    ("Biology", "Class 11B"),
)

ATTENDANCE = (
    ("Class 10A", "2023-06-01", "present"),
    ("Class 10A", "2023-06-02", "present"),
    ("Class 10A", "2023-06-03", "absent"),
    ("Class 10A", "2023-06-04", "present"),
    ("Class 10A", "2023-06-05", "present"),
    ("Class 11B", "2023-06-06", "present"),
    ("Class 11B", "2023-06-07", "absent"),
    ("Class 11B", "2023-06-08", "present"),
)

MARKS = (
    ("Mathematics", "midterm", 85), ("Physics", "midterm", 78),
    ("Chemistry", "midterm", 92), ("Mathematics", "final", 79),
    ("Physics", "final", 81), ("Chemistry", "final", 88),
    ("Biology", "midterm", 75), ("Biology", "final", 82),
)

LEAVE = (
    ("2023-06-10", "Medical leave due to fever", "approved"),
    ("2023-06-15", "Family function", "pending"),
    ("2023-06-20", "Doctor appointment", "pending"),
    ("2023-06-25", "Religious ceremony", "rejected"),
)


class Command(BaseCommand):
    help = "Create the demo teacher/student accounts and their sample records."

    @transaction.atomic
    def handle(self, *args, **opts):
        User = get_user_model()

        teacher, _ = User.objects.get_or_create(
            email="teacher@example.com",
            defaults={"name": "Jane Smith", "role": "teacher"},
        )
        student, _ = User.objects.get_or_create(
            email="student@example.com",
            defaults={"name": "John Doe", "role": "student", "register_number": "REG001", "batch": "A", "board": "CBSE"},
        )
        for u in (teacher, student):
            u.set_password(DEMO_PASSWORD)
            u.save()

        classes = {}
        for name in ("Class 10A", "Class 11B"):
            classes[name], _ = SchoolClass.objects.get_or_create(name=name, defaults={"teacher": teacher})
        student.clazz = classes["Class 10A"]
        student.save(update_fields=["clazz"])

        subjects = {}
        for name, class_name in SUBJECTS:
            subjects[name], _ = Subject.objects.get_or_create(
                name=name, clazz=classes[class_name], defaults={"teacher": teacher},
            )

        for class_name, day, status in ATTENDANCE:
            Attendance.objects.update_or_create(
                student=student, clazz=classes[class_name], date=date.fromisoformat(day),
                defaults={"status": status, "batch": student.batch},
            )

        for subject_name, exam_type, score in MARKS:
            mark = Mark.objects.filter(student=student, subject=subjects[subject_name], exam_type=exam_type).order_by("id").first()
            if mark is None:
                Mark.objects.create(student=student, subject=subjects[subject_name], exam_type=exam_type, marks=score)
            else:
                mark.marks = score
                mark.save(update_fields=["marks"])

        for day, reason, status in LEAVE:
            LeaveRequest.objects.get_or_create(
                student=student, date=date.fromisoformat(day), reason=reason,
                defaults={"status": status},
            )

        self.stdout.write(self.style.SUCCESS(
            f"Demo data ready: {teacher.email} / {student.email} (password: {DEMO_PASSWORD})"
        ))
