"""Summary cards for the teacher and student dashboards."""
from django.contrib.auth import get_user_model
from django.db.models import Avg, Count, Q

from accounts.models import Role
from accounts.roles import Principal

from .models import Attendance, LeaveRequest, Mark, SchoolClass, Subject


def _rate(present: int, total: int) -> float:
    return round(present * 100.0 / total, 1) if total else 0.0


def attendance_rate(qs) -> float:
    agg = qs.aggregate(total=Count("id"), present=Count("id", filter=Q(status="present")))
    return _rate(agg["present"], agg["total"])


def average_marks(qs) -> float:
    avg = qs.aggregate(avg=Avg("marks"))["avg"]
    return round(float(avg), 1) if avg is not None else 0.0


def teacher_dashboard(principal: Principal) -> dict:
    classes = SchoolClass.objects.filter(teacher_id=principal.user_id).order_by("name")
    subjects = Subject.objects.filter(teacher_id=principal.user_id).order_by("name")
    attendance = Attendance.objects.filter(clazz__in=classes)
    marks = Mark.objects.filter(subject__in=subjects)

    return {
        "stats": {
            "total_students": get_user_model().objects.filter(role=Role.STUDENT).count(),
            "total_classes": classes.count(),
            "attendance_rate": attendance_rate(attendance),
            "average_marks": average_marks(marks),
        },
        "classes": list(classes.values("id", "name")),
        "subjects": list(subjects.values("id", "name", "clazz_id")),
        "pending_leave_requests": LeaveRequest.objects.filter(status="pending").count(),
    }


def student_dashboard(principal: Principal) -> dict:
    attendance = Attendance.objects.filter(student_id=principal.user_id)
    marks = Mark.objects.filter(student_id=principal.user_id).select_related("subject")
    leave = LeaveRequest.objects.filter(student_id=principal.user_id)
    class_id = (
        get_user_model().objects.filter(id=principal.user_id).values_list("clazz_id", flat=True).first()
    )
    subjects = Subject.objects.filter(clazz_id=class_id) if class_id else Subject.objects.none()

    return {
        "stats": {
            "attendance_rate": attendance_rate(attendance),
            "average_marks": average_marks(marks),
        },
        "attendance": list(attendance.order_by("-date").values("id", "clazz_id", "date", "status")),
        "marks": [
            {
                "id": m.id,
                "subject_id": m.subject_id,
                "subject": m.subject.name,
                "exam_type": m.exam_type,
                "marks": m.marks,
            }
            for m in marks.order_by("subject__name", "exam_type")
        ],
        "leave_requests": list(leave.values("id", "date", "reason", "status")),
        "subjects": list(subjects.order_by("name").values("id", "name")),
    }
