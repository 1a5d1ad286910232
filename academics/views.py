# academics/views.py
import csv
import io
import logging
from datetime import date

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Q
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from accounts.models import Role
from accounts.permissions import IsTeacher, IsTeacherOrReadOnly
from accounts.roles import can_manage_academics, principal_from_request
from accounts.serializers import StudentCreateSerializer, UserSerializer

from . import marks_import, stats
from .exceptions import ImportRejected
from .models import Attendance, LeaveRequest, Mark, SchoolClass, Subject
from .permissions import IsStudentCreateOrTeacherReview
from .serializers import (
    AttendanceSerializer,
    LeaveRequestSerializer,
    MarkSerializer,
    MarksImportSerializer,
    SchoolClassSerializer,
    SubjectSerializer,
)
from .stores import get_mark_store

logger = logging.getLogger(__name__)
User = get_user_model()


def _csv_response(filename: str, header, rows) -> HttpResponse:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(header)
    writer.writerows(rows)
    resp = HttpResponse(buf.getvalue(), content_type="text/csv")
    resp["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp


def _parse_day(value):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _parse_id(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _id_param(params, name):
    """Optional integer query filter; a non-numeric value is a 400, not a 500."""
    raw = params.get(name)
    if not raw:
        return None
    value = _parse_id(raw)
    if value is None:
        raise ValidationError({name: "must be a numeric id"})
    return value


# =========================
# CRUD ViewSets
# =========================

class SchoolClassViewSet(viewsets.ModelViewSet):
    queryset = SchoolClass.objects.select_related("teacher").all().order_by("name")
    serializer_class = SchoolClassSerializer
    permission_classes = [permissions.IsAuthenticated, IsTeacherOrReadOnly]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user.is_student:
            return qs.filter(id=user.clazz_id)
        if self.request.query_params.get("mine"):
            qs = qs.filter(teacher=user)
        return qs

    def perform_create(self, serializer):
        if serializer.validated_data.get("teacher") is None:
            serializer.save(teacher=self.request.user)
        else:
            serializer.save()

    @action(detail=True, methods=["get"])
    def students(self, request, pk=None):
        clazz = self.get_object()
        qs = User.objects.filter(role=Role.STUDENT, clazz=clazz).order_by("name")
        return Response(UserSerializer(qs, many=True).data)


class SubjectViewSet(viewsets.ModelViewSet):
    queryset = Subject.objects.select_related("clazz", "teacher").all().order_by("name")
    serializer_class = SubjectSerializer
    permission_classes = [permissions.IsAuthenticated, IsTeacherOrReadOnly]

    def get_queryset(self):
        qs = super().get_queryset()
        class_id = _id_param(self.request.query_params, "class")
        if class_id is not None:
            qs = qs.filter(clazz_id=class_id)
        if self.request.query_params.get("mine"):
            qs = qs.filter(teacher=self.request.user)
        return qs

    def perform_create(self, serializer):
        if serializer.validated_data.get("teacher") is None:
            serializer.save(teacher=self.request.user)
        else:
            serializer.save()

    @action(detail=True, methods=["get"])
    def students(self, request, pk=None):
        """Students of the class this subject is taught in."""
        subject = self.get_object()
        if not subject.clazz_id:
            return Response([])
        qs = User.objects.filter(role=Role.STUDENT, clazz_id=subject.clazz_id).order_by("name")
        return Response(UserSerializer(qs, many=True).data)


class StudentViewSet(viewsets.ModelViewSet):
    """
    Student profiles. Teachers list/search/add; a student only sees
    their own profile.
    """
    queryset = User.objects.filter(role=Role.STUDENT).select_related("clazz")
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated, IsTeacherOrReadOnly]
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_serializer_class(self):
        if self.action == "create":
            return StudentCreateSerializer
        return UserSerializer

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if user.is_student:
            return qs.filter(id=user.id)

        params = self.request.query_params
        class_id = _id_param(params, "class")
        if class_id is not None:
            qs = qs.filter(clazz_id=class_id)
        if params.get("batch"):
            qs = qs.filter(batch=params["batch"])
        q = params.get("q")
        if q:
            qs = qs.filter(
                Q(name__icontains=q)
                | Q(email__icontains=q)
                | Q(register_number__icontains=q)
            )
        return qs.order_by("name")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = serializer.save()
        logger.info("teacher %s added student %s", request.user.id, student.id)
        return Response(UserSerializer(student).data, status=status.HTTP_201_CREATED)


# =========================
# Attendance
# =========================

class AttendanceViewSet(viewsets.ModelViewSet):
    queryset = Attendance.objects.select_related("student", "clazz").all()
    serializer_class = AttendanceSerializer
    permission_classes = [permissions.IsAuthenticated, IsTeacherOrReadOnly]

    def get_queryset(self):
        qs = super().get_queryset()
        u = self.request.user
        if u.is_student:
            qs = qs.filter(student=u)

        params = self.request.query_params
        class_id = _id_param(params, "class")
        if class_id is not None:
            qs = qs.filter(clazz_id=class_id)
        if params.get("date"):
            day = _parse_day(params["date"])
            if day is None:
                raise ValidationError({"date": "expected YYYY-MM-DD"})
            qs = qs.filter(date=day)
        if params.get("batch"):
            qs = qs.filter(batch=params["batch"])
        return qs.order_by("-date", "student__name")

    @action(detail=False, methods=["post"], url_path="bulk-mark")
    def bulk_mark(self, request):
        """
        Payload:
        {
          "class": <id>, "date": "YYYY-MM-DD", "batch": "A" (optional),
          "entries": [{"student": id, "status": "present|absent"}]
        }
        """
        clazz = request.data.get("class")
        dt = request.data.get("date")
        batch = (request.data.get("batch") or "").strip()
        entries = request.data.get("entries", [])

        if not clazz or not dt or not isinstance(entries, list):
            return Response({"detail": "class, date and entries are required"}, status=400)
        if _parse_day(dt) is None:
            return Response({"detail": "invalid date (YYYY-MM-DD)"}, status=400)
        clazz = _parse_id(clazz)
        if clazz is None:
            return Response({"detail": "class must be a numeric id"}, status=400)
        if not SchoolClass.objects.filter(id=clazz).exists():
            return Response({"detail": "class not found"}, status=404)

        student_ids = set(
            User.objects.filter(role=Role.STUDENT).values_list("id", flat=True)
        )
        ids, skipped = [], []
        for i, e in enumerate(entries, start=1):
            if not isinstance(e, dict):
                skipped.append(i)
                continue
            sid = e.get("student")
            st = e.get("status")
            if sid not in student_ids or st not in ("present", "absent"):
                skipped.append(i)
                continue
            obj, _ = Attendance.objects.update_or_create(
                student_id=sid,
                clazz_id=clazz,
                date=dt,
                defaults={"status": st, "batch": batch},
            )
            ids.append(obj.id)

        return Response({"ok": True, "ids": ids, "skipped": skipped})

    @action(detail=False, methods=["get"])
    def report(self, request):
        """GET /api/attendance/report/?class=<id>&date=YYYY-MM-DD  -> CSV download"""
        if not can_manage_academics(principal_from_request(request)):
            return Response({"detail": "Forbidden"}, status=403)
        clazz = request.query_params.get("class")
        dt = request.query_params.get("date")
        if not clazz or _parse_day(dt) is None:
            return Response({"detail": "class and date (YYYY-MM-DD) are required"}, status=400)

        qs = self.get_queryset()
        rows = [
            (a.student_id, a.student.name, a.date.isoformat(), a.status, a.batch)
            for a in qs
        ]
        return _csv_response(
            f"attendance_{clazz}_{dt}.csv",
            ("Student ID", "Student Name", "Date", "Status", "Batch"),
            rows,
        )


# =========================
# Marks
# =========================

class MarkViewSet(viewsets.ModelViewSet):
    """
    Read access plus the reconciled writers. There is no PUT/PATCH: a
    single mark is (re)written with POST, which goes through the same
    lookup-then-insert/update path as a CSV import.
    """
    queryset = Mark.objects.select_related("student", "subject").all()
    serializer_class = MarkSerializer
    permission_classes = [permissions.IsAuthenticated, IsTeacherOrReadOnly]
    http_method_names = ["get", "post", "delete", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        u = self.request.user
        if u.is_student:
            qs = qs.filter(student=u)

        params = self.request.query_params
        subject_id = _id_param(params, "subject")
        if subject_id is not None:
            qs = qs.filter(subject_id=subject_id)
        if params.get("exam_type"):
            qs = qs.filter(exam_type=params["exam_type"])
        return qs.order_by("student__name", "id")

    def _run(self, fn, *args):
        principal = principal_from_request(self.request)
        try:
            store = get_mark_store()
        except ValueError:
            logger.exception("marks store is not configured")
            return Response({"detail": "marks store unavailable"}, status=503)
        try:
            summary = fn(principal, *args, store)
        except ImportRejected as e:
            return Response({"detail": str(e)}, status=e.status_code)
        limit = getattr(settings, "MARKS_IMPORT_NOTES_SAMPLE", 20)
        return Response(summary.as_dict(notes_limit=limit), status=200)

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        return self._run(
            marks_import.save_marks_entries,
            {str(data["student"].id): data["marks"]},
            str(data["subject"].id),
            data["exam_type"],
        )

    @action(detail=False, methods=["post"], url_path="bulk-save", permission_classes=[permissions.IsAuthenticated, IsTeacher])
    def bulk_save(self, request):
        """
        Payload:
        { "subject": <id>, "exam_type": "midterm|final|assignment|quiz",
          "marks": {"<student_id>": 85, ...} }
        """
        data = request.data if isinstance(request.data, dict) else {}
        subject_id = _parse_id(data.get("subject"))
        exam_type = str(data.get("exam_type") or "").strip()
        entries = data.get("marks")

        if not isinstance(entries, dict) or not entries:
            return Response({"detail": "No marks to save"}, status=400)
        if subject_id is None:
            return Response({"detail": "subject must be a numeric id"}, status=400)
        if not Subject.objects.filter(id=subject_id).exists():
            return Response({"detail": "subject not found"}, status=404)

        return self._run(marks_import.save_marks_entries, entries, str(subject_id), exam_type)

    @action(
        detail=False,
        methods=["post"],
        url_path="import",
        permission_classes=[permissions.IsAuthenticated, IsTeacher],
        parser_classes=[MultiPartParser, FormParser, JSONParser],
    )
    def import_csv(self, request):
        """
        multipart: subject=<id>, exam_type=..., file=<marks.csv>
        or JSON:  {"subject": <id>, "exam_type": "...", "content": "student_id,marks\\n..."}
        """
        ser = MarksImportSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        subject = ser.validated_data["subject"]
        exam_type = ser.validated_data["exam_type"]
        upload = ser.validated_data.get("file")

        max_bytes = getattr(settings, "MARKS_IMPORT_MAX_BYTES", 1024 * 1024)
        if upload is not None:
            if not upload.name.lower().endswith(".csv"):
                return Response({"detail": "Please select a valid CSV file"}, status=400)
            if upload.size > max_bytes:
                return Response({"detail": f"file too large (max {max_bytes} bytes)"}, status=400)
            try:
                text = upload.read().decode("utf-8-sig")
            except UnicodeDecodeError:
                return Response({"detail": "file must be UTF-8 text"}, status=400)
        else:
            text = ser.validated_data["content"]
            if len(text.encode("utf-8")) > max_bytes:
                return Response({"detail": f"content too large (max {max_bytes} bytes)"}, status=400)

        return self._run(marks_import.import_marks_csv, text, str(subject.id), exam_type)

    @action(detail=False, methods=["get"])
    def sample(self, request):
        resp = HttpResponse(marks_import.sample_marks_csv(), content_type="text/csv")
        resp["Content-Disposition"] = f'attachment; filename="{marks_import.SAMPLE_FILENAME}"'
        return resp

    @action(detail=False, methods=["get"], permission_classes=[permissions.IsAuthenticated, IsTeacher])
    def export(self, request):
        """GET /api/marks/export/?subject=<id>&exam_type=midterm -> CSV of the class roll"""
        subject_id = request.query_params.get("subject")
        exam_type = request.query_params.get("exam_type", "")
        if exam_type not in marks_import.EXAM_KINDS:
            return Response({"detail": "exam_type is required"}, status=400)
        try:
            subject = Subject.objects.get(id=subject_id)
        except (Subject.DoesNotExist, ValueError, TypeError):
            return Response({"detail": "subject not found"}, status=404)

        students = User.objects.filter(role=Role.STUDENT, clazz_id=subject.clazz_id).order_by("name")
        scores = {}
        for m in Mark.objects.filter(subject=subject, exam_type=exam_type).order_by("id"):
            scores.setdefault(m.student_id, m.marks)  # first match wins, like the reconciler

        rows = [(s.id, s.name, scores.get(s.id, "")) for s in students]
        stamp = timezone.localdate().isoformat()
        return _csv_response(f"{exam_type}_marks_{stamp}.csv", ("Student ID", "Student Name", "Marks"), rows)


# =========================
# Leave requests
# =========================

class LeaveRequestViewSet(viewsets.ModelViewSet):
    queryset = LeaveRequest.objects.select_related("student").all()
    serializer_class = LeaveRequestSerializer
    permission_classes = [permissions.IsAuthenticated, IsStudentCreateOrTeacherReview]
    http_method_names = ["get", "post", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        u = self.request.user
        if u.is_student:
            return qs.filter(student=u)

        params = self.request.query_params
        st = params.get("status")
        if st and st != "all":
            qs = qs.filter(status=st)
        q = params.get("q")
        if q:
            qs = qs.filter(student__name__icontains=q)
        return qs

    def perform_create(self, serializer):
        serializer.save(student=self.request.user, status="pending")

    def _review(self, pk, new_status):
        leave = self.get_object()
        if leave.status != "pending":
            return Response({"detail": f"leave request is already {leave.status}"}, status=400)
        leave.status = new_status
        leave.reviewed_by = self.request.user
        leave.save(update_fields=["status", "reviewed_by"])
        return Response(self.get_serializer(leave).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        return self._review(pk, "approved")

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        return self._review(pk, "rejected")


# =========================
# Dashboards
# =========================

class DashboardViewSet(viewsets.ViewSet):
    permission_classes = [permissions.IsAuthenticated]

    @action(detail=False, methods=["get"])
    def teacher(self, request):
        principal = principal_from_request(request)
        if not can_manage_academics(principal):
            return Response({"detail": "Forbidden"}, status=403)
        return Response(stats.teacher_dashboard(principal))

    @action(detail=False, methods=["get"])
    def student(self, request):
        principal = principal_from_request(request)
        if principal is None or can_manage_academics(principal):
            return Response({"detail": "Forbidden"}, status=403)
        return Response(stats.student_dashboard(principal))
