from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL

EXAM_TYPES = (
    ('midterm', 'Midterm'),
    ('final', 'Final'),
    ('assignment', 'Assignment'),
    ('quiz', 'Quiz'),
)


class SchoolClass(models.Model):
    name = models.CharField(max_length=50, unique=True)  # e.g., "Class 10A"
    teacher = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='classes_taught')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Subject(models.Model):
    name = models.CharField(max_length=120)
    clazz = models.ForeignKey(SchoolClass, on_delete=models.SET_NULL, null=True, blank=True, related_name='subjects')
    teacher = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='subjects_taught')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.clazz})" if self.clazz_id else self.name


class Attendance(models.Model):
    STATUS = (
        ('present', 'Present'),
        ('absent', 'Absent'),
    )
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='attendance')
    clazz = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, related_name='attendance')
    date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS)
    batch = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['student', 'clazz', 'date'], name='uniq_attendance_student_class_day'),
        ]

    def __str__(self):
        return f"{self.student_id} {self.date} {self.status}"


class Mark(models.Model):
    # (student, subject, exam_type) is the natural key, but it is not enforced
    # by the database; writers go through academics.marks_import.reconcile.
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='marks')
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='marks')
    exam_type = models.CharField(max_length=20, choices=EXAM_TYPES)
    marks = models.PositiveSmallIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['student', 'subject', 'exam_type'], name='mark_natural_key_idx'),
        ]

    def __str__(self):
        return f"{self.student_id}/{self.subject_id}/{self.exam_type}: {self.marks}"


class LeaveRequest(models.Model):
    STATUS = (
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    )
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='leave_requests')
    date = models.DateField()
    reason = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS, default='pending')
    reviewed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ('-date', '-id')

    def __str__(self):
        return f"{self.student_id} {self.date} ({self.status})"
