from rest_framework import serializers
from .models import Attendance, LeaveRequest, Mark, SchoolClass, Subject, EXAM_TYPES


class SchoolClassSerializer(serializers.ModelSerializer):
    class Meta:
        model = SchoolClass
        fields = ('id', 'name', 'teacher', 'created_at')
        read_only_fields = ('created_at',)


class SubjectSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subject
        fields = ('id', 'name', 'clazz', 'teacher', 'created_at')
        read_only_fields = ('created_at',)


class AttendanceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Attendance
        fields = ('id', 'student', 'clazz', 'date', 'status', 'batch', 'created_at')
        read_only_fields = ('created_at',)


class MarkSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.name', read_only=True)
    subject_name = serializers.CharField(source='subject.name', read_only=True)

    class Meta:
        model = Mark
        fields = ('id', 'student', 'student_name', 'subject', 'subject_name', 'exam_type', 'marks', 'created_at')
        read_only_fields = ('created_at',)

    def validate_marks(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError('marks must be between 0 and 100')
        return value


class LeaveRequestSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.name', read_only=True)

    class Meta:
        model = LeaveRequest
        fields = ('id', 'student', 'student_name', 'date', 'reason', 'status', 'reviewed_by', 'created_at')
        read_only_fields = ('student', 'status', 'reviewed_by', 'created_at')

    def validate_reason(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('reason is required')
        return value


class MarksImportSerializer(serializers.Serializer):
    subject = serializers.PrimaryKeyRelatedField(queryset=Subject.objects.all())
    exam_type = serializers.ChoiceField(choices=EXAM_TYPES)
    file = serializers.FileField(required=False)
    content = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        if attrs.get('file') is None and attrs.get('content') is None:
            raise serializers.ValidationError('either file or content is required')
        return attrs
