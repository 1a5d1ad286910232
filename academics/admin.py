from django.contrib import admin
from .models import Attendance, LeaveRequest, Mark, SchoolClass, Subject

@admin.register(SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'teacher')
    search_fields = ('name',)

@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'clazz', 'teacher')
    search_fields = ('name',)
    list_filter = ('clazz',)

@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('id', 'student', 'clazz', 'date', 'status', 'batch')
    list_filter = ('status', 'clazz', 'date')
    search_fields = ('student__name', 'student__email')

@admin.register(Mark)
class MarkAdmin(admin.ModelAdmin):
    list_display = ('id', 'student', 'subject', 'exam_type', 'marks')
    list_filter = ('exam_type', 'subject')
    search_fields = ('student__name', 'student__register_number')

@admin.register(LeaveRequest)
class LeaveRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'student', 'date', 'status', 'reviewed_by')
    list_filter = ('status',)
    search_fields = ('student__name', 'reason')
