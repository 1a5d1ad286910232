from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    AttendanceViewSet,
    DashboardViewSet,
    LeaveRequestViewSet,
    MarkViewSet,
    SchoolClassViewSet,
    StudentViewSet,
    SubjectViewSet,
)

router = DefaultRouter()
router.register('classes', SchoolClassViewSet)
router.register('subjects', SubjectViewSet)
router.register('students', StudentViewSet, basename='student')
router.register('attendance', AttendanceViewSet)
router.register('marks', MarkViewSet)
router.register('leave-requests', LeaveRequestViewSet)
router.register('dashboard', DashboardViewSet, basename='dashboard')

urlpatterns = [
    path('', include(router.urls)),
]
