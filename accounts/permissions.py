from rest_framework.permissions import BasePermission, SAFE_METHODS

from .roles import can_manage_academics, principal_from_request


class IsTeacher(BasePermission):
    def has_permission(self, request, view):
        return can_manage_academics(principal_from_request(request))


class IsTeacherOrReadOnly(BasePermission):
    """Authenticated users can read. Only teachers can write."""
    def has_permission(self, request, view):
        principal = principal_from_request(request)
        if principal is None:
            return False
        if request.method in SAFE_METHODS:
            return True
        return can_manage_academics(principal)
