from rest_framework.permissions import BasePermission

from accounts.roles import can_manage_academics, can_request_leave, principal_from_request


class IsStudentCreateOrTeacherReview(BasePermission):
    """Leave requests: students file them, teachers review them."""
    def has_permission(self, request, view):
        principal = principal_from_request(request)
        if principal is None:
            return False
        if view.action == 'create':
            return can_request_leave(principal)
        if view.action in ('approve', 'reject', 'update', 'partial_update', 'destroy'):
            return can_manage_academics(principal)
        return True
