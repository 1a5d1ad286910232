"""
Request-scoped acting principal.

Operations that need to know who is acting take a ``Principal`` (or
``None`` for an anonymous caller) as an explicit argument instead of
reading ``request.user`` deep inside the call. Views build it once with
``principal_from_request``.
"""
from dataclasses import dataclass

from .models import Role


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role
    name: str = ""

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(user_id=user.pk, role=Role(user.role), name=user.name)


def principal_from_request(request) -> Principal | None:
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    try:
        return Principal.from_user(user)
    except ValueError:
        # role column holds something outside teacher|student
        return None


def can_manage_academics(principal: Principal | None) -> bool:
    """Teachers write classes, attendance, marks and review leave."""
    if principal is None:
        return False
    if principal.role is Role.TEACHER:
        return True
    if principal.role is Role.STUDENT:
        return False
    raise ValueError(f"unhandled role {principal.role!r}")


def can_request_leave(principal: Principal | None) -> bool:
    if principal is None:
        return False
    if principal.role is Role.TEACHER:
        return False
    if principal.role is Role.STUDENT:
        return True
    raise ValueError(f"unhandled role {principal.role!r}")
