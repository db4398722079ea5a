"""Admin gate.

Credentials are validated upstream (SimpleJWT / session auth).  The core
only checks that an authenticated staff principal is present and then
passes an ``AdminPrincipal`` value into the service layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from rest_framework.permissions import BasePermission

from modules.core.exceptions import AdminRequired


@dataclass(frozen=True)
class AdminPrincipal:
    """Pre-validated staff identity asserted by the authentication layer."""

    user_id: Optional[int]
    username: str

    @classmethod
    def from_user(cls, user: Any) -> AdminPrincipal:
        return cls(user_id=getattr(user, "pk", None), username=user.get_username())

    def __str__(self) -> str:
        return self.username


class IsAdminPrincipal(BasePermission):
    """Allow access only to authenticated staff users."""

    message = "Admin privileges are required."

    def has_permission(self, request, view) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)


def require_admin(principal: Optional[AdminPrincipal]) -> AdminPrincipal:
    if principal is None:
        raise AdminRequired("This operation requires an admin principal.")
    return principal


def principal_from_request(request) -> Optional[AdminPrincipal]:
    """Return the staff principal behind ``request``, if any."""
    user = getattr(request, "user", None)
    if user is None or not (user.is_authenticated and user.is_staff):
        return None
    return AdminPrincipal.from_user(user)
