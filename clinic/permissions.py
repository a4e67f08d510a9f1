"""
Role gates and the ownership policy.

The permission classes gate whole routes on the caller's role.  Row
level checks go through :func:`check_access`, which encodes the only
three rules the API knows: an admin may act on anything, a user may act
on rows they own, and the professional assigned to a row may act on it.
"""
from __future__ import annotations

from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

ADMIN = 'admin'
DOCTOR = 'doctor'


def _role(request) -> str | None:
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    message = 'Requires admin role'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == ADMIN


class IsDoctorOrAdmin(BasePermission):
    """doctor or admin."""
    message = 'Requires doctor or admin role'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in {DOCTOR, ADMIN}


def check_access(caller, owner_user_id=None, professional_user_id=None) -> bool:
    """Return True if ``caller`` may act on a row.

    ``owner_user_id`` is the user id of the owning patient (or the user
    row itself) and ``professional_user_id`` the user id of the assigned
    doctor.  Either may be ``None`` when the row has no such party.
    """
    if caller is None or not getattr(caller, 'is_authenticated', False):
        return False
    if getattr(caller, 'role', None) == ADMIN:
        return True
    caller_id = getattr(caller, 'id', None)
    if owner_user_id is not None and caller_id == owner_user_id:
        return True
    if professional_user_id is not None and caller_id == professional_user_id:
        return True
    return False


def ensure_access(caller, owner_user_id=None, professional_user_id=None, *, message='Not authorized'):
    """Raise ``PermissionDenied`` unless :func:`check_access` allows the caller."""
    if not check_access(caller, owner_user_id, professional_user_id):
        raise PermissionDenied(message)
