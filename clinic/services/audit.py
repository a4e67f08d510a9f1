"""Append-only audit trail for account, booking, session and record changes."""
from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from clinic.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None,
               object_id: Optional[Any]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Record ``action`` by ``user``; anonymous callers are stored without a user."""
    actor = user if isinstance(user, User) and user.pk else None
    return AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )


def events_for(object_type: str, object_id) -> list[AuditEvent]:
    """Audit history of a single row, oldest first."""
    return list(AuditEvent.objects.filter(object_type=object_type, object_id=str(object_id))
                .select_related('user').order_by('created_at', 'id'))
