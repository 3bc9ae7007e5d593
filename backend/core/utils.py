"""Audit trail helpers for admin actions"""
import logging

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """First X-Forwarded-For hop, else REMOTE_ADDR"""
    meta = getattr(request, 'META', None)
    if not meta:
        return None
    forwarded = meta.get('HTTP_X_FORWARDED_FOR', '')
    ip = forwarded.split(',')[0].strip() if forwarded else meta.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Record an admin action (quote, moderation, content generation, ...).

    The acting user is `user` when given, else `request.user`; anonymous
    actors are stored as NULL. Returns the AuditLog or None.

    Never raises: a failed audit write must not fail the main operation.
    """
    actor = user if user is not None else getattr(request, 'user', None)
    if not action or not model_name or object_id is None:
        logger.warning(f"Skipping audit log with missing fields: action={action}, model={model_name}, id={object_id}")
        return None

    try:
        return AuditLog.objects.create(
            user=actor if actor is not None and actor.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        logger.error(f"Failed to create audit log for {model_name}#{object_id}: {e}", exc_info=True)
        return None
