"""
Testimonial moderation

    pending -> approved | rejected
    approved | rejected -> deleted

Repeating the transition a testimonial already went through is a no-op.
Cache invalidation of the public and admin lists is scheduled on commit by
backend.core.cache_signals.
"""
from django.db import transaction
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)

MODERATION_TARGETS = {
    'approve': 'approved',
    'reject': 'rejected',
}


class ModerationConflict(Exception):
    """Transition not allowed from the testimonial's current status"""


def moderate_testimonial(testimonial, action):
    """
    Approve or reject a testimonial.

    Returns True when the status changed, False for an idempotent repeat.
    Raises ModerationConflict when the testimonial was already moderated the
    other way.
    """
    target = MODERATION_TARGETS[action]
    if testimonial.status == target:
        return False
    if testimonial.status != 'pending':
        raise ModerationConflict(f"Testimonial is already {testimonial.status}; cannot {action}")

    with transaction.atomic():
        testimonial.status = target
        testimonial.moderated_at = timezone.now()
        testimonial.save(update_fields=['status', 'moderated_at', 'updated_at'])
    logger.info(f"Testimonial {testimonial.pk} {target}")
    return True


def delete_testimonial(testimonial):
    """Delete a moderated testimonial; pending ones must be moderated first"""
    if testimonial.status == 'pending':
        raise ModerationConflict("Pending testimonials must be approved or rejected before deletion")
    testimonial_id = testimonial.pk
    with transaction.atomic():
        testimonial.delete()
    logger.info(f"Testimonial {testimonial_id} deleted")
