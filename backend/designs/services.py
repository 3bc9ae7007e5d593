"""
Request thread operations shared by design and customization requests

Every mutation runs in a transaction and schedules cache invalidation with
transaction.on_commit, so cached threads and owner lists are only dropped
once the write is durable.
"""
from django.db import transaction
from rest_framework import serializers
import logging

from .models import (
    CustomDesignRequest, CustomizationRequest,
    DesignRequestComment, CustomizationComment, DesignPayment,
    REQUEST_STATUS_TRANSITIONS,
)
from backend.core.cache_utils import CUSTOM_DESIGN, CUSTOMIZATION, invalidate_request_cache
from backend.core.uploads import save_image_upload

logger = logging.getLogger(__name__)

COMMENT_MODELS = {
    CustomDesignRequest: DesignRequestComment,
    CustomizationRequest: CustomizationComment,
}

CACHE_KINDS = {
    CustomDesignRequest: CUSTOM_DESIGN,
    CustomizationRequest: CUSTOMIZATION,
}


class StatusTransitionError(Exception):
    """Requested status is not reachable from the current one"""
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move request from '{current}' to '{requested}'")


def cache_kind_for(request_obj):
    return CACHE_KINDS[type(request_obj)]


def schedule_invalidation(request_obj):
    """Drop the cached thread and the owner's list once the transaction commits"""
    kind = cache_kind_for(request_obj)
    request_id, owner_id = request_obj.pk, request_obj.user_id
    transaction.on_commit(lambda: invalidate_request_cache(kind, request_id, owner_id))


def submit_comment(request_obj, user, content='', image=None):
    """
    Append a comment to a request thread.

    At least one of content (after trimming) or image is required; the
    check runs before the image is stored or any row is written. Raises
    serializers.ValidationError on bad input.
    """
    content = (content or '').strip()
    if not content and image is None:
        raise serializers.ValidationError({'content': ['Add a message or an image.']})

    image_url = save_image_upload(image, folder='comments') if image is not None else ''

    comment_model = COMMENT_MODELS[type(request_obj)]
    with transaction.atomic():
        comment = comment_model.objects.create(
            request=request_obj,
            content=content,
            image_url=image_url,
            is_admin=user.is_admin_role,
            created_by=user.username,
        )
        schedule_invalidation(request_obj)

    logger.info(f"Comment {comment.pk} added to {cache_kind_for(request_obj)} request {request_obj.pk} by {user.username}")
    return comment


def update_request(request_obj, status=None, quoted_price=None, cad_image_url=None):
    """
    Apply an admin update to a request.

    Setting a quote on a pending request moves it to 'quoted'. Raises
    StatusTransitionError for moves outside REQUEST_STATUS_TRANSITIONS and
    ValidationError when a request would be quoted without a price.
    """
    current = request_obj.status
    new_status = status
    if quoted_price is not None and new_status is None and current == 'pending':
        new_status = 'quoted'

    if new_status is not None and new_status != current and new_status not in REQUEST_STATUS_TRANSITIONS[current]:
        raise StatusTransitionError(current, new_status)

    price = quoted_price if quoted_price is not None else request_obj.quoted_price
    if new_status == 'quoted' and price is None:
        raise serializers.ValidationError({'quoted_price': ['A quote needs a price.']})

    changes = {}
    if new_status is not None and new_status != current:
        changes['status'] = [current, new_status]
        request_obj.status = new_status
    if quoted_price is not None and quoted_price != request_obj.quoted_price:
        changes['quoted_price'] = [request_obj.quoted_price, quoted_price]
        request_obj.quoted_price = quoted_price
    if cad_image_url is not None and cad_image_url != request_obj.cad_image_url:
        changes['cad_image_url'] = [request_obj.cad_image_url, cad_image_url]
        request_obj.cad_image_url = cad_image_url
        # Each new CAD preview is one design iteration
        if isinstance(request_obj, CustomDesignRequest) and cad_image_url:
            request_obj.iterations_count += 1

    if changes:
        with transaction.atomic():
            request_obj.save()
            schedule_invalidation(request_obj)
        logger.info(f"Updated {cache_kind_for(request_obj)} request {request_obj.pk}: {changes}")
    return changes


def record_payment(design_request, user, amount, payment_type, payment_method='', transaction_id='', status='pending'):
    """Record a payment; a completed consultation fee marks the request paid"""
    with transaction.atomic():
        payment = DesignPayment.objects.create(
            design_request=design_request,
            user=user if user and user.is_authenticated else None,
            amount=amount,
            payment_type=payment_type,
            payment_method=payment_method,
            transaction_id=transaction_id,
            status=status,
        )
        if payment_type == 'consultation_fee' and status == 'completed' and not design_request.consultation_fee_paid:
            design_request.consultation_fee_paid = True
            design_request.save(update_fields=['consultation_fee_paid', 'updated_at'])
        schedule_invalidation(design_request)

    logger.info(f"Recorded {payment_type} payment {payment.pk} ({status}) for design request {design_request.pk}")
    return payment
