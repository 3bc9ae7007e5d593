"""Applying generated content and inputs to catalog products"""
from django.db import transaction
import json
import logging

from backend.catalog.reconciler import parse_details

logger = logging.getLogger(__name__)


def _details_document(product):
    details, ok = parse_details(product.details)
    if not ok:
        # Keep the unreadable legacy text rather than dropping it
        logger.warning(f"Replacing malformed details JSON on product {product.pk}")
        return {'legacyDetails': product.details}
    return dict(details)


def _set_ai_inputs(details, payload):
    additional = details.get('additionalData')
    if not isinstance(additional, dict):
        additional = {}
    additional['aiInputs'] = payload
    details['additionalData'] = additional


def apply_generated_content(product, content, ai_inputs=None):
    """
    Write generated copy onto a product in one transaction.

    `content` is a complete GeneratedContent, so the product either takes
    every field or, if the save fails, none of them.
    """
    details = _details_document(product)
    details['detailedDescription'] = content.detailed_description
    additional = details.get('additionalData') if isinstance(details.get('additionalData'), dict) else {}
    additional['tagline'] = content.tagline
    details['additionalData'] = additional
    # a root-level tagline on older rows takes display precedence
    details.pop('tagline', None)
    if content.image_insights:
        details['imageInsights'] = content.image_insights
    if ai_inputs is not None:
        payload = ai_inputs.to_payload()
        _set_ai_inputs(details, payload)
        product.ai_inputs = payload

    with transaction.atomic():
        product.name = content.title
        product.description = content.short_description
        product.base_price = content.price_inr
        product.details = json.dumps(details)
        product.save()
    logger.info(f"Applied generated content to product {product.pk}")
    return product


def store_ai_inputs(product, ai_inputs):
    """Persist generation inputs for later regeneration and pricing"""
    payload = ai_inputs.to_payload()
    details = _details_document(product)
    _set_ai_inputs(details, payload)
    with transaction.atomic():
        product.ai_inputs = payload
        product.details = json.dumps(details)
        product.save(update_fields=['ai_inputs', 'details', 'updated_at'])
    logger.info(f"Stored AI inputs on product {product.pk}")
    return product
