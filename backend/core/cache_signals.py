"""
Cache invalidation signals
Automatically invalidate cache when catalog or testimonial data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import (
    invalidate_products_cache,
    invalidate_catalog_types_cache,
    invalidate_testimonials_cache,
)

logger = logging.getLogger(__name__)

CATALOG_TYPE_MODELS = {
    'ProductType': 'product_types',
    'MetalType': 'metal_types',
    'StoneType': 'stone_types',
}


# Product cache invalidation
@receiver([post_save, post_delete])
def invalidate_product_on_change(sender, instance, **kwargs):
    """Invalidate products cache when products change"""
    if sender.__name__ != 'Product':
        return
    try:
        from backend.catalog.models import Product
        if isinstance(instance, Product):
            product_id = instance.pk
            # Invalidate AFTER commit so a concurrent read cannot repopulate stale data
            transaction.on_commit(lambda: invalidate_products_cache(product_id))
    except Exception as e:
        logger.warning(f"Error in invalidate_product_on_change signal: {e}")


# Reference data invalidation
@receiver([post_save, post_delete])
def invalidate_catalog_types_on_change(sender, instance, **kwargs):
    """Invalidate type lists (and dependent prices) when reference data changes"""
    kind = CATALOG_TYPE_MODELS.get(sender.__name__)
    if kind is None:
        return
    try:
        from backend.catalog.models import ProductType, MetalType, StoneType
        if isinstance(instance, (ProductType, MetalType, StoneType)):
            transaction.on_commit(lambda: invalidate_catalog_types_cache(kind))
    except Exception as e:
        logger.warning(f"Error in invalidate_catalog_types_on_change signal: {e}")


# Testimonial cache invalidation
@receiver([post_save, post_delete])
def invalidate_testimonials_on_change(sender, instance, **kwargs):
    """Invalidate public and admin testimonial lists when a testimonial changes"""
    if sender.__name__ != 'Testimonial':
        return
    try:
        from backend.testimonials.models import Testimonial
        if isinstance(instance, Testimonial):
            transaction.on_commit(invalidate_testimonials_cache)
    except Exception as e:
        logger.warning(f"Error in invalidate_testimonials_on_change signal: {e}")
