"""
Caching utilities for storefront read endpoints
Uses Redis (django-redis) in production, local memory in development
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
PRODUCT_DETAIL_CACHE_TTL = 300  # 5 minutes
CATALOG_TYPES_CACHE_TTL = 600  # 10 minutes
REQUEST_CACHE_TTL = 120  # 2 minutes
TESTIMONIALS_CACHE_TTL = 600  # 10 minutes
EXCHANGE_RATE_CACHE_TTL = 3600  # 1 hour

# Request thread kinds, used as key prefixes
CUSTOM_DESIGN = 'custom_design'
CUSTOMIZATION = 'customization'


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern

    django-redis exposes delete_pattern (SCAN based). Backends without key
    scanning (local memory) are cleared entirely.
    """
    try:
        if hasattr(cache, 'delete_pattern'):
            deleted = cache.delete_pattern(f"*{pattern}*")
            logger.info(f"Invalidated {deleted} cache keys matching pattern: {pattern}")
        else:
            cache.clear()
            logger.info(f"Cache backend cannot scan keys; cleared cache for pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def delete_keys(*keys):
    """Delete exact cache keys, never raising"""
    try:
        cache.delete_many(list(keys))
        logger.debug(f"Deleted cache keys: {keys}")
    except Exception as e:
        logger.warning(f"Could not delete cache keys {keys}: {str(e)}")


# --- Key helpers ---

def products_list_key(filters_dict):
    return make_cache_key("products_list", **filters_dict)


def product_detail_key(product_id):
    return f"product_detail:{product_id}"


def catalog_types_key(kind):
    return f"catalog_types:{kind}"


def request_detail_key(kind, request_id):
    """Single design/customization request with its comment thread"""
    return f"{kind}_detail:{request_id}"


def request_user_list_key(kind, user_id):
    """Request list of one owner"""
    return f"{kind}_list:user:{user_id}"


def testimonials_public_key():
    return "testimonials_public"


def testimonials_admin_key(status=None):
    return f"testimonials_admin:{status or 'all'}"


# --- Invalidation ---

def invalidate_products_cache(product_id=None):
    """Invalidate product lists, plus one product's detail when given"""
    invalidate_cache_pattern("products_list")
    if product_id is not None:
        delete_keys(product_detail_key(product_id))
    logger.info(f"Invalidated products cache (product={product_id})")


def invalidate_catalog_types_cache(kind):
    """Reference data feeds every product price, so details go too"""
    delete_keys(catalog_types_key(kind))
    invalidate_cache_pattern("product_detail")
    invalidate_cache_pattern("products_list")
    logger.info(f"Invalidated catalog types cache: {kind}")


def invalidate_request_cache(kind, request_id, owner_id=None):
    """Invalidate one request's thread and its owner's request list"""
    keys = [request_detail_key(kind, request_id)]
    if owner_id is not None:
        keys.append(request_user_list_key(kind, owner_id))
    delete_keys(*keys)
    logger.info(f"Invalidated {kind} request cache (request={request_id}, owner={owner_id})")


def invalidate_testimonials_cache():
    """Moderation affects both the admin lists and the public list"""
    delete_keys(testimonials_public_key())
    invalidate_cache_pattern("testimonials_admin")
    logger.info("Invalidated testimonials cache")
