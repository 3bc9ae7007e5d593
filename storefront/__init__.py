"""
Client-side flows for the jewelry storefront API

Request threads, testimonial moderation and AI content generation as used by
the storefront UI, built on a small requests-based API client.
"""
from .api import ApiClient, ApiError, AuthContext
from .query_cache import QueryCache

__all__ = ['ApiClient', 'ApiError', 'AuthContext', 'QueryCache']
