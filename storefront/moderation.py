"""
Admin testimonial moderation

Every approve/reject/delete is one server call. Lists are never edited in
place: after a successful transition the admin and public testimonial
queries are invalidated and the admin list is refetched.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

from .api import ApiClient, ApiError, AuthContext
from .query_cache import QueryCache

logger = logging.getLogger(__name__)

ADMIN_TESTIMONIALS_KEY = ('admin', 'testimonials')
PUBLIC_TESTIMONIALS_KEY = ('testimonials',)


@dataclass
class ModerationResult:
    ok: bool
    testimonial: Optional[dict] = None
    error: str = ''
    status_code: Optional[int] = None


class TestimonialModeration:
    def __init__(self, api: ApiClient, cache: QueryCache, auth: AuthContext, status_filter: Optional[str] = 'pending'):
        self.api = api
        self.cache = cache
        self.auth = auth
        self.status_filter = status_filter

    def testimonials(self, status: Optional[str] = None) -> List[dict]:
        """Admin list for a status (default: the current filter)"""
        status = status or self.status_filter
        params = {'status': status} if status else None
        return self.cache.fetch(
            ADMIN_TESTIMONIALS_KEY + (status or 'all',),
            lambda: self.api.get('admin/testimonials', auth=self.auth, params=params),
        )

    def public_testimonials(self) -> List[dict]:
        return self.cache.fetch(PUBLIC_TESTIMONIALS_KEY, lambda: self.api.get('testimonials'))

    def approve(self, testimonial_id: int) -> ModerationResult:
        return self._transition('PUT', f'admin/testimonials/{testimonial_id}/approve')

    def reject(self, testimonial_id: int) -> ModerationResult:
        return self._transition('PUT', f'admin/testimonials/{testimonial_id}/reject')

    def delete(self, testimonial_id: int) -> ModerationResult:
        return self._transition('DELETE', f'admin/testimonials/{testimonial_id}')

    def _transition(self, method, path) -> ModerationResult:
        try:
            testimonial = self.api.request(method, path, auth=self.auth)
        except ApiError as e:
            logger.warning(f"Moderation {method} {path} failed: {e.message}")
            return ModerationResult(ok=False, error=e.message, status_code=e.status_code)

        self.cache.invalidate(ADMIN_TESTIMONIALS_KEY)
        self.cache.invalidate(PUBLIC_TESTIMONIALS_KEY)
        self.testimonials()
        return ModerationResult(ok=True, testimonial=testimonial)
