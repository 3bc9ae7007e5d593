"""
Design and customization request threads

A RequestThread loads one request with its comments through the query cache
and posts new comments as multipart. Empty drafts are refused before any
network call; after a successful post both the thread and the owner's request
list are invalidated, and after a failed post the draft is kept for retry.
"""
from dataclasses import dataclass
from typing import Any, List, Optional
import logging

from .api import ApiClient, ApiError, AuthContext, buffered_file
from .query_cache import QueryCache

logger = logging.getLogger(__name__)

CUSTOM_DESIGNS = 'custom-designs'
CUSTOMIZATION_REQUESTS = 'customization-requests'
THREAD_KINDS = (CUSTOM_DESIGNS, CUSTOMIZATION_REQUESTS)

ADMIN_LABEL = 'Jewelry Team'
OWN_LABEL = 'You'
EMPTY_COMMENT_ERROR = 'Add a message or an image.'


@dataclass
class CommentDraft:
    """Pending comment; image is a requests file tuple (name, bytes, content_type)"""
    content: str = ''
    image: Optional[tuple] = None

    def is_empty(self) -> bool:
        return not self.content.strip() and self.image is None


@dataclass
class SubmitResult:
    ok: bool
    comment: Optional[dict] = None
    error: str = ''


@dataclass
class RenderedComment:
    author: str
    content: str
    image_url: str
    is_admin: bool
    created_at: str


class RequestThread:
    def __init__(self, api: ApiClient, cache: QueryCache, auth: AuthContext, kind: str, request_id: int):
        if kind not in THREAD_KINDS:
            raise ValueError(f"Unknown request kind: {kind}")
        self.api = api
        self.cache = cache
        self.auth = auth
        self.kind = kind
        self.request_id = request_id
        self.draft = CommentDraft()
        self.error = ''

    @property
    def detail_key(self):
        return (self.kind, self.request_id)

    @property
    def list_key(self):
        return (self.kind, 'user')

    def load(self, force: bool = False) -> Any:
        """The request record with its comments"""
        return self.cache.fetch(
            self.detail_key,
            lambda: self.api.get(f'{self.kind}/{self.request_id}', auth=self.auth),
            force=force,
        )

    def comments(self) -> List[dict]:
        """Comments in creation order"""
        comments = (self.load() or {}).get('comments') or []
        return sorted(comments, key=lambda c: (c.get('created_at') or '', c.get('id') or 0))

    def render(self) -> List[RenderedComment]:
        rendered = []
        for comment in self.comments():
            if comment.get('is_admin'):
                author = ADMIN_LABEL
            elif comment.get('created_by') == self.auth.username:
                author = OWN_LABEL
            else:
                author = comment.get('created_by') or ''
            rendered.append(RenderedComment(
                author=author,
                content=comment.get('content') or '',
                image_url=comment.get('image_url') or '',
                is_admin=bool(comment.get('is_admin')),
                created_at=comment.get('created_at') or '',
            ))
        return rendered

    def submit_comment(self, content: Optional[str] = None, image: Optional[tuple] = None) -> SubmitResult:
        """
        Post the draft (updated with any given content/image).

        Returns a SubmitResult; never raises for API failures.
        """
        if content is not None:
            self.draft.content = content
        if image is not None:
            self.draft.image = buffered_file(image)

        if self.draft.is_empty():
            self.error = EMPTY_COMMENT_ERROR
            return SubmitResult(ok=False, error=self.error)

        # (None, value) sends a plain form field inside the multipart body
        files = {'content': (None, self.draft.content.strip())}
        if self.draft.image is not None:
            files['image'] = self.draft.image

        try:
            comment = self.api.post(f'{self.kind}/{self.request_id}/comments', auth=self.auth, files=files)
        except ApiError as e:
            self.error = e.message
            logger.warning(f"Comment on {self.kind} {self.request_id} failed: {e.message}")
            return SubmitResult(ok=False, error=e.message)

        self.cache.invalidate(self.detail_key)
        self.cache.invalidate(self.list_key)
        self.draft = CommentDraft()
        self.error = ''
        return SubmitResult(ok=True, comment=comment)
