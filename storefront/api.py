"""
HTTP client for the storefront REST API

Wraps a requests.Session: bearer auth from an explicit AuthContext, JSON or
multipart bodies, and a single ApiError for every failed call.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


@dataclass
class AuthContext:
    """The user a flow acts for; passed explicitly, never read from globals"""
    username: str = ''
    access_token: str = ''
    refresh_token: str = ''
    user_id: Optional[int] = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    @classmethod
    def from_login(cls, data: Dict) -> 'AuthContext':
        user = data.get('user') or {}
        return cls(
            username=user.get('username', ''),
            access_token=data.get('access', ''),
            refresh_token=data.get('refresh', ''),
            user_id=user.get('id'),
            is_admin=bool(user.get('is_admin')),
        )


class ApiError(Exception):
    """A call failed: network error (status_code None) or a non-2xx reply"""

    def __init__(self, status_code: Optional[int], message: str, payload: Any = None):
        self.status_code = status_code
        self.message = message
        self.payload = payload
        super().__init__(message)


def _error_message(response) -> tuple:
    """(message, payload) for a failed response"""
    try:
        payload = response.json()
    except ValueError:
        return (response.text or response.reason or f"HTTP {response.status_code}"), None

    if isinstance(payload, dict):
        if 'detail' in payload:
            return str(payload['detail']), payload
        for field, errors in payload.items():
            error = errors[0] if isinstance(errors, list) and errors else errors
            if field == 'non_field_errors':
                return str(error), payload
            return f"{field}: {error}", payload
    return f"HTTP {response.status_code}", payload


def buffered_file(file_tuple: tuple) -> tuple:
    """
    Copy of a requests file tuple with the file object read into bytes.

    requests consumes file objects, so a tuple kept for a later resend must
    hold bytes. Seekable files are rewound first.
    """
    name, body, *rest = file_tuple
    if hasattr(body, 'read'):
        if getattr(body, 'seekable', lambda: False)():
            body.seek(0)
        body = body.read()
    return (name, body, *rest)


class ApiClient:
    """Blocking client for the `/api/` endpoints"""

    def __init__(self, base_url: str, timeout: int = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.strip('/')}/"

    def request(self, method: str, path: str, auth: Optional[AuthContext] = None, **kwargs) -> Any:
        """
        Send a request and decode the JSON reply.

        Args:
            method: HTTP method
            path: endpoint path relative to the API root, e.g. "products/5"
            auth: optional AuthContext; its access token is sent as a bearer token
            **kwargs: json, data, files or params, passed to requests

        Raises:
            ApiError on network failures and non-2xx responses
        """
        headers = {'Accept': 'application/json'}
        if auth is not None and auth.is_authenticated:
            headers['Authorization'] = f'Bearer {auth.access_token}'

        url = self.url(path)
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise ApiError(None, f"Network error: {e}") from e

        if response.status_code >= 400:
            message, payload = _error_message(response)
            logger.info(f"{method} {url} returned {response.status_code}: {message}")
            raise ApiError(response.status_code, message, payload)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, 'Server returned an invalid response') from e

    def get(self, path, auth=None, params=None):
        return self.request('GET', path, auth=auth, params=params)

    def post(self, path, auth=None, **kwargs):
        return self.request('POST', path, auth=auth, **kwargs)

    def put(self, path, auth=None, **kwargs):
        return self.request('PUT', path, auth=auth, **kwargs)

    def delete(self, path, auth=None):
        return self.request('DELETE', path, auth=auth)

    def login(self, username: str, password: str) -> AuthContext:
        """Exchange credentials for an AuthContext"""
        data = self.post('auth/login', json={'username': username, 'password': password})
        auth = AuthContext.from_login(data)
        logger.info(f"Logged in as {auth.username}")
        return auth
