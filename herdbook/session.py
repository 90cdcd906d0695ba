"""Per-user authentication state shared by every API call.

One `AuthSession` lives in `st.session_state` for the browser session. It
holds the bearer token, the cookies issued by the API (the `XSRF-TOKEN`
cookie among them) and the time the CSRF cookie was last refreshed, so the
client only goes back to the CSRF endpoint once the cookie is older than the
configured TTL or has been explicitly invalidated.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Mapping, Optional
from urllib.parse import unquote


XSRF_COOKIE = "XSRF-TOKEN"


class AuthSession:
    """Bearer token plus CSRF cookie state with a refresh-if-stale policy."""

    def __init__(
        self,
        token: Optional[str] = None,
        csrf_ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._token = token or None
        self.csrf_ttl_seconds = csrf_ttl_seconds
        self._clock = clock
        self._csrf_refreshed_at: Optional[float] = None
        self.cookies: Dict[str, str] = {}

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        """Swap the bearer token; the CSRF cookie belongs to the old identity."""
        token = token or None
        if token != self._token:
            self._token = token
            self.invalidate()

    def csrf_is_stale(self) -> bool:
        if self._csrf_refreshed_at is None:
            return True
        if self.csrf_ttl_seconds <= 0:
            return True
        return self._clock() - self._csrf_refreshed_at >= self.csrf_ttl_seconds

    def mark_csrf_refreshed(self, cookies: Optional[Mapping[str, str]] = None) -> None:
        if cookies:
            self.cookies.update(cookies)
        self._csrf_refreshed_at = self._clock()

    def remember_cookies(self, cookies: Mapping[str, str]) -> None:
        self.cookies.update(cookies)

    def invalidate(self) -> None:
        """Forget the CSRF cookie so the next request fetches a fresh one."""
        self._csrf_refreshed_at = None
        self.cookies.pop(XSRF_COOKIE, None)

    def clear(self) -> None:
        self._token = None
        self._csrf_refreshed_at = None
        self.cookies.clear()

    def xsrf_token(self) -> Optional[str]:
        raw = self.cookies.get(XSRF_COOKIE)
        return unquote(raw) if raw else None

    def headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        xsrf = self.xsrf_token()
        if xsrf:
            headers["X-XSRF-TOKEN"] = xsrf
        return headers
