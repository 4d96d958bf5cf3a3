from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from fastapi import Request

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# JSON-only API: nothing may be framed, sniffed or cached
RESPONSE_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


def _netloc(url: Optional[str]) -> str:
    return urlparse(url or "").netloc


def signed_in(request: Request) -> bool:
    # session["user"] is set by the sign-in layer in front of this API
    if "session" not in request.scope:
        return False
    u = request.session.get("user")
    return bool(u and u.get("id"))


def same_origin(request: Request) -> bool:
    """
    Origin (or Referer as a fallback) must point at this host.
    A request carrying neither header is treated as cross-site.
    """
    own = _netloc(str(request.base_url))
    origin = request.headers.get("origin")
    if origin:
        return _netloc(origin) == own
    referer = request.headers.get("referer")
    if referer:
        return _netloc(referer) == own
    return False


def needs_origin_check(request: Request) -> bool:
    # anonymous attempts carry nothing worth forging a request for
    return request.method in UNSAFE_METHODS and signed_in(request)
