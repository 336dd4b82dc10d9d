"""
Cookie jar over the current Flask request/response.

Reads come from the request's Cookie header; writes are validated right away
and emitted as Set-Cookie on the response of the same request.
"""

from typing import Optional

from flask import after_this_request, request

from gaexp_editor.utils.cookie_jar import Cookie, CookieJar, CookieWriteError

# Browsers are only required to store cookies up to 4096 bytes (name + value + attributes)
MAX_COOKIE_BYTES = 4096

_FORBIDDEN_CHARS = set(' ;,"\\\r\n\t')


def validate_cookie(cookie: Cookie):
    """Raise CookieWriteError if a browser would not accept the cookie."""
    if not cookie.name:
        raise CookieWriteError("Cookie name is empty")

    bad = sorted(set(cookie.value) & _FORBIDDEN_CHARS)
    if bad:
        raise CookieWriteError(f"Cookie value contains characters that cannot be stored: {' '.join(repr(c) for c in bad)}")

    size = len(cookie.name.encode("utf-8")) + len(cookie.value.encode("utf-8")) + 1
    if size > MAX_COOKIE_BYTES:
        raise CookieWriteError(f"Cookie is {size} bytes; browsers only store cookies up to {MAX_COOKIE_BYTES} bytes")


class RequestCookieJar(CookieJar):
    """Cookie jar for the browser that sent the current request."""

    def __init__(self, domain: Optional[str] = None, path: str = "/"):
        self.domain = domain
        self.path = path

    def get(self, url: str, name: str) -> Optional[Cookie]:
        value = request.cookies.get(name)
        if value is None:
            return None
        return Cookie(name, value, domain=self.domain, path=self.path, secure=request.is_secure)

    def set(self, url: str, cookie: Cookie) -> Cookie:
        validate_cookie(cookie)

        @after_this_request
        def write_cookie(response):
            response.set_cookie(
                cookie.name,
                cookie.value,
                domain=cookie.domain,
                path=cookie.path,
                secure=cookie.secure,
            )
            return response

        return cookie
