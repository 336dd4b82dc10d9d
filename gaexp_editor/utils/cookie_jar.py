"""
Cookie jar boundary used by the editor.

The editor only ever needs to read one cookie for a URL and write it back with
its original attributes. `MemoryCookieJar` backs tests and local tooling; the
Flask request/response jar lives in `features/editor/services/cookies.py`.
"""
import logging
import threading
from typing import Dict, Optional, Tuple
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


class CookieWriteError(Exception):
    """Raised when the host refuses to store a cookie"""


class Cookie:
    """A single browser cookie and the attributes that must survive a rewrite"""

    def __init__(self, name: str, value: str, domain: Optional[str] = None, path: str = "/", secure: bool = False):
        self.name = name
        self.value = value
        self.domain = domain
        self.path = path or "/"
        self.secure = bool(secure)

    def with_value(self, value: str) -> "Cookie":
        """Copy of this cookie with a new value and the same domain, path and secure flag"""
        return Cookie(self.name, value, domain=self.domain, path=self.path, secure=self.secure)

    def __eq__(self, other):
        if not isinstance(other, Cookie):
            return NotImplemented
        return (self.name, self.value, self.domain, self.path, self.secure) == (
            other.name, other.value, other.domain, other.path, other.secure
        )

    def __repr__(self):
        return f"Cookie(name={self.name!r}, value={self.value!r}, domain={self.domain!r}, path={self.path!r}, secure={self.secure})"


class CookieJar:
    """Read and write a named cookie for a URL"""

    def get(self, url: str, name: str) -> Optional[Cookie]:
        raise NotImplementedError

    def set(self, url: str, cookie: Cookie) -> Cookie:
        raise NotImplementedError


def url_host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def domain_matches(host: str, domain: Optional[str]) -> bool:
    if not domain:
        return True
    domain = domain.lstrip(".").lower()
    return host == domain or host.endswith("." + domain)


class MemoryCookieJar(CookieJar):
    """Cookie jar kept in memory, keyed by (domain, name)"""

    def __init__(self):
        self._cookies: Dict[Tuple[str, str], Cookie] = {}
        self._lock = threading.Lock()
        self.fail_writes_with: Optional[str] = None

    def add(self, url: str, cookie: Cookie) -> Cookie:
        """Store a cookie without going through the write checks"""
        domain = (cookie.domain or url_host(url)).lstrip(".").lower()
        with self._lock:
            self._cookies[(domain, cookie.name)] = cookie
        return cookie

    def get(self, url: str, name: str) -> Optional[Cookie]:
        host = url_host(url)
        with self._lock:
            for (domain, cookie_name), cookie in self._cookies.items():
                if cookie_name == name and domain_matches(host, domain):
                    return cookie
        return None

    def set(self, url: str, cookie: Cookie) -> Cookie:
        if self.fail_writes_with:
            raise CookieWriteError(self.fail_writes_with)
        if cookie.domain and not domain_matches(url_host(url), cookie.domain):
            raise CookieWriteError(f"Cookie domain {cookie.domain} does not match {url}")
        logger.debug(f"Writing cookie {cookie.name} for {url}")
        return self.add(url, cookie)
