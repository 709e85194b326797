"""URL decomposition and authority validation.

Layout of a parsed URL
======================
::
    HTTP://Foo.COM:8080/Some/Path?q=1#frag
    └┬─┘   └────┬─────┘└───────┬────────┘
   scheme     base            rest
  (lower)   (lower)     (case preserved)

How to Use
===========
**Parse and restrict to web schemes**::
    components = parse_url("https://foo.com/bar", WEB_SCHEMES)
    components.key  # "foo.com/bar"

**Validate an authority on its own**::
    authority_error("localhost:8080")  # None
    authority_error("bad_host")        # "invalid domain ..."

Key Behaviours
===============
- The whole input must look like ``<scheme>://<authority><rest>``.
- The authority is everything up to the first ``/``.
- Hosts may be ``localhost``, an IPv4 address or a domain name.
- Parsing is pure; every failure is a ``URL_SYNTAX`` ShortenerError.
"""

import re
from collections.abc import Collection
from dataclasses import dataclass

import validators

from shortener.errors import ErrorKind, ShortenerError

__all__ = ["UrlComponents", "WEB_SCHEMES", "authority_error", "parse_url"]

URL_PATTERN = re.compile(r"(\w+)://([^/]+)(.*)")
WEB_SCHEMES = ("http", "https")
MAX_PORT = 65535
PORT_PATTERN = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class UrlComponents:
    scheme: str
    base: str
    rest: str

    @property
    def key(self) -> str:
        """Scheme-less form used as the store key."""
        return f"{self.base}{self.rest}"

    def to_url(self) -> str:
        return f"{self.scheme}://{self.key}"


def authority_error(authority: str) -> str | None:
    """Return a message describing why ``authority`` is not ``host[:port]``, or None."""
    if not authority:
        return "empty domain"
    host, sep, port = authority.rpartition(":")
    if not sep:
        host, port = authority, None
    elif not PORT_PATTERN.fullmatch(port) or not 0 < int(port) <= MAX_PORT:
        return f"invalid port \"{port}\" in \"{authority}\""
    host = host.lower()
    if host == "localhost" or validators.ipv4(host) or validators.domain(host):
        return None
    return f"invalid domain \"{host}\""


def parse_url(url: str, schemes: Collection[str] | None = None) -> UrlComponents:
    """Split ``url`` into scheme, base and rest.

    Args:
        url: Absolute URL to decompose.
        schemes: Optional lowercase scheme whitelist, e.g. ``WEB_SCHEMES``.

    Raises:
        ShortenerError: ``URL_SYNTAX`` when the input is malformed, its
            authority is invalid or its scheme is not allowed.
    """
    match = URL_PATTERN.fullmatch(url) if isinstance(url, str) else None
    if match is None:
        raise ShortenerError(ErrorKind.URL_SYNTAX, f"bad URL {url}")
    scheme, base, rest = match.groups()
    error = authority_error(base)
    if error:
        raise ShortenerError(ErrorKind.URL_SYNTAX, error)
    if schemes is not None and scheme.lower() not in schemes:
        raise ShortenerError(ErrorKind.URL_SYNTAX, f"invalid scheme \"{scheme}\"")
    return UrlComponents(scheme=scheme.lower(), base=base.lower(), rest=rest)
