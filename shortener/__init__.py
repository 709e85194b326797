"""URL shortener: maps long URLs to short aliases under a configured domain."""

from shortener.errors import ErrorKind, ShortenerError
from shortener.service import UrlShortener

__all__ = ["ErrorKind", "ShortenerError", "UrlShortener"]
