"""Best-effort shortening of every URL found in a block of free text.

Each ``http(s)://`` run in the text is passed to ``UrlShortener.add``; every
occurrence of a URL that shortens is replaced. A URL that cannot be shortened
(bad syntax, already on the service's own domain, store failure) is left as
is and listed in ``TextScanResponse.failed``; it never fails the whole scan.
"""

import re

from shortener.errors import ShortenerError
from shortener.logging_config import get_logger
from shortener.schemas import TextScanResponse
from shortener.service import UrlShortener

__all__ = ["URL_IN_TEXT", "shorten_text"]

URL_IN_TEXT = re.compile(r"https?://[a-z0-9]+(?:[_\-/.?=&%#@+][a-z0-9]+)*", re.IGNORECASE)

logger = get_logger("text_scan")


async def shorten_text(shortener: UrlShortener, text: str) -> TextScanResponse:
    replacements: dict[str, str] = {}
    failed: list[str] = []

    for url in dict.fromkeys(match.group(0) for match in URL_IN_TEXT.finditer(text)):
        try:
            replacements[url] = (await shortener.add(url)).value
        except ShortenerError as exc:
            logger.debug(f"Left {url} unshortened: {exc.code}")
            failed.append(url)
        except Exception as exc:
            logger.warning(f"Left {url} unshortened after internal error: {exc}")
            failed.append(url)

    shortened = 0

    def _substitute(match: re.Match) -> str:
        nonlocal shortened
        url = match.group(0)
        if url not in replacements:
            return url
        shortened += 1
        return replacements[url]

    new_text = URL_IN_TEXT.sub(_substitute, text)
    return TextScanResponse(
        text=new_text,
        shortened=shortened,
        failed=failed,
    )
