"""Request-scoped dependencies for the HTTP layer.

The mapping service is created once in the application lifespan and stored
on ``app.state``; every request gets a lightweight ``RequestContext`` with a
request id and a logger adapter carrying that id.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, HTTPException, Request

from shortener.config import Settings
from shortener.logging_config import get_logger
from shortener.service import UrlShortener


@dataclass
class RequestContext:
    """Per-request tracking information.

    Attributes:
        shortener: Shared mapping service
        settings: Application settings
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    shortener: UrlShortener
    settings: Settings
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(
            get_logger("http"),
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_shortener(request: Request) -> UrlShortener:
    shortener = getattr(request.app.state, "shortener", None)
    if shortener is None:
        raise HTTPException(status_code=503, detail="Shortener is not ready")
    return shortener


async def get_request_context(
    request: Request,
    shortener: UrlShortener = Depends(get_shortener),
    settings: Settings = Depends(get_settings_from_app),
) -> RequestContext:
    return RequestContext(
        shortener=shortener,
        settings=settings,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )
