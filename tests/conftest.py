"""Shared pytest fixtures: a throwaway SQLite-backed shortener and an HTTP client."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.config import Settings
from shortener.keygen import KeyGenerator, generate_short_key
from shortener.main import app
from shortener.service import UrlShortener

SERVICE_BASE = "example.com:3000"
HTTP_BASE = "localhost:8080"


class SequenceKeys:
    """Deterministic key generator returning the given tokens in order."""

    def __init__(self, *tokens: str) -> None:
        self._tokens = iter(tokens)
        self.calls = 0

    def __call__(self, service_base: str) -> str:
        self.calls += 1
        return f"{service_base}/{next(self._tokens)}"


@pytest.fixture
def store_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'mappings.db'}"


@pytest_asyncio.fixture
async def make_shortener(store_url: str) -> AsyncGenerator[Callable, None]:
    created: list[UrlShortener] = []

    async def factory(
        base: str = SERVICE_BASE,
        key_generator: KeyGenerator = generate_short_key,
        cache=None,
    ) -> UrlShortener:
        shortener = await UrlShortener.create(store_url, base, cache=cache, key_generator=key_generator)
        created.append(shortener)
        return shortener

    yield factory

    for shortener in created:
        await shortener.close()


@pytest_asyncio.fixture
async def shortener(make_shortener) -> UrlShortener:
    return await make_shortener()


@pytest_asyncio.fixture
async def client(make_shortener) -> AsyncGenerator[AsyncClient, None]:
    app.state.settings = Settings(SHORTENER_DOMAIN="localhost", PORT=8080)
    app.state.shortener = await make_shortener(base=HTTP_BASE)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=f"http://{HTTP_BASE}") as ac:
        yield ac

    app.state.shortener = None
