"""Configuration, CLI parsing and application lifespan."""

import asyncio
import logging

import pytest

from shortener import cli
from shortener.config import Settings
from shortener.errors import ErrorKind, ShortenerError
from shortener.main import app, lifespan, periodic_clear


def test_service_base_from_settings() -> None:
    settings = Settings(SHORTENER_DOMAIN="short.example.com", PORT=3000)
    assert settings.service_base == "short.example.com:3000"


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("SHORTENER_CLEAR_TIME", "60")
    monkeypatch.setenv("SEED_URLS", '["http://foo.com/a"]')
    settings = Settings()
    assert settings.PORT == 9090
    assert settings.SHORTENER_CLEAR_TIME == 60
    assert settings.SEED_URLS == ["http://foo.com/a"]


def test_cli_builds_settings() -> None:
    settings = cli.build_settings(["sqlite+aiosqlite:///s.db", "3000", "http://foo.com/a", "http://foo.com/b"])
    assert settings.DATABASE_URL == "sqlite+aiosqlite:///s.db"
    assert settings.PORT == 3000
    assert settings.SEED_URLS == ["http://foo.com/a", "http://foo.com/b"]


@pytest.mark.parametrize("argv", [[], ["sqlite+aiosqlite:///s.db"], ["sqlite+aiosqlite:///s.db", "port"], ["x", "70000"]])
def test_cli_usage_errors(argv) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.build_settings(argv)
    assert exc_info.value.code == 2


@pytest.mark.asyncio
async def test_periodic_clear(shortener) -> None:
    await shortener.add("http://foo.com/bar")
    task = asyncio.create_task(periodic_clear(shortener, 0.01, logging.getLogger("test")))
    await asyncio.sleep(0.1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with pytest.raises(ShortenerError) as exc_info:
        await shortener.info("http://foo.com/bar")
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
@pytest.mark.parametrize("interval", [0, -5])
async def test_periodic_clear_rejects_non_positive_interval(shortener, interval) -> None:
    with pytest.raises(ValueError, match="interval must be positive"):
        await periodic_clear(shortener, interval, logging.getLogger("test"))


@pytest.mark.asyncio
async def test_lifespan_seeds_and_closes(store_url) -> None:
    previous = app.state.settings
    app.state.settings = Settings(
        DATABASE_URL=store_url,
        SHORTENER_DOMAIN="localhost",
        PORT=8080,
        SEED_URLS=["http://foo.com/a"],
        SHORTENER_CLEAR_TIME=3600,
    )
    try:
        async with lifespan(app):
            shortener = app.state.shortener
            assert shortener.base == "localhost:8080"
            info = await shortener.info("http://foo.com/a")
            assert info.is_active and info.count == 0
        assert app.state.shortener is None
    finally:
        app.state.settings = previous


@pytest.mark.asyncio
async def test_lifespan_rejects_bad_store() -> None:
    previous = app.state.settings
    app.state.settings = Settings(DATABASE_URL="sqlite:///sync.db")
    try:
        with pytest.raises(ShortenerError) as exc_info:
            async with lifespan(app):
                pass
        assert exc_info.value.kind is ErrorKind.BAD_STORE_URL
    finally:
        app.state.settings = previous
