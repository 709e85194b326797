"""Command-line entry point: ``url-shortener STORE_URL PORT [LONG_URL ...]``."""

import argparse
import sys

import uvicorn

from shortener.config import Settings
from shortener.logging_config import setup_logging
from shortener.main import create_app
from shortener.urls import authority_error


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port {value!r}") from None
    if not 0 < port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="url-shortener",
        description="Serve the URL shortener, optionally seeding it with long URLs.",
    )
    parser.add_argument("store_url", help="SQLAlchemy async URL of the mapping store")
    parser.add_argument("port", type=_port, help="Port to listen on; also part of the short-URL base")
    parser.add_argument("long_urls", nargs="*", metavar="LONG_URL", help="URLs to add after clearing the store")
    return parser


def build_settings(argv: list[str] | None = None) -> Settings:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings(DATABASE_URL=args.store_url, PORT=args.port, SEED_URLS=args.long_urls)
    error = authority_error(settings.service_base)
    if error:
        parser.error(f"bad SHORTENER_DOMAIN: {error}")
    return settings


def main(argv: list[str] | None = None) -> int:
    settings = build_settings(argv)
    setup_logging(settings.LOG_LEVEL)
    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
