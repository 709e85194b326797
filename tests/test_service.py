"""Behaviour of the mapping service against a real (SQLite) store."""

import asyncio

import pytest

from shortener.errors import ErrorKind, ShortenerError
from shortener.service import UrlShortener
from shortener.urls import parse_url

from conftest import SERVICE_BASE


async def _error_kind(coro) -> ErrorKind:
    with pytest.raises(ShortenerError) as exc_info:
        await coro
    return exc_info.value.kind


class TestCreate:
    @pytest.mark.asyncio
    async def test_bad_service_base(self, store_url) -> None:
        kind = await _error_kind(UrlShortener.create(store_url, "not a base"))
        assert kind is ErrorKind.BAD_SERVICE_BASE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("store_url", ["not a url", "nosuchdialect://host/db", "sqlite:///sync-driver.db"])
    async def test_bad_store_url(self, store_url) -> None:
        kind = await _error_kind(UrlShortener.create(store_url, SERVICE_BASE))
        assert kind is ErrorKind.BAD_STORE_URL

    @pytest.mark.asyncio
    async def test_base_is_lowercased(self, make_shortener) -> None:
        shortener = await make_shortener(base="Example.COM:3000")
        assert shortener.base == "example.com:3000"


class TestAdd:
    @pytest.mark.asyncio
    async def test_returns_short_url_under_service_base(self, shortener) -> None:
        result = await shortener.add("http://foo.com/bar")
        assert result.value.startswith(f"http://{SERVICE_BASE}/")

    @pytest.mark.asyncio
    async def test_uses_request_scheme(self, shortener) -> None:
        first = await shortener.add("https://foo.com/bar")
        second = await shortener.add("http://foo.com/bar")
        assert first.value.startswith("https://")
        assert second.value == "http://" + first.value.removeprefix("https://")

    @pytest.mark.asyncio
    async def test_is_idempotent(self, shortener) -> None:
        first = await shortener.add("http://foo.com/bar")
        second = await shortener.add("http://foo.com/bar")
        assert first == second
        assert (await shortener.info("http://foo.com/bar")).count == 0

    @pytest.mark.asyncio
    async def test_case_of_base_does_not_matter(self, shortener) -> None:
        first = await shortener.add("http://FOO.com/bar")
        second = await shortener.add("http://foo.COM/bar")
        assert first == second

    @pytest.mark.asyncio
    async def test_distinct_urls_get_distinct_keys(self, shortener) -> None:
        urls = [f"http://foo.com/page/{i}" for i in range(25)]
        values = {(await shortener.add(url)).value for url in urls}
        assert len(values) == len(urls)

    @pytest.mark.asyncio
    async def test_rest_case_is_significant(self, shortener) -> None:
        lower = await shortener.add("http://foo.com/bar")
        upper = await shortener.add("http://foo.com/BAR")
        assert lower != upper

    @pytest.mark.asyncio
    async def test_own_domain_rejected(self, shortener) -> None:
        kind = await _error_kind(shortener.add(f"http://{SERVICE_BASE}/x"))
        assert kind is ErrorKind.DOMAIN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["foo.com/bar", "ftp://foo.com/bar", "http://bad_domain/x"])
    async def test_syntax_errors(self, shortener, url) -> None:
        assert await _error_kind(shortener.add(url)) is ErrorKind.URL_SYNTAX

    @pytest.mark.asyncio
    async def test_very_long_url(self, shortener) -> None:
        url = "http://foo.com/" + "x" * 4000
        first = await shortener.add(url)
        assert await shortener.add(url) == first
        assert (await shortener.info(url)).long_url == url.removeprefix("http://")
        assert (await shortener.query(first.value)).value == url


class TestQuery:
    @pytest.mark.asyncio
    async def test_round_trip(self, shortener) -> None:
        for url in ["http://foo.com/bar", "https://Foo.com:8443/A/b?c=D#e", "http://foo.com"]:
            short = (await shortener.add(url)).value
            resolved = (await shortener.query(short)).value
            assert parse_url(resolved) == parse_url(url)

    @pytest.mark.asyncio
    async def test_counts_resolutions(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        for _ in range(3):
            await shortener.query(short)
        assert (await shortener.info(short)).count == 3

    @pytest.mark.asyncio
    async def test_concurrent_queries_are_all_counted(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        other = (await shortener.add("http://foo.com/other")).value
        await asyncio.gather(*[shortener.query(short) for _ in range(10)], shortener.query(other))
        assert (await shortener.info(short)).count == 10
        assert (await shortener.info(other)).count == 1

    @pytest.mark.asyncio
    async def test_foreign_domain_rejected(self, shortener) -> None:
        kind = await _error_kind(shortener.query("http://foo.com/abc"))
        assert kind is ErrorKind.DOMAIN

    @pytest.mark.asyncio
    async def test_unknown_key(self, shortener) -> None:
        kind = await _error_kind(shortener.query(f"http://{SERVICE_BASE}/nope"))
        assert kind is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_scheme_filter(self, shortener) -> None:
        kind = await _error_kind(shortener.query(f"ftp://{SERVICE_BASE}/abc"))
        assert kind is ErrorKind.URL_SYNTAX


class TestInfo:
    @pytest.mark.asyncio
    async def test_by_long_and_short_url(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        by_long = await shortener.info("http://foo.com/bar")
        by_short = await shortener.info(short)
        assert by_long == by_short
        assert by_long.long_url == "foo.com/bar"
        assert by_long.short_url == short.removeprefix("http://")
        assert by_long.is_active is True

    @pytest.mark.asyncio
    async def test_any_scheme_is_accepted(self, shortener) -> None:
        await shortener.add("http://foo.com/bar")
        assert (await shortener.info("ftp://foo.com/bar")).long_url == "foo.com/bar"

    @pytest.mark.asyncio
    async def test_unknown_url(self, shortener) -> None:
        assert await _error_kind(shortener.info("http://foo.com/never")) is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_syntax_error(self, shortener) -> None:
        assert await _error_kind(shortener.info("nonsense")) is ErrorKind.URL_SYNTAX

    @pytest.mark.asyncio
    async def test_json_aliases(self, shortener) -> None:
        await shortener.add("http://foo.com/bar")
        dumped = (await shortener.info("http://foo.com/bar")).model_dump(by_alias=True)
        assert set(dumped) == {"longUrl", "shortUrl", "count", "isActive"}


class TestDeactivate:
    @pytest.mark.asyncio
    async def test_hides_from_query_but_not_info(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        assert await shortener.deactivate("http://foo.com/bar") == {}
        assert await _error_kind(shortener.query(short)) is ErrorKind.NOT_FOUND
        assert (await shortener.info("http://foo.com/bar")).is_active is False

    @pytest.mark.asyncio
    async def test_by_short_url_and_idempotent(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        assert await shortener.deactivate(short) == {}
        assert await shortener.deactivate(short) == {}
        assert (await shortener.info(short)).is_active is False

    @pytest.mark.asyncio
    async def test_unknown_url(self, shortener) -> None:
        assert await _error_kind(shortener.deactivate("http://foo.com/never")) is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_reactivation_keeps_key_and_count(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        await shortener.query(short)
        await shortener.query(short)
        await shortener.deactivate(short)

        again = (await shortener.add("http://foo.com/bar")).value

        assert again == short
        info = await shortener.info(short)
        assert info.is_active is True
        assert info.count == 2
        assert (await shortener.query(short)).value == "http://foo.com/bar"


class TestClear:
    @pytest.mark.asyncio
    async def test_removes_everything(self, shortener) -> None:
        short = (await shortener.add("http://foo.com/bar")).value
        assert await shortener.clear() == {}
        assert await _error_kind(shortener.info("http://foo.com/bar")) is ErrorKind.NOT_FOUND
        assert await _error_kind(shortener.query(short)) is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_example_scenario(make_shortener) -> None:
    shortener = await make_shortener(base="example.com:3000")

    short = (await shortener.add("http://foo.com/bar")).value
    assert short.startswith("http://example.com:3000/")

    assert (await shortener.query(short)).value == "http://foo.com/bar"
    assert (await shortener.info(short)).count == 1

    assert await shortener.deactivate("http://foo.com/bar") == {}
    assert await _error_kind(shortener.query(short)) is ErrorKind.NOT_FOUND

    assert await _error_kind(shortener.add("http://example.com:3000/x")) is ErrorKind.DOMAIN
