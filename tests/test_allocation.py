"""Short-key allocation: collision handling with a deterministic generator."""

from unittest.mock import AsyncMock, patch

import pytest

from shortener.urls import parse_url

from conftest import SERVICE_BASE, SequenceKeys


@pytest.mark.asyncio
async def test_existing_key_is_skipped(make_shortener) -> None:
    keys = SequenceKeys("a", "a", "b")
    shortener = await make_shortener(key_generator=keys)

    first = await shortener.add("http://foo.com/one")
    second = await shortener.add("http://foo.com/two")

    assert first.value == f"http://{SERVICE_BASE}/a"
    assert second.value == f"http://{SERVICE_BASE}/b"
    assert keys.calls == 3


@pytest.mark.asyncio
async def test_re_add_does_not_draw_keys(make_shortener) -> None:
    keys = SequenceKeys("a")
    shortener = await make_shortener(key_generator=keys)

    await shortener.add("http://foo.com/one")
    await shortener.add("http://foo.com/one")

    assert keys.calls == 1


@pytest.mark.asyncio
async def test_deactivated_key_is_never_reissued(make_shortener) -> None:
    keys = SequenceKeys("a", "a", "a", "c")
    shortener = await make_shortener(key_generator=keys)

    await shortener.add("http://foo.com/one")
    await shortener.deactivate("http://foo.com/one")
    second = await shortener.add("http://foo.com/two")

    assert second.value.endswith("/c")
    assert (await shortener.info(f"http://{SERVICE_BASE}/a")).long_url == "foo.com/one"


@pytest.mark.asyncio
async def test_insert_is_the_final_authority(make_shortener) -> None:
    """A key that passes the existence check but loses at insert is redrawn."""
    keys = SequenceKeys("a", "a", "b")
    shortener = await make_shortener(key_generator=keys)
    await shortener.add("http://foo.com/one")

    with patch.object(shortener._store, "short_key_exists", AsyncMock(return_value=False)):
        second = await shortener.add("http://foo.com/two")

    assert second.value == f"http://{SERVICE_BASE}/b"
    assert (await shortener.info("http://foo.com/one")).short_url == f"{SERVICE_BASE}/a"
    assert (await shortener.info("http://foo.com/two")).short_url == f"{SERVICE_BASE}/b"


@pytest.mark.asyncio
async def test_concurrent_add_of_same_long_url_is_adopted(make_shortener) -> None:
    keys = SequenceKeys("q")
    shortener = await make_shortener(key_generator=keys)
    # another writer stored the long URL between lookup and insert
    await shortener._store.insert_mapping(f"{SERVICE_BASE}/z", "foo.com/x")

    record = await shortener._allocate(parse_url("http://foo.com/x"))

    assert record.short_url == f"{SERVICE_BASE}/z"
    assert keys.calls == 1
    assert await shortener._store.find_info(f"{SERVICE_BASE}/q") is None
