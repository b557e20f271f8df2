from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from link_tracker.bot.cache import LinksCache, cache_key
from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.handlers.list_cmd_handler import list_cmd_handler
from link_tracker.bot.handlers.untrack_cmd_handler import remove_link_handler


@pytest_asyncio.fixture
async def links_cache(redis_conn_url: str) -> AsyncGenerator[LinksCache, None]:
    cache = LinksCache.from_url(redis_conn_url)
    yield cache
    await cache._client.flushall()
    await cache.close()


def test_cache_key() -> None:
    assert cache_key(42) == "links:42"


@pytest.mark.asyncio
async def test_set_get_invalidate(links_cache: LinksCache) -> None:
    assert await links_cache.get(42) is None
    await links_cache.set(42, "список")
    assert await links_cache.get(42) == "список"
    await links_cache.invalidate(42)
    assert await links_cache.get(42) is None


@pytest.mark.asyncio
async def test_cache_hit_and_invalidate(links_cache: LinksCache, deps: BotDeps) -> None:
    """
    Кэш отдаёт данные,
    после удаления ссылки кэш инвалидируется
    """
    deps.cache = links_cache
    deps.scrapper.list_links.return_value = ["https://github.com/a/b"]

    await list_cmd_handler(deps, 42)
    await list_cmd_handler(deps, 42)
    deps.scrapper.list_links.assert_awaited_once_with(42)

    await remove_link_handler(deps, 42, "https://github.com/a/b")
    assert await links_cache.get(42) is None


@pytest.mark.asyncio
async def test_redis_errors_are_cache_miss() -> None:
    """Тест: недоступный redis считается промахом кэша"""
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("нет соединения")
    client.set.side_effect = RedisConnectionError("нет соединения")
    client.delete.side_effect = RedisConnectionError("нет соединения")
    cache = LinksCache(client)

    assert await cache.get(1) is None
    await cache.set(1, "text")
    await cache.invalidate(1)
