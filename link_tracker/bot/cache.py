import redis.asyncio as redis
from redis.exceptions import RedisError

from link_tracker.logger.logger_init import logger


def cache_key(chat_id: int) -> str:
    return f"links:{chat_id}"


class LinksCache:
    """
    Кэш готового текста ответа на /list.
    Ошибки redis логируются и считаются промахом кэша
    """

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "LinksCache":
        return cls(redis.from_url(redis_url, decode_responses=True))

    async def close(self):
        await self._client.aclose()

    async def get(self, chat_id: int) -> str | None:
        try:
            cached_value = await self._client.get(cache_key(chat_id))
        except (RedisError, OSError) as e:
            logger.error(f"Не удалось получить список ссылок из кэша: {e}")
            return None
        if cached_value is not None:
            logger.debug("Данные для /list найдены в кэше.")
        return cached_value  # type: ignore[no-any-return]

    async def set(self, chat_id: int, links_text: str) -> None:
        try:
            await self._client.set(cache_key(chat_id), links_text)
        except (RedisError, OSError) as e:
            logger.error(f"Ошибка при кэшировании ссылок пользователя {chat_id}: {e}")

    async def invalidate(self, chat_id: int) -> None:
        try:
            await self._client.delete(cache_key(chat_id))
        except (RedisError, OSError) as e:
            logger.error(f"Ошибка инвалидации кэша пользователя {chat_id}: {e}")
