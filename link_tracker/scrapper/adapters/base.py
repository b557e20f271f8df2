from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

import httpx

from link_tracker.api.schemas.schemas import UpdateRecord
from link_tracker.errors import SourceUnavailable

HTTP_TIMEOUT = 10.0


def split_url(url: str) -> tuple[str, str, list[str]] | None:
    """
    Разбирает ссылку на схему, хост без www. и части пути
    "/o/r" -> ["", "o", "r"]
    :param url:
    :return: None, если ссылку не удалось разобрать
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    host = parsed.netloc.lower().removeprefix("www.")
    return parsed.scheme, host, parsed.path.split("/")


class SiteAdapter(ABC):
    """
    Клиент одного сайта: проверяет, можно ли отслеживать ссылку,
    и возвращает события, созданные после заданного момента
    """

    name: str = ""

    def __init__(self, api_base: str, client: httpx.AsyncClient | None = None):
        self.api_base = api_base.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    async def close(self):
        await self._client.aclose()

    @abstractmethod
    def static_check(self, url: str) -> tuple[str, ...] | None:
        """Проверка ссылки без сети, возвращает нужные для запросов части пути"""

    @abstractmethod
    def probe_url(self, parts: tuple[str, ...]) -> str:
        pass

    @abstractmethod
    async def updates_since(self, url: str, since: datetime) -> list[UpdateRecord]:
        pass

    def headers(self) -> dict[str, str]:
        return {}

    async def can_track(self, url: str) -> bool:
        parts = self.static_check(url)
        if parts is None:
            return False
        try:
            resp = await self._client.get(self.probe_url(parts), headers=self.headers())
        except httpx.HTTPError:
            return False
        return resp.is_success

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET запрос к API сайта
        :param url:
        :param params:
        :return: распарсенный JSON
        """
        try:
            resp = await self._client.get(url, params=params, headers=self.headers())
        except httpx.HTTPError as exc:
            raise SourceUnavailable(self.name, f"ошибка сети при запросе {url}: {exc!r}") from exc

        if not resp.is_success:
            raise SourceUnavailable(
                self.name, f"не смогли получить состояние ссылки, код ответа сервера: {resp.status_code}"
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise SourceUnavailable(self.name, f"при парсинге ответа произошла ошибка: {exc}") from exc
