from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from datetime import datetime, timedelta

from link_tracker.api.schemas.schemas import LinkInfo, LinkResponse

# Ссылки, проверенные позже этого интервала, в обход не попадают
STALENESS = timedelta(minutes=5)


class LinkPaginator(ABC):
    """
    Одноразовый курсор по "устаревшим" ссылкам.
    Каждый вызов next_batch отдает следующие <= batch_size ссылок с id больше
    последнего отданного, по возрастанию id. Пустой батч означает конец обхода.
    """

    def __init__(self, batch_size: int, staleness: timedelta = STALENESS):
        self.batch_size = batch_size
        self.staleness = staleness
        self._last_link_id = 0
        self._exhausted = False

    @abstractmethod
    async def _fetch(self, after_link_id: int) -> list[LinkInfo]:
        pass

    async def next_batch(self) -> list[LinkInfo]:
        if self._exhausted:
            return []
        links = await self._fetch(self._last_link_id)
        if not links:
            self._exhausted = True
            return []
        self._last_link_id = links[-1].link_id
        return links

    def __aiter__(self) -> AsyncIterator[list[LinkInfo]]:
        return self._iter_batches()

    async def _iter_batches(self) -> AsyncIterator[list[LinkInfo]]:
        while batch := await self.next_batch():
            yield batch


class SubscriptionStore(ABC):
    """Хранилище пользователей, ссылок и подписок пользователей на ссылки"""

    @abstractmethod
    async def create_database(self, database_name: str) -> None:
        """Создает базу данных, если её нет"""

    @abstractmethod
    async def connect(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def register_user(self, user_id: int) -> None:
        """Идемпотентная регистрация пользователя"""

    @abstractmethod
    async def user_exists(self, user_id: int) -> bool:
        pass

    @abstractmethod
    async def delete_user(self, user_id: int) -> None:
        """Удаляет все подписки пользователя и его самого в одной транзакции"""

    @abstractmethod
    async def track_link(
        self,
        user_id: int,
        url: str,
        now: datetime,
        tags: Sequence[str] = (),
        filters: Sequence[str] = (),
    ) -> int:
        """
        В одной транзакции добавляет ссылку (если её нет), пользователя (если его нет)
        и подписку. Возвращает id ссылки, LinkAlreadyTracked если подписка уже есть.
        """

    @abstractmethod
    async def untrack_link(self, user_id: int, url: str) -> int:
        """Удаляет подписку и возвращает id ссылки, LinkNotTracked если её не было"""

    @abstractmethod
    async def user_tracks_link(self, user_id: int, url: str) -> bool:
        pass

    @abstractmethod
    async def all_user_links(self, user_id: int) -> list[str]:
        pass

    @abstractmethod
    async def user_subscriptions(self, user_id: int) -> list[LinkResponse]:
        pass

    @abstractmethod
    async def users_tracking(self, link_id: int) -> list[int]:
        pass

    @abstractmethod
    async def touch_last_check(self, url: str, checked_at: datetime) -> None:
        """Сдвигает время последней проверки ссылки, но никогда не назад"""

    @abstractmethod
    def new_paginator(self) -> LinkPaginator:
        pass

    @abstractmethod
    async def sweep_orphan_links(self) -> int:
        """Удаляет ссылки, на которые никто не подписан, возвращает их количество"""
