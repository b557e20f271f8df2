import asyncio
import sys
from collections.abc import Generator, Sequence
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import docker
import pytest
from docker.errors import DockerException

from link_tracker.api.clients.scrapper_client import ScrapperClient
from link_tracker.api.clients.telegram_client import TelegramBotClient
from link_tracker.api.schemas.schemas import LinkInfo, LinkResponse, UpdateRecord
from link_tracker.api.utils.string_makers import REPORT_TZ
from link_tracker.bot.context_storage import ContextStorage
from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.database.base import STALENESS, LinkPaginator, SubscriptionStore
from link_tracker.database.run_migrations import run_migrations
from link_tracker.database.transactor import Transactor
from link_tracker.errors import LinkAlreadyTracked, LinkNotTracked, SourceUnavailable

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


CHAT_ID = 123456789


def docker_available() -> bool:
    try:
        client = docker.from_env()
        client.ping()
    except DockerException:
        return False
    return True


class InMemoryPaginator(LinkPaginator):
    def __init__(self, store: "InMemoryStore", batch_size: int, staleness: timedelta = STALENESS):
        super().__init__(batch_size, staleness)
        self._store = store

    async def _fetch(self, after_link_id: int) -> list[LinkInfo]:
        now = datetime.now(REPORT_TZ)
        links = sorted(self._store.links.values(), key=lambda link: link.link_id)
        stale = [
            link for link in links if link.link_id > after_link_id and now - link.last_check > self.staleness
        ]
        return stale[: self.batch_size]


class InMemoryStore(SubscriptionStore):
    """Хранилище подписок в памяти для тестов API и сервисов"""

    def __init__(self, batch_size: int = 500):
        self.batch_size = batch_size
        self.users: set[int] = set()
        self.links: dict[str, LinkInfo] = {}
        self.subs: dict[tuple[int, int], LinkResponse] = {}
        self._next_id = 1

    async def create_database(self, database_name: str) -> None:
        pass

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def register_user(self, user_id: int) -> None:
        self.users.add(user_id)

    async def user_exists(self, user_id: int) -> bool:
        return user_id in self.users

    async def delete_user(self, user_id: int) -> None:
        for key in [key for key in self.subs if key[0] == user_id]:
            del self.subs[key]
        self.users.discard(user_id)

    async def track_link(
        self,
        user_id: int,
        url: str,
        now: datetime,
        tags: Sequence[str] = (),
        filters: Sequence[str] = (),
    ) -> int:
        link = self.links.get(url)
        if link is None:
            link = LinkInfo(link_id=self._next_id, url=url, last_check=now)
            self._next_id += 1
            self.links[url] = link
        self.users.add(user_id)
        if (user_id, link.link_id) in self.subs:
            raise LinkAlreadyTracked(user_id, url)
        self.subs[(user_id, link.link_id)] = LinkResponse(
            id=link.link_id, url=url, tags=list(tags), filters=list(filters)
        )
        return link.link_id

    async def untrack_link(self, user_id: int, url: str) -> int:
        link = self.links.get(url)
        if link is None or (user_id, link.link_id) not in self.subs:
            raise LinkNotTracked(user_id, url)
        del self.subs[(user_id, link.link_id)]
        return link.link_id

    async def user_tracks_link(self, user_id: int, url: str) -> bool:
        link = self.links.get(url)
        return link is not None and (user_id, link.link_id) in self.subs

    async def all_user_links(self, user_id: int) -> list[str]:
        return [sub.url for sub in await self.user_subscriptions(user_id)]

    async def user_subscriptions(self, user_id: int) -> list[LinkResponse]:
        subs = [sub for (uid, _), sub in self.subs.items() if uid == user_id]
        return sorted(subs, key=lambda sub: sub.id)

    async def users_tracking(self, link_id: int) -> list[int]:
        return sorted(uid for uid, lid in self.subs if lid == link_id)

    async def touch_last_check(self, url: str, checked_at: datetime) -> None:
        link = self.links.get(url)
        if link is not None and checked_at > link.last_check:
            self.links[url] = link.model_copy(update={"last_check": checked_at})

    def new_paginator(self) -> InMemoryPaginator:
        return InMemoryPaginator(self, self.batch_size)

    async def sweep_orphan_links(self) -> int:
        tracked = {lid for _, lid in self.subs}
        orphans = [url for url, link in self.links.items() if link.link_id not in tracked]
        for url in orphans:
            del self.links[url]
        return len(orphans)


class InlineTransactor(Transactor):
    """Транзактор без БД: просто вызывает функцию"""

    def __init__(self):
        self.calls = 0

    async def _begin(self):
        self.calls += 1

    async def _commit(self, handle) -> None:
        pass

    async def _rollback(self, handle) -> None:
        pass

    async def _release(self, handle) -> None:
        pass


class StubAdapter:
    """Клиент сайта с заранее заданными ответами"""

    name = "stub"

    def __init__(self, prefix: str = "https://github.com/", updates: list[UpdateRecord] | None = None):
        self.prefix = prefix
        self.updates = updates or []
        self.fail = False
        self.calls: list[tuple[str, datetime]] = []

    async def can_track(self, url: str) -> bool:
        return url.startswith(self.prefix)

    async def updates_since(self, url: str, since: datetime) -> list[UpdateRecord]:
        self.calls.append((url, since))
        if self.fail:
            raise SourceUnavailable(self.name, "тестовая ошибка")
        return [upd for upd in self.updates if upd.created_at > since]

    async def close(self):
        pass


class RecordingTransport:
    def __init__(self):
        self.sent = []

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def send(self, update) -> None:
        self.sent.append(update)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def transactor() -> InlineTransactor:
    return InlineTransactor()


@pytest.fixture
def deps() -> BotDeps:
    return BotDeps(
        tg=AsyncMock(spec=TelegramBotClient),
        scrapper=AsyncMock(spec=ScrapperClient),
        ctx_store=ContextStorage(),
        cache=None,
    )


@pytest.fixture(scope="session")
def postgres_container() -> Generator[str, None, None]:
    if not docker_available():
        pytest.skip("Docker недоступен")
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16", driver=None) as postgres:
        url = postgres.get_connection_url()
        asyncio.run(run_migrations(url))
        yield url


@pytest.fixture(scope="session")
def redis_conn_url() -> Generator[str, None, None]:
    """
    Возвращает URL для подключения к Redis.
    """
    if not docker_available():
        pytest.skip("Docker недоступен")
    from testcontainers.redis import RedisContainer

    with RedisContainer() as rc:
        host = rc.get_container_host_ip()
        port = rc.get_exposed_port(6379)
        yield f"redis://{host}:{port}/0"


@pytest.fixture(scope="session")
def kafka_bootstrap() -> Generator[str, None, None]:
    if not docker_available():
        pytest.skip("Docker недоступен")
    from testcontainers.kafka import KafkaContainer

    with KafkaContainer() as kc:
        yield kc.get_bootstrap_server()


@pytest.fixture
def stub_adapter() -> StubAdapter:
    return StubAdapter()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
