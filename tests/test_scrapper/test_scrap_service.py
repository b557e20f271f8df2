import asyncio
from datetime import datetime, timedelta

import httpx
import pytest

from link_tracker.api.notification_api.notification_service import NotificationService
from link_tracker.api.schemas.schemas import UpdateRecord
from link_tracker.api.utils.string_makers import REPORT_TZ
from link_tracker.errors import StoreFailure, TransportFailed
from link_tracker.scrapper.adapters.github import GitHubAdapter
from link_tracker.scrapper.scrap_service import ScrapService

URL = "https://github.com/owner/repo"


def record(created_at: datetime, kind: str = "issue") -> UpdateRecord:
    return UpdateRecord(kind=kind, author="octocat", created_at=created_at, preview="text")


async def track_stale(store, user_id: int, url: str, age: timedelta = timedelta(hours=1)) -> datetime:
    """Подписка на ссылку, проверенную age назад"""
    checked = datetime.now(REPORT_TZ).replace(microsecond=0) - age
    await store.track_link(user_id, url, checked)
    return checked


@pytest.fixture
def service(store, transport, stub_adapter) -> ScrapService:
    return ScrapService(store, NotificationService(store, transport), [stub_adapter])


@pytest.mark.asyncio
async def test_new_updates_are_sent(service: ScrapService, store, transport, stub_adapter) -> None:
    """Тест: по каждому событию отправляется один LinkUpdate всем подписчикам"""
    checked = await track_stale(store, 1, URL)
    await store.track_link(2, URL, checked)
    stub_adapter.updates = [
        record(checked - timedelta(minutes=1)),
        record(checked + timedelta(minutes=1)),
        record(checked + timedelta(minutes=2), kind="pull request"),
    ]

    assert await service.check_links_updates()

    assert len(transport.sent) == 2
    assert all(upd.tg_chat_ids == [1, 2] for upd in transport.sent)
    assert "pull request" in transport.sent[1].description
    assert store.links[URL].last_check > checked


@pytest.mark.asyncio
async def test_fresh_links_are_skipped(service: ScrapService, store, stub_adapter) -> None:
    await store.track_link(1, URL, datetime.now(REPORT_TZ))

    await service.check_links_updates()

    assert stub_adapter.calls == []


@pytest.mark.asyncio
async def test_source_error_skips_link(service: ScrapService, store, transport, stub_adapter) -> None:
    """Тест: ошибка сайта не двигает время проверки и не останавливает тик"""
    checked = await track_stale(store, 1, URL)
    stub_adapter.fail = True

    assert await service.check_links_updates()

    assert transport.sent == []
    assert store.links[URL].last_check == checked


@pytest.mark.asyncio
async def test_unsupported_link_is_left_alone(service: ScrapService, store, stub_adapter) -> None:
    checked = await track_stale(store, 1, "https://example.com/page")

    await service.check_links_updates()

    assert stub_adapter.calls == []
    assert store.links["https://example.com/page"].last_check == checked


@pytest.mark.asyncio
async def test_transport_error_is_logged(service: ScrapService, store, transport, stub_adapter) -> None:
    checked = await track_stale(store, 1, URL)
    stub_adapter.updates = [record(checked + timedelta(minutes=1))]

    async def broken_send(update) -> None:
        raise TransportFailed("бот недоступен")

    transport.send = broken_send

    assert await service.check_links_updates()
    assert store.links[URL].last_check > checked


@pytest.mark.asyncio
async def test_orphan_links_are_swept(service: ScrapService, store) -> None:
    await track_stale(store, 1, URL)
    await store.untrack_link(1, URL)

    await service.check_links_updates()

    assert URL not in store.links


@pytest.mark.asyncio
async def test_batches_cover_all_links(store, transport, stub_adapter) -> None:
    """Тест: обход по пачкам проверяет все устаревшие ссылки ровно один раз"""
    store.batch_size = 2
    for num in range(5):
        await track_stale(store, 1, f"https://github.com/owner/repo{num}")
    service = ScrapService(store, NotificationService(store, transport), [stub_adapter], workers_num=2)

    await service.check_links_updates()

    assert sorted(url for url, _ in stub_adapter.calls) == [f"https://github.com/owner/repo{num}" for num in range(5)]


@pytest.mark.asyncio
async def test_overlapping_tick_is_skipped(service: ScrapService, store, stub_adapter) -> None:
    """Тест: пока идет тик, следующий пропускается"""
    await track_stale(store, 1, URL)
    release = asyncio.Event()
    original = stub_adapter.updates_since

    async def slow_updates(url, since):
        await release.wait()
        return await original(url, since)

    stub_adapter.updates_since = slow_updates

    first = asyncio.create_task(service.check_links_updates())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert await service.check_links_updates() is False

    release.set()
    assert await first is True


@pytest.mark.asyncio
async def test_paginator_failure_still_sweeps(service: ScrapService, store, monkeypatch) -> None:
    swept = []

    class BrokenPaginator:
        def __aiter__(self):
            return self

        async def __anext__(self):
            raise StoreFailure("нет соединения")

    async def sweep() -> int:
        swept.append(True)
        return 0

    monkeypatch.setattr(store, "new_paginator", lambda: BrokenPaginator())
    monkeypatch.setattr(store, "sweep_orphan_links", sweep)

    assert await service.check_links_updates()
    assert swept == [True]



@pytest.mark.asyncio
async def test_broken_github_item_does_not_stop_tick(store, transport) -> None:
    """
    Тест: битый ответ по одной ссылке не мешает проверить остальные
    и удалить ссылки без подписчиков
    """
    store.batch_size = 1
    broken_url, good_url, orphan_url = (f"https://github.com/owner/{name}" for name in ("broken", "good", "orphan"))
    await track_stale(store, 1, broken_url)
    checked = await track_stale(store, 1, good_url)
    await track_stale(store, 2, orphan_url)
    await store.untrack_link(2, orphan_url)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/repos/"):
            return httpx.Response(200, json=[])
        user = "ghost" if "owner/broken" in request.url.params["q"] else {"login": "octocat"}
        item = {"created_at": "2100-01-01T00:00:00Z", "title": "Bug", "user": user}
        return httpx.Response(200, json={"items": [item]})

    adapter = GitHubAdapter("", "https://api.github.test", httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    service = ScrapService(store, NotificationService(store, transport), [adapter])

    assert await service.check_links_updates()

    assert [upd.url for upd in transport.sent] == [good_url]
    assert store.links[good_url].last_check > checked
    assert orphan_url not in store.links


@pytest.mark.asyncio
async def test_unexpected_error_skips_only_link(service: ScrapService, store, transport, stub_adapter) -> None:
    store.batch_size = 1
    first_url, second_url = "https://github.com/owner/first", "https://github.com/owner/second"
    await track_stale(store, 1, first_url)
    checked = await track_stale(store, 1, second_url)
    stub_adapter.updates = [record(checked + timedelta(minutes=1))]
    original = stub_adapter.updates_since

    async def flaky_updates(url, since):
        if url == first_url:
            raise AttributeError("'str' object has no attribute 'get'")
        return await original(url, since)

    stub_adapter.updates_since = flaky_updates

    assert await service.check_links_updates()

    assert [upd.url for upd in transport.sent] == [second_url]
    assert store.links[second_url].last_check > checked
