import asyncio
from collections.abc import Sequence
from datetime import datetime

from link_tracker.api.notification_api.notification_service import NotificationService
from link_tracker.api.schemas.schemas import LinkInfo
from link_tracker.api.utils.string_makers import REPORT_TZ
from link_tracker.database.base import SubscriptionStore
from link_tracker.errors import SourceUnavailable, StoreFailure, TransportFailed, UnsupportedLink
from link_tracker.logger.logger_init import logger
from link_tracker.scrapper.adapters.base import SiteAdapter

WORKERS_NUM = 4


def check_time() -> datetime:
    """Текущее время с точностью до секунды"""
    return datetime.now(REPORT_TZ).replace(microsecond=0)


class ScrapService:
    """
    Периодический обход ссылок: берет пачки давно не проверенных ссылок,
    спрашивает у клиентов сайтов новые события и рассылает уведомления
    """

    def __init__(
        self,
        store: SubscriptionStore,
        notifier: NotificationService,
        adapters: Sequence[SiteAdapter],
        workers_num: int = WORKERS_NUM,
    ):
        self.store = store
        self.notifier = notifier
        self.adapters = list(adapters)
        self.workers_num = workers_num
        self._tick_lock = asyncio.Lock()

    async def check_links_updates(self) -> bool:
        """
        Один тик обхода. Если предыдущий тик еще идет, новый пропускается
        :return: был ли тик выполнен
        """
        if self._tick_lock.locked():
            logger.warning("Предыдущая проверка ссылок еще не закончилась, тик пропущен")
            return False

        async with self._tick_lock:
            started = check_time()
            checked = 0
            paginator = self.store.new_paginator()
            try:
                async for batch in paginator:
                    await self._process_batch(batch)
                    checked += len(batch)
            except StoreFailure as exc:
                logger.error(f"Ошибка при получении пачки ссылок: {exc}")

            try:
                swept = await self.store.sweep_orphan_links()
                if swept:
                    logger.info(f"Удалено {swept} ссылок без подписчиков")
            except StoreFailure as exc:
                logger.error(f"Ошибка при удалении ссылок без подписчиков: {exc}")

            logger.info(f"Проверка ссылок начатая в {started} завершена, проверено ссылок: {checked}")
            return True

    async def _process_batch(self, batch: list[LinkInfo]):
        semaphore = asyncio.Semaphore(self.workers_num)

        async def worker(link: LinkInfo):
            async with semaphore:
                await self.process_link(link)

        await asyncio.gather(*(worker(link) for link in batch))

    async def process_link(self, link: LinkInfo):
        """
        Обработка одной ссылки. Любая ошибка затрагивает только эту ссылку,
        тик продолжается со следующими
        :param link:
        :return:
        """
        try:
            await self._check_link(link)
        except Exception:
            logger.exception(f"Непредвиденная ошибка при проверке ссылки {link.url}")

    async def _check_link(self, link: LinkInfo):
        """
        Первый клиент, который может отследить ссылку, отвечает за неё.
        Время проверки записывается до отправки уведомлений
        """
        for adapter in self.adapters:
            if not await adapter.can_track(link.url):
                continue

            now = check_time()
            try:
                updates = await adapter.updates_since(link.url, link.last_check)
            except (SourceUnavailable, UnsupportedLink) as exc:
                logger.error(f"При получении обновлений ссылки {link.url} произошла ошибка: {exc}")
                return

            try:
                await self.store.touch_last_check(link.url, now)
            except StoreFailure as exc:
                logger.error(f"Ошибка при изменении даты последней проверки ссылки {link.url}: {exc}")
                return

            if not updates:
                return

            logger.info(f"Произошло {len(updates)} обновлений по ссылке {link.url}")
            try:
                await self.notifier.send(link, updates)
            except (StoreFailure, TransportFailed) as exc:
                logger.error(f"Ошибка при отправке обновлений по ссылке {link.url}: {exc}")
            return

        logger.warning(f"Ни один клиент не может отследить ссылку {link.url}")
