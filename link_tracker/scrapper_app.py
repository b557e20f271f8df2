import asyncio
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import aiocron
import uvicorn
from fastapi import FastAPI
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import Response

from link_tracker.api.notification_api.notification_service import NotificationService
from link_tracker.api.notification_api.transports import UpdateTransport, build_transport
from link_tracker.api.scrapper_api.scrapper_api import scrapper_api_router
from link_tracker.database.base import SubscriptionStore
from link_tracker.database.transactor import Transactor
from link_tracker.errors import StoreFailure
from link_tracker.initialization.database_init import build_store
from link_tracker.logger.logger_init import logger
from link_tracker.scrapper.adapters.base import SiteAdapter
from link_tracker.scrapper.adapters.github import GitHubAdapter
from link_tracker.scrapper.adapters.stackoverflow import StackOverflowAdapter
from link_tracker.scrapper.scrap_service import ScrapService
from link_tracker.settings import DatabaseSettings, KafkaSettings, ScrapperSettings


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> Response:
    logger.exception("Invalid request data: %s", exc)
    return await request_validation_exception_handler(request, exc)


async def store_failure_handler(request: Request, exc: StoreFailure) -> Response:
    """Ошибки хранилища наружу не отдаются: 500 и пустое тело"""
    logger.error(f"Обработка запроса {request.method} {request.url.path} закончилась ошибкой БД: {exc}")
    return Response(status_code=500)


def create_scrapper_app(
    store: SubscriptionStore,
    transactor: Transactor,
    adapters: Sequence[SiteAdapter],
    lifespan=None,
) -> FastAPI:
    app = FastAPI(title="scrapper_app", lifespan=lifespan)
    app.state.store = store
    app.state.transactor = transactor
    app.state.adapters = list(adapters)

    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(StoreFailure)(store_failure_handler)
    app.include_router(router=scrapper_api_router)
    return app


def schedule_checks(scrap_service: ScrapService, cron_pattern: str) -> aiocron.Cron:
    """
    Создает крон-задачу проверки ссылок
    :param scrap_service:
    :param cron_pattern:
    :return:
    """

    async def check_links_updates():
        try:
            await scrap_service.check_links_updates()
        except Exception as e:
            logger.exception("Ошибка при проверке ссылок: %s", e)

    cron = aiocron.crontab(cron_pattern, func=check_links_updates, start=True)
    logger.info("Создана крон-задача проверки ссылок с расписанием: %s", cron_pattern)
    return cron


def build_app() -> FastAPI:
    settings = ScrapperSettings()
    store, transactor = build_store(DatabaseSettings())
    adapters: list[SiteAdapter] = [GitHubAdapter(settings.GIT_KEY), StackOverflowAdapter()]
    transport: UpdateTransport = build_transport(settings, KafkaSettings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await store.connect()
        await transport.start()
        scrap_service = ScrapService(store, NotificationService(store, transport), adapters)
        cron = schedule_checks(scrap_service, settings.CHECK_CRON)
        try:
            yield
        finally:
            cron.stop()
            await transport.stop()
            for adapter in adapters:
                await adapter.close()
            await store.close()

    return create_scrapper_app(store, transactor, adapters, lifespan)


if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

if __name__ == "__main__":
    scrapper_settings = ScrapperSettings()
    uvicorn.run(
        build_app(),
        host=scrapper_settings.SCRAPPER_HOST,
        port=scrapper_settings.SCRAPPER_PORT,
        log_level=scrapper_settings.LOGGING_LEVEL.lower(),
    )
