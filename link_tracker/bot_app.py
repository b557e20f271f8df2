import asyncio
import signal
import sys
from collections.abc import AsyncIterator, Iterator
from contextlib import AsyncExitStack, asynccontextmanager, contextmanager

import uvicorn
from fastapi import FastAPI
from starlette.middleware.gzip import GZipMiddleware

from link_tracker.api.bot_api.http_bot_api import bot_api_router
from link_tracker.api.bot_api.kafka_consumer import consume_messages
from link_tracker.api.clients.scrapper_client import ScrapperClient
from link_tracker.api.clients.telegram_client import TelegramBotClient
from link_tracker.bot.bot_service import BotService
from link_tracker.bot.cache import LinksCache
from link_tracker.bot.context_storage import ContextStorage
from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.errors import ChatApiFailure
from link_tracker.logger.logger_init import logger
from link_tracker.settings import BotSettings, KafkaSettings, RedisSettings

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


def build_deps(settings: BotSettings, redis_settings: RedisSettings) -> BotDeps:
    redis_url = redis_settings.redis_url
    if redis_url is None:
        logger.info("REDIS_ADDR не задан, бот работает без кэша")
    return BotDeps(
        tg=TelegramBotClient(settings.BOT_TOKEN),
        scrapper=ScrapperClient(settings.scrapper_url),
        ctx_store=ContextStorage(),
        cache=LinksCache.from_url(redis_url) if redis_url else None,
    )


async def close_deps(deps: BotDeps) -> None:
    await deps.tg.close()
    await deps.scrapper.close()
    if deps.cache:
        await deps.cache.close()


@asynccontextmanager
async def bot_polling(bot: BotService) -> AsyncIterator[asyncio.Event]:
    """
    Запускает опрос Telegram отдельной задачей
    и останавливает её при выходе из контекста
    :param bot:
    :return: событие остановки
    """
    try:
        await bot.set_commands()
    except ChatApiFailure as e:
        logger.error(f"Не удалось зарегистрировать команды бота: {e}")

    stop_event = asyncio.Event()
    task = asyncio.create_task(bot.run(stop_event))
    try:
        yield stop_event
    finally:
        stop_event.set()
        await task


STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def stop_on_signals(stop_event: asyncio.Event) -> Iterator[None]:
    """
    SIGINT и SIGTERM выставляют stop_event, задачи не отменяются:
    consumer дообрабатывает и коммитит текущую пачку
    """
    loop = asyncio.get_running_loop()
    installed = []
    for sig in STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # windows
            continue
        installed.append(sig)
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)


def create_bot_app(tg_client: TelegramBotClient, lifespan=None) -> FastAPI:
    app = FastAPI(title="bot_app", lifespan=lifespan)
    app.state.tg_client = tg_client
    app.include_router(router=bot_api_router)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    return app


def build_http_app(settings: BotSettings, deps: BotDeps) -> FastAPI:
    bot = BotService(deps, settings.BOT_POLL_LIMIT, settings.BOT_POLL_PERIOD)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            stack.push_async_callback(close_deps, deps)
            await stack.enter_async_context(bot_polling(bot))
            yield

    return create_bot_app(deps.tg, lifespan)


def run_http_bot(settings: BotSettings, deps: BotDeps) -> None:
    uvicorn.run(
        build_http_app(settings, deps),
        host=settings.BOT_HOST,
        port=settings.BOT_PORT,
        log_level=settings.LOGGING_LEVEL.lower(),
    )


async def run_kafka_bot(settings: BotSettings, kafka_settings: KafkaSettings, deps: BotDeps) -> None:
    bot = BotService(deps, settings.BOT_POLL_LIMIT, settings.BOT_POLL_PERIOD)
    consumer_stop = asyncio.Event()
    async with AsyncExitStack() as stack:
        stack.push_async_callback(close_deps, deps)
        await stack.enter_async_context(bot_polling(bot))
        stack.enter_context(stop_on_signals(consumer_stop))
        try:
            await consume_messages(
                deps.tg,
                consumer_stop,
                kafka_settings.brokers,
                kafka_settings.UPDATE_TOPIC,
                kafka_settings.DEAD_LETTER_TOPIC,
                kafka_settings.KAFKA_GROUP_ID,
            )
        except Exception as exc:
            logger.exception("Main loop raised error.", extra={"exc": exc})
            raise


if __name__ == "__main__":
    """По типу доставки сообщений запускаем сервер (http) или consumer (kafka)"""

    bot_settings = BotSettings()
    bot_deps = build_deps(bot_settings, RedisSettings())
    transport = bot_settings.UPDATES_TRANSPORT.lower()
    match transport:
        case "http":
            run_http_bot(bot_settings, bot_deps)
        case "bus" | "kafka":
            try:
                asyncio.run(run_kafka_bot(bot_settings, KafkaSettings(), bot_deps))
            except KeyboardInterrupt:
                logger.info("Бот остановлен")
        case _:
            raise ValueError(f"Unknown UPDATES_TRANSPORT: {bot_settings.UPDATES_TRANSPORT}")
