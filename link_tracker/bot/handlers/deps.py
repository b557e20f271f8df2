from dataclasses import dataclass

from link_tracker.api.clients.scrapper_client import ScrapperClient
from link_tracker.api.clients.telegram_client import TelegramBotClient
from link_tracker.bot.cache import LinksCache
from link_tracker.bot.context_storage import ContextStorage


@dataclass
class BotDeps:
    """Все, что нужно обработчикам сообщений"""

    tg: TelegramBotClient
    scrapper: ScrapperClient
    ctx_store: ContextStorage
    cache: LinksCache | None = None

    async def send(self, chat_id: int, text: str) -> None:
        await self.tg.send_message(chat_id, text)
