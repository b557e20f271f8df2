import asyncio

from link_tracker.api.clients.telegram_client import TelegramBotClient
from link_tracker.api.schemas.schemas import LinkUpdate
from link_tracker.api.utils.string_makers import make_update_message
from link_tracker.logger.logger_init import logger


async def deliver_update(tg: TelegramBotClient, update: LinkUpdate) -> int:
    """
    Рассылает обновление всем подписанным чатам параллельно.
    Ошибка отправки в один чат не мешает остальным
    :param tg:
    :param update:
    :return: количество чатов, которым сообщение доставлено
    """
    text = make_update_message(update)
    results = await asyncio.gather(
        *(tg.send_message(chat_id, text) for chat_id in update.tg_chat_ids),
        return_exceptions=True,
    )

    delivered = 0
    for chat_id, result in zip(update.tg_chat_ids, results):
        if isinstance(result, BaseException):
            logger.error(f"Не удалось отправить обновление по ссылке {update.url} в чат {chat_id}: {result}")
        else:
            delivered += 1
    return delivered
