from collections.abc import Sequence
from datetime import datetime

import pytz

from link_tracker.api.schemas.schemas import LinkUpdate, UpdateRecord

# Все даты в сообщениях пользователю показываются по UTC+3
REPORT_TZ = pytz.FixedOffset(180)
MAX_PREVIEW_BYTES = 200


def truncate_preview(text: str, max_bytes: int = MAX_PREVIEW_BYTES) -> str:
    """
    Обрезает текст до max_bytes байт в UTF-8, не разрывая многобайтовые символы
    :param text:
    :param max_bytes:
    :return:
    """
    encoded = text.strip().encode("utf-8")
    if len(encoded) <= max_bytes:
        return text.strip()
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def format_report_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(REPORT_TZ).strftime("%H:%M:%S %d-%m-%Y")


def make_description(update: UpdateRecord) -> str:
    """
    Создать описание обновления
    :param update:
    :return:
    """
    return (
        "Пришло новое уведомление 🔥\n\n"
        f"Событие: {update.kind}\n"
        f"Пользователь: {update.author}\n"
        f"Время создания: {format_report_time(update.created_at)}\n"
        f"Превью: {update.preview}"
    )


def make_links_list(urls: Sequence[str]) -> str:
    """Текст ответа на /list, пустая строка если ссылок нет"""
    if not urls:
        return ""
    text = "Список ваших ссылок🔗:\n\n"
    for num, url in enumerate(urls, start=1):
        text += f"{num}. {url}\n"
    return text


def make_update_message(update: LinkUpdate) -> str:
    return f"⚡ Есть обновления по ссылке {update.url}:\n{update.description}"
