from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.lexicon.lexicon import LEXICON
from link_tracker.errors import LinkNotTracked, ScrapperApiFailure
from link_tracker.logger.logger_init import logger


async def untrack_cmd_handler(deps: BotDeps, chat_id: int) -> None:
    await deps.send(chat_id, LEXICON["untrack_link"])


async def remove_link_handler(deps: BotDeps, chat_id: int, text: str) -> None:
    """
    Удаляет ссылку из отслеживаемых
    :param deps:
    :param chat_id:
    :param text: ссылка, которую прислал пользователь
    :return:
    """
    url = text.strip()
    try:
        await deps.scrapper.remove_link(chat_id, url)
    except LinkNotTracked:
        await deps.send(chat_id, LEXICON["not_save_this_link"])
        return
    except ScrapperApiFailure:
        await deps.send(chat_id, LEXICON["scrapper_error"])
        raise

    if deps.cache:
        await deps.cache.invalidate(chat_id)
    logger.info(f"Чат {chat_id} перестал отслеживать ссылку {url}")
    await deps.send(chat_id, LEXICON["link_deleted"])
