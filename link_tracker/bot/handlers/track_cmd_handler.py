from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.lexicon.lexicon import LEXICON
from link_tracker.errors import (
    DialogNotInitialized,
    LinkAlreadyTracked,
    ScrapperApiFailure,
    UnsupportedLink,
)
from link_tracker.logger.logger_init import logger

SKIP_MARK = "-"


def parse_words(text: str) -> list[str]:
    """
    Теги и фильтры вводятся через пробел или с новой строки,
    «-» означает что их нет
    :param text:
    :return:
    """
    words = text.split()
    if words == [SKIP_MARK]:
        return []
    return words


async def track_cmd_handler(deps: BotDeps, chat_id: int) -> None:
    """
    Начало диалога добавления ссылки, старый незаконченный диалог сбрасывается
    :param deps:
    :param chat_id:
    :return:
    """
    try:
        deps.ctx_store.reset(chat_id)
    except DialogNotInitialized:
        logger.debug(f"У чата {chat_id} нет контекста диалога")
    await deps.send(chat_id, LEXICON["track_link"])


async def add_url_handler(deps: BotDeps, chat_id: int, text: str) -> None:
    deps.ctx_store.set_url(chat_id, text.strip())
    await deps.send(chat_id, LEXICON["add_link_tag"])


async def add_tag_handler(deps: BotDeps, chat_id: int, text: str) -> None:
    deps.ctx_store.add_tags(chat_id, parse_words(text))
    await deps.send(chat_id, LEXICON["add_link_filter"])


async def save_link_handler(deps: BotDeps, chat_id: int, text: str) -> None:
    """
    Последний шаг диалога: сохраняет фильтр и отправляет ссылку в scrapper.
    Контекст диалога сбрасывается при любом исходе
    :param deps:
    :param chat_id:
    :param text:
    :return:
    """
    deps.ctx_store.add_filters(chat_id, parse_words(text))
    ctx = deps.ctx_store.get(chat_id)

    try:
        await deps.scrapper.add_link(chat_id, ctx.url or "", ctx.tags, ctx.filters)
    except UnsupportedLink:
        await deps.send(chat_id, LEXICON["wrong_link"])
        return
    except LinkAlreadyTracked:
        await deps.send(chat_id, LEXICON["already_tracked"])
        return
    except ScrapperApiFailure:
        await deps.send(chat_id, LEXICON["scrapper_error"])
        raise
    finally:
        deps.ctx_store.reset(chat_id)

    if deps.cache:
        await deps.cache.invalidate(chat_id)
    logger.info(f"Чат {chat_id} начал отслеживать ссылку {ctx.url}")
    await deps.send(chat_id, LEXICON["good_link"])
