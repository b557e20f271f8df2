from link_tracker.api.utils.string_makers import make_links_list
from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.lexicon.lexicon import LEXICON
from link_tracker.errors import ScrapperApiFailure


async def list_cmd_handler(deps: BotDeps, chat_id: int) -> None:
    """
    Показывает список отслеживаемых ссылок.
    Готовый текст берется из кэша, при промахе запрашивается у scrapper'а
    :param deps:
    :param chat_id:
    :return:
    """
    text = await deps.cache.get(chat_id) if deps.cache else None
    if text is None:
        try:
            links = await deps.scrapper.list_links(chat_id)
        except ScrapperApiFailure:
            await deps.send(chat_id, LEXICON["scrapper_error"])
            raise
        text = make_links_list(links)
        if deps.cache:
            await deps.cache.set(chat_id, text)

    await deps.send(chat_id, text or LEXICON["no_saved_links"])
