from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.lexicon.lexicon import LEXICON


async def help_cmd_handler(deps: BotDeps, chat_id: int) -> None:
    """
    Показывает список доступных команд
    :param deps:
    :param chat_id:
    :return:
    """
    await deps.send(chat_id, LEXICON["help"])
