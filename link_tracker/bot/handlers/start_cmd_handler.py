from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.lexicon.lexicon import LEXICON
from link_tracker.bot.states.states import Command
from link_tracker.errors import AlreadyRegistered, UserAlreadyRegistered
from link_tracker.logger.logger_init import logger


async def register_handler(deps: BotDeps, chat_id: int, text: str) -> None:
    """
    Обработчик начального состояния: ждет /start,
    отправляет приветствие и регистрирует чат в scrapper'е
    :param deps:
    :param chat_id:
    :param text:
    :return:
    """
    if text.strip() != Command.START:
        await deps.send(chat_id, LEXICON["need_start"])
        return

    try:
        deps.ctx_store.reg_user(chat_id)
    except AlreadyRegistered:
        logger.debug(f"Контекст диалога чата {chat_id} уже создан")

    await deps.send(chat_id, LEXICON["first_message"])

    try:
        await deps.scrapper.register_chat(chat_id)
    except UserAlreadyRegistered:
        logger.info(f"Чат {chat_id} уже зарегистрирован в scrapper'е")


async def start_cmd_handler(deps: BotDeps, chat_id: int) -> None:
    await deps.send(chat_id, LEXICON["first_message"])
