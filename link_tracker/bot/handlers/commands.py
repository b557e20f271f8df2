from collections.abc import Awaitable, Callable

from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.handlers.help_cmd_handler import help_cmd_handler
from link_tracker.bot.handlers.list_cmd_handler import list_cmd_handler
from link_tracker.bot.handlers.start_cmd_handler import start_cmd_handler
from link_tracker.bot.handlers.track_cmd_handler import track_cmd_handler
from link_tracker.bot.handlers.unknown_cmd_handler import unknown_cmd_handler
from link_tracker.bot.handlers.untrack_cmd_handler import untrack_cmd_handler
from link_tracker.bot.states.states import Command
from link_tracker.errors import CommandNotFound

CommandHandler = Callable[[BotDeps, int], Awaitable[None]]
TextHandler = Callable[[BotDeps, int, str], Awaitable[None]]

COMMAND_HANDLERS: dict[str, CommandHandler] = {
    Command.START: start_cmd_handler,
    Command.HELP: help_cmd_handler,
    Command.TRACK: track_cmd_handler,
    Command.UNTRACK: untrack_cmd_handler,
    Command.LIST: list_cmd_handler,
}


async def run_command(deps: BotDeps, chat_id: int, text: str) -> None:
    """
    Выполняет команду, CommandNotFound если текст не команда
    :param deps:
    :param chat_id:
    :param text:
    :return:
    """
    handler = COMMAND_HANDLERS.get(text.strip())
    if handler is None:
        raise CommandNotFound(text)
    await handler(deps, chat_id)


async def commands_handler(deps: BotDeps, chat_id: int, text: str) -> None:
    try:
        await run_command(deps, chat_id, text)
    except CommandNotFound:
        await unknown_cmd_handler(deps, chat_id)


def with_commands(handler: TextHandler) -> TextHandler:
    """
    Обработчик состояния диалога: сначала пробуем выполнить команду,
    свободный текст передается в handler
    :param handler:
    :return:
    """

    async def wrapper(deps: BotDeps, chat_id: int, text: str) -> None:
        try:
            await run_command(deps, chat_id, text)
        except CommandNotFound:
            await handler(deps, chat_id, text)

    return wrapper
