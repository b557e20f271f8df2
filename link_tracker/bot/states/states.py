from enum import Enum

from link_tracker.bot.state_machine import TEXT


class DialogState(Enum):
    INIT = "init"  # бот принимает только /start
    READY = "commands"  # любая команда
    AWAIT_REMOVE_URL = "remove"  # ждем ссылку для удаления
    AWAIT_ADD_URL = "link"  # ждем ссылку для отслеживания
    AWAIT_TAG = "tag"
    AWAIT_FILTER = "filter"


class Command:
    START = "/start"
    HELP = "/help"
    TRACK = "/track"
    UNTRACK = "/untrack"
    LIST = "/list"


COMMAND_TRANSITIONS = {
    Command.START: DialogState.READY,
    Command.HELP: DialogState.READY,
    Command.LIST: DialogState.READY,
    Command.TRACK: DialogState.AWAIT_ADD_URL,
    Command.UNTRACK: DialogState.AWAIT_REMOVE_URL,
}

DIALOG_TRANSITIONS = {
    DialogState.INIT: {Command.START: DialogState.READY},
    DialogState.READY: COMMAND_TRANSITIONS,
    DialogState.AWAIT_ADD_URL: {**COMMAND_TRANSITIONS, TEXT: DialogState.AWAIT_TAG},
    DialogState.AWAIT_TAG: {**COMMAND_TRANSITIONS, TEXT: DialogState.AWAIT_FILTER},
    DialogState.AWAIT_FILTER: {**COMMAND_TRANSITIONS, TEXT: DialogState.READY},
    DialogState.AWAIT_REMOVE_URL: {**COMMAND_TRANSITIONS, TEXT: DialogState.READY},
}
