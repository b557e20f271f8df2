import asyncio

from link_tracker.api.schemas.schemas import TgUpdate
from link_tracker.bot.handlers.commands import TextHandler, commands_handler, with_commands
from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.handlers.start_cmd_handler import register_handler
from link_tracker.bot.handlers.track_cmd_handler import add_tag_handler, add_url_handler, save_link_handler
from link_tracker.bot.handlers.untrack_cmd_handler import remove_link_handler
from link_tracker.bot.lexicon.lexicon import COMMANDS
from link_tracker.bot.state_machine import StateMachine
from link_tracker.bot.states.states import DIALOG_TRANSITIONS, DialogState
from link_tracker.errors import ChatApiFailure, EventDeclined
from link_tracker.logger.logger_init import logger

POLL_LIMIT = 100
POLL_PERIOD = 5.0

STATE_HANDLERS: dict[DialogState, TextHandler] = {
    DialogState.INIT: register_handler,
    DialogState.READY: commands_handler,
    DialogState.AWAIT_ADD_URL: with_commands(add_url_handler),
    DialogState.AWAIT_TAG: with_commands(add_tag_handler),
    DialogState.AWAIT_FILTER: with_commands(save_link_handler),
    DialogState.AWAIT_REMOVE_URL: with_commands(remove_link_handler),
}


class BotService:
    """
    Опрашивает Telegram и ведет диалог с каждым чатом
    по таблице состояний DIALOG_TRANSITIONS
    """

    def __init__(
        self,
        deps: BotDeps,
        poll_limit: int = POLL_LIMIT,
        poll_period: float = POLL_PERIOD,
        handlers: dict[DialogState, TextHandler] | None = None,
    ):
        self.deps = deps
        self.poll_limit = poll_limit
        self.poll_period = poll_period
        self.handlers = handlers or STATE_HANDLERS
        self.machine: StateMachine[DialogState] = StateMachine(DialogState.INIT, DIALOG_TRANSITIONS)
        self.offset = 0

    async def set_commands(self) -> None:
        await self.deps.tg.set_my_commands(COMMANDS)
        logger.info("Команды бота зарегистрированы")

    async def process_update(self, update: TgUpdate) -> None:
        """
        Обработчик текущего состояния, затем переход.
        Ошибка обработчика не мешает переходу
        :param update:
        :return:
        """
        chat_id = update.chat_id
        if chat_id is None or update.message is None:
            return

        text = update.message.text
        state = self.machine.current(chat_id)
        handler = self.handlers[state]
        try:
            await handler(self.deps, chat_id, text)
        except Exception as e:
            logger.exception(f"Ошибка обработки сообщения чата {chat_id} в состоянии {state.value}: {e}")

        try:
            new_state = self.machine.transition(chat_id, text.strip())
        except EventDeclined as e:
            logger.debug(str(e))
        else:
            logger.debug(f"Чат {chat_id}: {state.value} -> {new_state.value}")

    async def process_updates(self) -> int:
        """
        Один раунд опроса
        :return: количество обработанных апдейтов
        """
        updates = await self.deps.tg.get_updates(self.offset, self.poll_limit)
        for update in updates:
            await self.process_update(update)
            self.offset = update.update_id + 1
        return len(updates)

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info("Бот начал опрос Telegram")
        while not stop_event.is_set():
            try:
                await self.process_updates()
            except ChatApiFailure as e:
                logger.error(f"Не удалось получить апдейты: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_period)
            except asyncio.TimeoutError:
                pass
        logger.info("Опрос Telegram остановлен")
