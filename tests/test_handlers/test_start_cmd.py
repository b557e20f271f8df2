import pytest

from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.handlers.start_cmd_handler import register_handler, start_cmd_handler
from link_tracker.bot.lexicon.lexicon import LEXICON
from link_tracker.errors import UserAlreadyRegistered

CHAT_ID = 123456789


@pytest.mark.asyncio
async def test_register_handler_start(deps: BotDeps) -> None:
    """Тест: /start создает контекст диалога, приветствует и регистрирует чат"""
    await register_handler(deps, CHAT_ID, "/start")

    assert deps.ctx_store.get(CHAT_ID).url is None
    deps.tg.send_message.assert_awaited_once_with(CHAT_ID, LEXICON["first_message"])
    deps.scrapper.register_chat.assert_awaited_once_with(CHAT_ID)


@pytest.mark.asyncio
async def test_register_handler_needs_start(deps: BotDeps) -> None:
    """Тест: до /start бот просит ввести /start и ничего не регистрирует"""
    await register_handler(deps, CHAT_ID, "привет")

    deps.tg.send_message.assert_awaited_once_with(CHAT_ID, LEXICON["need_start"])
    deps.scrapper.register_chat.assert_not_awaited()


@pytest.mark.asyncio
async def test_register_handler_already_registered(deps: BotDeps) -> None:
    """Тест: повторная регистрация в scrapper'е не считается ошибкой"""
    deps.ctx_store.reg_user(CHAT_ID)
    deps.scrapper.register_chat.side_effect = UserAlreadyRegistered("уже есть")

    await register_handler(deps, CHAT_ID, " /start ")

    deps.tg.send_message.assert_awaited_once_with(CHAT_ID, LEXICON["first_message"])


@pytest.mark.asyncio
async def test_start_cmd_handler(deps: BotDeps) -> None:
    await start_cmd_handler(deps, CHAT_ID)
    deps.tg.send_message.assert_awaited_once_with(CHAT_ID, LEXICON["first_message"])
