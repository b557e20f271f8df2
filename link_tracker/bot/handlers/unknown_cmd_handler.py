from link_tracker.bot.handlers.deps import BotDeps
from link_tracker.bot.lexicon.lexicon import LEXICON


async def unknown_cmd_handler(deps: BotDeps, chat_id: int) -> None:
    await deps.send(chat_id, LEXICON["unknown_command"])
