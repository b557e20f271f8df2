from link_tracker.api.schemas.schemas import BotCommand

COMMANDS: list[BotCommand] = [
    BotCommand(command="start", description="начало общения с ботом"),
    BotCommand(command="help", description="вывод всех команд"),
    BotCommand(command="track", description="начать отслеживать ссылку"),
    BotCommand(command="untrack", description="перестать отслеживать ссылку"),
    BotCommand(command="list", description="список сохраненных ссылок"),
]

HELP_MESSAGE = "Доступные команды:\n" + "\n".join(
    f"/{cmd.command} - {cmd.description}" for cmd in COMMANDS
)

LEXICON: dict[str, str] = {
    "first_message": (
        "Привет👋! Я бот, который следит за обновлениями на GitHub и StackOverflow "
        "и присылает уведомления о них.\n\n" + HELP_MESSAGE
    ),
    "help": HELP_MESSAGE,
    "need_start": "Для начала работы введите /start",
    "no_saved_links": "У вас нет сохраненных ссылок😟",
    "not_save_this_link": "Вы не сохраняли такой ссылки❌",
    "unknown_command": "Я пока не знаю такой команды 😔. Введите /help",
    "untrack_link": "Введите ссылку, которую хотите перестать отслеживать⬇️",
    "track_link": "Введите ссылку, которую хотите начать отслеживать⬇️",
    "link_deleted": "Ссылка больше не отслеживаается✔️",
    "add_link_tag": "Добавьте тег для ссылки💬",
    "add_link_filter": "Введите фильтр для ссылки👁️‍🗨️",
    "wrong_link": "Ваша ссылка не поддерживается❌",
    "already_tracked": "Вы уже отслеживаете эту ссылку❗",
    "good_link": "Ссылка успешно сохранена✔️",
    "scrapper_error": "❌ Произошла ошибка, попробуйте позже",
}
