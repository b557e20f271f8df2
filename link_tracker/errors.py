class LinkTrackerError(Exception):
    """Базовая ошибка приложения"""


# Ошибки входных данных


class IdNotNumber(LinkTrackerError):
    pass


class NegativeId(LinkTrackerError):
    pass


class BadJson(LinkTrackerError):
    pass


class UnsupportedLink(LinkTrackerError):
    def __init__(self, url: str, source: str = ""):
        super().__init__(f"ссылка {url} не поддерживается {source}".rstrip())
        self.url = url
        self.source = source


# Конфликты состояния


class UserAlreadyRegistered(LinkTrackerError):
    pass


class UserNotRegistered(LinkTrackerError):
    pass


class LinkAlreadyTracked(LinkTrackerError):
    def __init__(self, user_id: int, url: str):
        super().__init__(f"пользователь {user_id} уже отслеживает ссылку {url}")
        self.user_id = user_id
        self.url = url


class LinkNotTracked(LinkTrackerError):
    def __init__(self, user_id: int, url: str):
        super().__init__(f"пользователь {user_id} не отслеживает ссылку {url}")
        self.user_id = user_id
        self.url = url


class AlreadyRegistered(LinkTrackerError):
    """Повторная регистрация чата в хранилище контекста диалога"""

    def __init__(self, chat_id: int):
        super().__init__(f"пользователь с id = {chat_id} уже регистрировался")
        self.chat_id = chat_id


class DialogNotInitialized(LinkTrackerError):
    """Контекст диалога не создан: пользователь не вызывал /start"""

    def __init__(self, chat_id: int):
        super().__init__(f"пользователь с id = {chat_id} не регистрировался")
        self.chat_id = chat_id


# Диалог


class EventDeclined(LinkTrackerError):
    def __init__(self, chat_id: int, event: str, state: object):
        super().__init__(f"из состояния {state} нет перехода по событию {event!r} (чат {chat_id})")
        self.chat_id = chat_id
        self.event = event
        self.state = state


class MachineCreationFailed(LinkTrackerError):
    pass


class CommandNotFound(LinkTrackerError):
    def __init__(self, command: str):
        super().__init__(f"команда {command} не найдена")
        self.command = command


# Внешние системы


class SourceUnavailable(LinkTrackerError):
    def __init__(self, source: str, detail: str = ""):
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail


class ChatApiFailure(LinkTrackerError):
    pass


class ScrapperApiFailure(LinkTrackerError):
    def __init__(self, msg: str, status_code: int | None = None):
        if status_code is not None:
            msg = f"{msg} код ответа сервера: {status_code}"
        super().__init__(msg)
        self.status_code = status_code


class StoreFailure(LinkTrackerError):
    pass


class TransactionFailed(StoreFailure):
    """Транзакция откатена. rollback_error заполнен, если откат тоже не удался"""

    def __init__(self, cause: BaseException, rollback_error: BaseException | None = None):
        msg = f"ошибка при выполнении транзакции: {cause!r}"
        if rollback_error is not None:
            msg += f"; ошибка отката: {rollback_error!r}"
        super().__init__(msg)
        self.cause = cause
        self.rollback_error = rollback_error


class TransportFailed(LinkTrackerError):
    pass
