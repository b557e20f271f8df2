from fastapi.responses import JSONResponse

from link_tracker.api.schemas.schemas import ApiErrorResponse
from link_tracker.errors import (
    BadJson,
    IdNotNumber,
    LinkAlreadyTracked,
    LinkNotTracked,
    LinkTrackerError,
    NegativeId,
    UnsupportedLink,
    UserAlreadyRegistered,
    UserNotRegistered,
)

WRONG_REQUEST_ARG = "Некорректные параметры запроса"

ERR_ID = "id error"
ERR_BODY = "body error"
ERR_LINK = "link erroe"

MAX_CHAT_ID = 2**63 - 1

# exceptionName и exceptionMessage для каждой ошибки API
API_ERRORS: dict[type[LinkTrackerError], tuple[str, str]] = {
    IdNotNumber: (ERR_ID, "id не соответствует числу"),
    NegativeId: (ERR_ID, "полученное id < 0, должно быть id >=0"),
    UserAlreadyRegistered: (ERR_ID, "id уже зарегистрирован"),
    UserNotRegistered: (ERR_ID, "id не зарегистрирован"),
    BadJson: (ERR_BODY, "JSON имеет не правильный формат"),
    UnsupportedLink: (ERR_LINK, "переданная ссылка не поддерживается"),
    LinkAlreadyTracked: (ERR_LINK, "пользователь уже отслеживает эту ссылку"),
    LinkNotTracked: (ERR_LINK, "пользователь не отслеживает эту ссылку"),
}


def api_error(exc: LinkTrackerError, status_code: int) -> JSONResponse:
    """
    Ответ с телом ApiErrorResponse для ошибки из каталога
    :param exc:
    :param status_code:
    :return:
    """
    exception_name, exception_message = API_ERRORS[type(exc)]
    body = ApiErrorResponse(
        description=WRONG_REQUEST_ARG,
        code=str(status_code),
        exception_name=exception_name,
        exception_message=exception_message,
        stacktrace=[],
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def parse_chat_id(raw: str | None) -> int:
    """
    id чата из пути или заголовка Tg-Chat-Id
    :param raw:
    :return:
    """
    try:
        chat_id = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise IdNotNumber(f"id {raw!r} не соответствует числу") from exc
    if chat_id > MAX_CHAT_ID:
        raise IdNotNumber(f"id {raw!r} не помещается в int64")
    if chat_id < 0:
        raise NegativeId(f"полученное id {chat_id} < 0")
    return chat_id
