from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from link_tracker.api.bot_api.bot_send_message import deliver_update
from link_tracker.api.clients.telegram_client import TelegramBotClient
from link_tracker.api.schemas.schemas import ApiErrorResponse, LinkUpdate
from link_tracker.api.utils.api_errors import api_error
from link_tracker.errors import BadJson
from link_tracker.logger.logger_init import logger

bot_api_router = APIRouter()


async def get_tg_client(request: Request) -> TelegramBotClient:
    """
    Получение клиента Telegram из контекста приложения
    :param request:
    :return:
    """
    return request.app.state.tg_client  # type: ignore[no-any-return]


@bot_api_router.post(
    "/updates",
    responses={
        200: {"description": "Обновление обработано"},
        400: {"model": ApiErrorResponse, "description": "Некорректные параметры запроса"},
    },
)
async def send_update(request: Request, tg_client: TelegramBotClient = Depends(get_tg_client)) -> JSONResponse:
    """
    Http-бэкенд отправки уведомлений пользователям
    :param request:
    :param tg_client:
    :return:
    """
    raw = await request.body()
    try:
        update = LinkUpdate.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Пришло обновление в неверном формате: {e}")
        return api_error(BadJson(str(e)), 400)

    await deliver_update(tg_client, update)
    return JSONResponse(status_code=200, content={"status": "ok"})
