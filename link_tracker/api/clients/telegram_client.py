from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from link_tracker.api.schemas.schemas import BotCommand, TgUpdate
from link_tracker.errors import ChatApiFailure

TELEGRAM_API = "https://api.telegram.org"
HTTP_TIMEOUT = 10.0
LONG_POLL_TIMEOUT = 0

updates_adapter = TypeAdapter(list[TgUpdate])


class TelegramBotClient:
    """Клиент Telegram Bot API: getUpdates, sendMessage, setMyCommands"""

    def __init__(self, token: str, api_base: str = TELEGRAM_API, client: httpx.AsyncClient | None = None):
        self._base_url = f"{api_base.rstrip('/')}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    async def close(self):
        await self._client.aclose()

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        try:
            resp = await self._client.post(f"{self._base_url}/{method}", json=payload)
        except httpx.HTTPError as exc:
            raise ChatApiFailure(f"запрос {method} закончился ошибкой: {exc!r}") from exc

        if not resp.is_success:
            raise ChatApiFailure(f"запрос {method} не выполнен, код ответа сервера: {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise ChatApiFailure(f"ответ на {method} не является JSON: {exc}") from exc

        if not isinstance(body, dict) or not body.get("ok"):
            raise ChatApiFailure(f"запрос {method} отклонен: {body}")
        return body.get("result")

    async def get_updates(self, offset: int, limit: int) -> list[TgUpdate]:
        """
        Новые сообщения боту
        :param offset: id первого еще не обработанного апдейта
        :param limit: сколько апдейтов получить за раз
        :return:
        """
        result = await self._call(
            "getUpdates",
            {"offset": offset, "limit": limit, "timeout": LONG_POLL_TIMEOUT, "allowed_updates": ["message"]},
        )
        try:
            return updates_adapter.validate_python(result)
        except ValidationError as exc:
            raise ChatApiFailure(f"не смогли разобрать апдейты: {exc}") from exc

    async def send_message(self, chat_id: int, text: str) -> None:
        await self._call("sendMessage", {"chat_id": chat_id, "text": text})

    async def set_my_commands(self, commands: Sequence[BotCommand]) -> None:
        await self._call("setMyCommands", {"commands": [cmd.model_dump() for cmd in commands]})
