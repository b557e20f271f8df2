from collections.abc import Sequence
from http import HTTPStatus

import httpx
from pydantic import ValidationError

from link_tracker.api.schemas.schemas import (
    AddLinkRequest,
    ApiErrorResponse,
    LinkResponse,
    ListLinksResponse,
    RemoveLinkRequest,
)
from link_tracker.api.utils.api_errors import API_ERRORS
from link_tracker.errors import (
    LinkAlreadyTracked,
    LinkNotTracked,
    ScrapperApiFailure,
    UnsupportedLink,
    UserAlreadyRegistered,
)

HTTP_TIMEOUT = 10.0


class ScrapperClient:
    """Клиент REST API scrapper'а"""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    async def close(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, chat_id: int | None = None, **kwargs) -> httpx.Response:
        headers = {"Tg-Chat-Id": str(chat_id)} if chat_id is not None else {}
        try:
            return await self._client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ScrapperApiFailure(f"запрос {method} {path} закончился ошибкой: {exc!r}") from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str | None:
        try:
            return ApiErrorResponse.model_validate_json(response.content).exception_message
        except ValidationError:
            return None

    async def register_chat(self, chat_id: int) -> None:
        """
        Регистрация чата, UserAlreadyRegistered если чат уже есть
        :param chat_id:
        :return:
        """
        response = await self._request("POST", f"/tg-chat/{chat_id}")
        if response.status_code == HTTPStatus.OK:
            return
        if self._error_message(response) == API_ERRORS[UserAlreadyRegistered][1]:
            raise UserAlreadyRegistered(f"чат {chat_id} уже зарегистрирован")
        raise ScrapperApiFailure("не получилось зарегистрировать юзера", response.status_code)

    async def list_links(self, chat_id: int) -> list[str]:
        response = await self._request("GET", "/links", chat_id)
        if response.status_code != HTTPStatus.OK:
            raise ScrapperApiFailure("не смогли получить ссылки пользователя", response.status_code)
        try:
            data = ListLinksResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise ScrapperApiFailure(f"не смогли десериализовать ссылки пользователя: {exc}") from exc
        return [link.url for link in data.links]

    async def add_link(
        self, chat_id: int, url: str, tags: Sequence[str] = (), filters: Sequence[str] = ()
    ) -> LinkResponse:
        """
        Начать отслеживание ссылки
        :param chat_id:
        :param url:
        :param tags:
        :param filters:
        :return:
        """
        body = AddLinkRequest(link=url, tags=list(tags), filters=list(filters))
        response = await self._request("POST", "/links", chat_id, json=body.model_dump())

        if response.status_code == HTTPStatus.OK:
            return LinkResponse.model_validate_json(response.content)

        message = self._error_message(response)
        if message == API_ERRORS[UnsupportedLink][1]:
            raise UnsupportedLink(url)
        if message == API_ERRORS[LinkAlreadyTracked][1]:
            raise LinkAlreadyTracked(chat_id, url)
        raise ScrapperApiFailure("не смогли добавить ссылку пользователя", response.status_code)

    async def remove_link(self, chat_id: int, url: str) -> LinkResponse:
        body = RemoveLinkRequest(link=url)
        response = await self._request("DELETE", "/links", chat_id, json=body.model_dump())

        if response.status_code == HTTPStatus.OK:
            return LinkResponse.model_validate_json(response.content)
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise LinkNotTracked(chat_id, url)
        raise ScrapperApiFailure("не смогли удалить ссылку пользователя", response.status_code)
