from datetime import datetime

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from link_tracker.api.schemas.schemas import (
    AddLinkRequest,
    ApiErrorResponse,
    LinkResponse,
    ListLinksResponse,
    RemoveLinkRequest,
)
from link_tracker.api.utils.api_errors import api_error, parse_chat_id
from link_tracker.api.utils.string_makers import REPORT_TZ
from link_tracker.database.base import SubscriptionStore
from link_tracker.database.transactor import Transactor
from link_tracker.errors import (
    BadJson,
    IdNotNumber,
    LinkAlreadyTracked,
    LinkNotTracked,
    NegativeId,
    UnsupportedLink,
    UserAlreadyRegistered,
    UserNotRegistered,
)
from link_tracker.logger.logger_init import logger
from link_tracker.scrapper.adapters.base import SiteAdapter

scrapper_api_router = APIRouter()

BAD_REQUEST = {"model": ApiErrorResponse, "description": "Некорректные параметры запроса"}


def get_store(request: Request) -> SubscriptionStore:
    return request.app.state.store  # type: ignore[no-any-return]


def get_transactor(request: Request) -> Transactor:
    return request.app.state.transactor  # type: ignore[no-any-return]


def get_adapters(request: Request) -> list[SiteAdapter]:
    return request.app.state.adapters  # type: ignore[no-any-return]


async def can_track(adapters: list[SiteAdapter], url: str) -> bool:
    for adapter in adapters:
        if await adapter.can_track(url):
            return True
    return False


@scrapper_api_router.post(
    "/tg-chat/{tg_chat_id}",
    responses={200: {"description": "Чат зарегистрирован"}, 400: BAD_REQUEST},
)
async def register_chat(
    tg_chat_id: str, store: SubscriptionStore = Depends(get_store)
) -> JSONResponse:
    """
    Зарегистрировать чат
    :param tg_chat_id:
    :param store:
    :return:
    """
    try:
        chat_id = parse_chat_id(tg_chat_id)
    except (IdNotNumber, NegativeId) as e:
        return api_error(e, 400)

    if await store.user_exists(chat_id):
        return api_error(UserAlreadyRegistered(), 400)

    await store.register_user(chat_id)
    logger.info(f"Зарегистрирован чат {chat_id}")
    return JSONResponse(status_code=200, content={"message": "Чат зарегистрирован"})


@scrapper_api_router.delete(
    "/tg-chat/{tg_chat_id}",
    responses={
        200: {"description": "Чат успешно удален"},
        400: BAD_REQUEST,
        404: {"model": ApiErrorResponse, "description": "Чат не существует"},
    },
)
async def delete_chat(
    tg_chat_id: str,
    store: SubscriptionStore = Depends(get_store),
    transactor: Transactor = Depends(get_transactor),
) -> JSONResponse:
    """
    Удалить чат вместе со всеми его подписками
    :param tg_chat_id:
    :param store:
    :param transactor:
    :return:
    """
    try:
        chat_id = parse_chat_id(tg_chat_id)
    except (IdNotNumber, NegativeId) as e:
        return api_error(e, 400)

    if not await store.user_exists(chat_id):
        return api_error(UserNotRegistered(), 404)

    await transactor.with_transaction(lambda: store.delete_user(chat_id))
    logger.info(f"Удален чат {chat_id}")
    return JSONResponse(status_code=200, content={"message": "Чат удален"})


async def registered_chat_id(raw: str | None, store: SubscriptionStore) -> int:
    chat_id = parse_chat_id(raw)
    if not await store.user_exists(chat_id):
        raise UserNotRegistered(f"чат {chat_id} не зарегистрирован")
    return chat_id


@scrapper_api_router.get(
    "/links",
    response_model=ListLinksResponse,
    responses={200: {"model": ListLinksResponse, "description": "Ссылки успешно получены"}, 400: BAD_REQUEST},
)
async def get_links(
    tg_chat_id: str | None = Header(default=None, alias="Tg-Chat-Id"),
    store: SubscriptionStore = Depends(get_store),
) -> ListLinksResponse | JSONResponse:
    """
    Получить все отслеживаемые ссылки
    :param tg_chat_id:
    :param store:
    :return:
    """
    try:
        chat_id = await registered_chat_id(tg_chat_id, store)
    except (IdNotNumber, NegativeId, UserNotRegistered) as e:
        return api_error(e, 400)

    links = await store.user_subscriptions(chat_id)
    return ListLinksResponse(links=links, size=len(links))


@scrapper_api_router.post(
    "/links",
    response_model=None,
    responses={200: {"model": LinkResponse, "description": "Ссылка успешно добавлена"}, 400: BAD_REQUEST},
)
async def add_link(
    request: Request,
    tg_chat_id: str | None = Header(default=None, alias="Tg-Chat-Id"),
    store: SubscriptionStore = Depends(get_store),
    transactor: Transactor = Depends(get_transactor),
    adapters: list[SiteAdapter] = Depends(get_adapters),
) -> LinkResponse | JSONResponse:
    """
    Добавление новой ссылки
    :param request: тело {link, tags?, filters?}
    :param tg_chat_id:
    :param store:
    :param transactor:
    :param adapters:
    :return:
    """
    try:
        chat_id = await registered_chat_id(tg_chat_id, store)
        try:
            data = AddLinkRequest.model_validate_json(await request.body())
        except ValidationError as exc:
            raise BadJson(str(exc)) from exc

        if not await can_track(adapters, data.link):
            raise UnsupportedLink(data.link)

        if await store.user_tracks_link(chat_id, data.link):
            raise LinkAlreadyTracked(chat_id, data.link)

        now = datetime.now(REPORT_TZ).replace(microsecond=0)
        link_id = await transactor.with_transaction(
            lambda: store.track_link(chat_id, data.link, now, data.tags, data.filters)
        )
    except (IdNotNumber, NegativeId, UserNotRegistered, BadJson, UnsupportedLink, LinkAlreadyTracked) as e:
        return api_error(e, 400)

    logger.info(f"Чат {chat_id} начал отслеживать ссылку {data.link}")
    return LinkResponse(id=link_id, url=data.link, tags=data.tags, filters=data.filters)


@scrapper_api_router.delete(
    "/links",
    response_model=None,
    responses={
        200: {"model": LinkResponse, "description": "Ссылка успешно убрана"},
        400: BAD_REQUEST,
        404: {"model": ApiErrorResponse, "description": "Ссылка не найдена"},
    },
)
async def delete_link(
    request: Request,
    tg_chat_id: str | None = Header(default=None, alias="Tg-Chat-Id"),
    store: SubscriptionStore = Depends(get_store),
) -> LinkResponse | JSONResponse:
    """
    Убрать отслеживание ссылки
    :param request: тело {link}
    :param tg_chat_id:
    :param store:
    :return:
    """
    try:
        chat_id = await registered_chat_id(tg_chat_id, store)
        try:
            data = RemoveLinkRequest.model_validate_json(await request.body())
        except ValidationError as exc:
            raise BadJson(str(exc)) from exc
    except (IdNotNumber, NegativeId, UserNotRegistered, BadJson) as e:
        return api_error(e, 400)

    try:
        if not await store.user_tracks_link(chat_id, data.link):
            raise LinkNotTracked(chat_id, data.link)
        link_id = await store.untrack_link(chat_id, data.link)
    except LinkNotTracked as e:
        return api_error(e, 404)

    logger.info(f"Чат {chat_id} перестал отслеживать ссылку {data.link}")
    return LinkResponse(id=link_id, url=data.link)
