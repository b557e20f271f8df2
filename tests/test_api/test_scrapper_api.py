from collections.abc import Generator
from http import HTTPStatus

import pytest
from fastapi.testclient import TestClient

from link_tracker.errors import StoreFailure
from link_tracker.scrapper_app import create_scrapper_app

CHAT_ID = 12345
GITHUB_URL = "https://github.com/owner/repo"


@pytest.fixture
def client(store, transactor, stub_adapter) -> Generator[TestClient, None, None]:
    """FastAPI приложение scrapper'а поверх хранилища в памяти"""
    app = create_scrapper_app(store, transactor, [stub_adapter])
    with TestClient(app) as c:
        yield c


def headers(chat_id=CHAT_ID) -> dict[str, str]:
    return {"Tg-Chat-Id": str(chat_id)}


def assert_api_error(response, status: int, message: str) -> None:
    assert response.status_code == status
    body = response.json()
    assert body["code"] == str(status)
    assert body["exceptionMessage"] == message
    assert body["stacktrace"] == []


def test_register_user(client: TestClient) -> None:
    response = client.post(f"/tg-chat/{CHAT_ID}")
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"message": "Чат зарегистрирован"}


def test_register_user_twice(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    response = client.post(f"/tg-chat/{CHAT_ID}")
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "id уже зарегистрирован")
    assert response.json()["exceptionName"] == "id error"


@pytest.mark.parametrize(
    "raw_id, message",
    [
        ("abc", "id не соответствует числу"),
        ("-5", "полученное id < 0, должно быть id >=0"),
        ("9223372036854775808", "id не соответствует числу"),
    ],
)
def test_register_bad_id(client: TestClient, raw_id: str, message: str) -> None:
    response = client.post(f"/tg-chat/{raw_id}")
    assert_api_error(response, HTTPStatus.BAD_REQUEST, message)


def test_delete_chat(client: TestClient, store) -> None:
    """Тест: удаление чата удаляет и его подписки"""
    client.post(f"/tg-chat/{CHAT_ID}")
    client.post("/links", headers=headers(), json={"link": GITHUB_URL})

    response = client.delete(f"/tg-chat/{CHAT_ID}")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"message": "Чат удален"}
    assert not store.subs
    assert CHAT_ID not in store.users


def test_delete_chat_not_exist(client: TestClient) -> None:
    response = client.delete("/tg-chat/99999")
    assert_api_error(response, HTTPStatus.NOT_FOUND, "id не зарегистрирован")


def test_get_links_empty(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    response = client.get("/links", headers=headers())
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"links": [], "size": 0}


def test_get_links_unregistered(client: TestClient) -> None:
    response = client.get("/links", headers=headers())
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "id не зарегистрирован")


def test_get_links_without_header(client: TestClient) -> None:
    response = client.get("/links")
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "id не соответствует числу")


def test_add_link(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    data = {"link": GITHUB_URL, "tags": ["work"], "filters": ["user=me"]}

    response = client.post("/links", headers=headers(), json=data)

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"id": 1, "url": GITHUB_URL, "tags": ["work"], "filters": ["user=me"]}

    listed = client.get("/links", headers=headers()).json()
    assert listed["size"] == 1
    assert listed["links"][0]["url"] == GITHUB_URL
    assert listed["links"][0]["tags"] == ["work"]


def test_add_duplicate_link(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    client.post("/links", headers=headers(), json={"link": GITHUB_URL})

    response = client.post("/links", headers=headers(), json={"link": GITHUB_URL})

    assert_api_error(response, HTTPStatus.BAD_REQUEST, "пользователь уже отслеживает эту ссылку")
    assert response.json()["exceptionName"] == "link erroe"


def test_add_unsupported_link(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    response = client.post("/links", headers=headers(), json={"link": "https://example.com"})
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "переданная ссылка не поддерживается")


def test_add_link_bad_json(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    response = client.post(
        "/links", headers={**headers(), "Content-Type": "application/json"}, content=b"{not json"
    )
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "JSON имеет не правильный формат")


def test_add_link_unregistered(client: TestClient) -> None:
    response = client.post("/links", headers=headers(), json={"link": GITHUB_URL})
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "id не зарегистрирован")


def test_delete_link(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    client.post("/links", headers=headers(), json={"link": GITHUB_URL})

    response = client.request("DELETE", "/links", headers=headers(), json={"link": GITHUB_URL})

    assert response.status_code == HTTPStatus.OK
    assert response.json()["url"] == GITHUB_URL
    assert client.get("/links", headers=headers()).json()["size"] == 0


def test_delete_link_not_tracked(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    response = client.request("DELETE", "/links", headers=headers(), json={"link": GITHUB_URL})
    assert_api_error(response, HTTPStatus.NOT_FOUND, "пользователь не отслеживает эту ссылку")


def test_delete_link_bad_json(client: TestClient) -> None:
    client.post(f"/tg-chat/{CHAT_ID}")
    response = client.request("DELETE", "/links", headers=headers(), content=b"[]")
    assert_api_error(response, HTTPStatus.BAD_REQUEST, "JSON имеет не правильный формат")


def test_store_failure_is_500(client: TestClient, store, monkeypatch) -> None:
    """Тест: ошибка хранилища отдается как 500 с пустым телом"""

    async def broken(user_id: int) -> bool:
        raise StoreFailure("БД недоступна")

    monkeypatch.setattr(store, "user_exists", broken)

    response = client.post(f"/tg-chat/{CHAT_ID}")

    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert response.content == b""
