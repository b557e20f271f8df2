from datetime import datetime
from typing import Any

import httpx
import pytz
from bs4 import BeautifulSoup

from link_tracker.api.schemas.schemas import UpdateRecord
from link_tracker.api.utils.string_makers import truncate_preview
from link_tracker.errors import SourceUnavailable, UnsupportedLink
from link_tracker.scrapper.adapters.base import SiteAdapter, split_url

STACKOVERFLOW_HOST = "stackoverflow.com"
STACKEXCHANGE_API = "https://api.stackexchange.com/2.3"
MIN_PATH_LEN = 3
MAX_PATH_LEN = 5


def strip_html(html: str) -> str:
    """Текст без HTML тегов"""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def from_unix(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, pytz.utc)


class StackOverflowAdapter(SiteAdapter):
    """Активность на вопросе https://stackoverflow.com/questions/{id}[/slug]"""

    name = "stackoverflow"

    def __init__(self, api_base: str = STACKEXCHANGE_API, client: httpx.AsyncClient | None = None):
        super().__init__(api_base, client)

    def static_check(self, url: str) -> tuple[str, ...] | None:
        split = split_url(url)
        if split is None:
            return None
        scheme, host, path_args = split
        if scheme != "https" or host != STACKOVERFLOW_HOST:
            return None
        if not MIN_PATH_LEN <= len(path_args) <= MAX_PATH_LEN:
            return None
        if path_args[0] != "" or path_args[1] != "questions":
            return None
        question_id = path_args[2]
        if not question_id.isdigit() or int(question_id) < 1:
            return None
        return (question_id,)

    def probe_url(self, parts: tuple[str, ...]) -> str:
        return f"{self.api_base}/questions/{parts[0]}?site=stackoverflow"

    async def updates_since(self, url: str, since: datetime) -> list[UpdateRecord]:
        """
        Новые ответы и комментарии к вопросу.
        Если активность на вопросе была, но ни ответов, ни комментариев нет
        (например вопрос отредактировали), возвращается одно событие "question activity"
        :param url: ссылка на вопрос
        :param since: время последней проверки
        :return:
        """
        parts = self.static_check(url)
        if parts is None:
            raise UnsupportedLink(url, self.name)
        question_id = parts[0]

        if since.tzinfo is None:
            since = pytz.utc.localize(since)

        question = await self._question(question_id)
        try:
            last_activity = from_unix(int(question["last_activity_date"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise SourceUnavailable(self.name, f"нет last_activity_date у вопроса {question_id}") from exc

        if last_activity <= since:
            return []

        params = {
            "site": "stackoverflow",
            "fromdate": int(since.timestamp()),
            "sort": "creation",
            "order": "asc",
            "filter": "withbody",
        }
        answers = await self._items(f"{self.api_base}/questions/{question_id}/answers", params)
        comments = await self._items(f"{self.api_base}/questions/{question_id}/comments", params)

        updates = [self._make_record("answer", item) for item in answers]
        updates += [self._make_record("comment", item) for item in comments]
        updates = [upd for upd in updates if upd.created_at > since]

        if not updates:
            updates.append(self._activity_record(question, last_activity))

        updates.sort(key=lambda upd: upd.created_at)
        return updates

    async def _question(self, question_id: str) -> dict[str, Any]:
        items = await self._items(
            f"{self.api_base}/questions/{question_id}",
            {"site": "stackoverflow", "filter": "withbody"},
        )
        if not items:
            raise SourceUnavailable(self.name, f"вопрос {question_id} не найден")
        return items[0]  # type: ignore[no-any-return]

    async def _items(self, url: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        data = await self.get_json(url, params=params)
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise SourceUnavailable(self.name, "в ответе нет списка items")
        return data["items"]  # type: ignore[no-any-return]

    def _make_record(self, kind: str, item: dict[str, Any]) -> UpdateRecord:
        try:
            return UpdateRecord(
                kind=kind,
                author=(item.get("owner") or {}).get("display_name") or "Unknown",
                created_at=from_unix(int(item["creation_date"])),
                preview=truncate_preview(strip_html(item.get("body") or "")),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise SourceUnavailable(self.name, f"некорректный элемент {kind} в ответе: {exc!r}") from exc

    def _activity_record(self, question: dict[str, Any], last_activity: datetime) -> UpdateRecord:
        try:
            title = question.get("title") or ""
            body = strip_html(question.get("body") or "")
            return UpdateRecord(
                kind="question activity",
                author=(question.get("owner") or {}).get("display_name") or "Unknown",
                created_at=last_activity,
                preview=truncate_preview(f"{title}\n{body}" if body else title),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise SourceUnavailable(self.name, f"некорректный вопрос в ответе: {exc!r}") from exc
