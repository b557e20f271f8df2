from datetime import datetime
from typing import Any

import httpx
import pytz

from link_tracker.api.schemas.schemas import UpdateRecord
from link_tracker.api.utils.string_makers import truncate_preview
from link_tracker.errors import SourceUnavailable, UnsupportedLink
from link_tracker.scrapper.adapters.base import SiteAdapter, split_url

GITHUB_HOST = "github.com"
GITHUB_API = "https://api.github.com"
GITHUB_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def parse_github_time(value: str) -> datetime:
    return datetime.strptime(value, GITHUB_TIME_FORMAT).replace(tzinfo=pytz.utc)


class GitHubAdapter(SiteAdapter):
    """Новые issue и pull request'ы репозитория https://github.com/{owner}/{repo}"""

    name = "GitHub"

    def __init__(self, token: str = "", api_base: str = GITHUB_API, client: httpx.AsyncClient | None = None):
        super().__init__(api_base, client)
        self.token = token

    def headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def static_check(self, url: str) -> tuple[str, ...] | None:
        split = split_url(url)
        if split is None:
            return None
        scheme, host, path_args = split
        if scheme != "https" or host != GITHUB_HOST:
            return None
        # ["", owner, repo]
        if len(path_args) != 3 or path_args[0] != "" or not path_args[1] or not path_args[2]:
            return None
        return path_args[1], path_args[2]

    def probe_url(self, parts: tuple[str, ...]) -> str:
        owner, repo = parts
        return f"{self.api_base}/repos/{owner}/{repo}/issues?per_page=1&sort=updated"

    async def updates_since(self, url: str, since: datetime) -> list[UpdateRecord]:
        """
        Issue и PR репозитория, созданные строго после since
        :param url: ссылка на репозиторий
        :param since: время последней проверки
        :return:
        """
        parts = self.static_check(url)
        if parts is None:
            raise UnsupportedLink(url, self.name)
        owner, repo = parts

        if since.tzinfo is None:
            since = pytz.utc.localize(since)
        since_iso = since.astimezone(pytz.utc).strftime(GITHUB_TIME_FORMAT)

        data = await self.get_json(
            f"{self.api_base}/search/issues",
            params={
                "q": f"repo:{owner}/{repo} created:>{since_iso}",
                "sort": "created",
                "order": "asc",
                "per_page": 100,
            },
        )
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise SourceUnavailable(self.name, "в ответе поиска нет списка items")

        updates = []
        for item in data["items"]:
            record = self._make_record(item)
            if record.created_at > since:
                updates.append(record)
        return updates

    def _make_record(self, item: dict[str, Any]) -> UpdateRecord:
        try:
            kind = "pull request" if item.get("pull_request") else "issue"
            title = item.get("title") or ""
            body = item.get("body") or ""
            preview = f"{title}\n{body}" if body else title
            return UpdateRecord(
                kind=kind,
                author=(item.get("user") or {}).get("login") or "Unknown",
                created_at=parse_github_time(item["created_at"]),
                preview=truncate_preview(preview),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise SourceUnavailable(self.name, f"некорректный элемент в ответе поиска: {exc!r}") from exc
