import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from link_tracker.errors import AlreadyRegistered, DialogNotInitialized


@dataclass
class DialogContext:
    url: str | None = None
    tags: list[str] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)


class ContextStorage:
    """Данные незаконченного диалога каждого чата, живут только в памяти процесса"""

    def __init__(self):
        self._lock = threading.Lock()
        self._contexts: dict[int, DialogContext] = {}

    def _context(self, chat_id: int) -> DialogContext:
        try:
            return self._contexts[chat_id]
        except KeyError:
            raise DialogNotInitialized(chat_id) from None

    def reg_user(self, chat_id: int) -> None:
        with self._lock:
            if chat_id in self._contexts:
                raise AlreadyRegistered(chat_id)
            self._contexts[chat_id] = DialogContext()

    def set_url(self, chat_id: int, url: str) -> None:
        with self._lock:
            self._context(chat_id).url = url

    def add_tags(self, chat_id: int, tags: Sequence[str]) -> None:
        with self._lock:
            self._context(chat_id).tags.extend(tags)

    def add_filters(self, chat_id: int, filters: Sequence[str]) -> None:
        with self._lock:
            self._context(chat_id).filters.extend(filters)

    def reset(self, chat_id: int) -> None:
        with self._lock:
            self._context(chat_id)
            self._contexts[chat_id] = DialogContext()

    def get(self, chat_id: int) -> DialogContext:
        """Копия контекста, чтобы её можно было читать без блокировки"""
        with self._lock:
            ctx = self._context(chat_id)
            return DialogContext(url=ctx.url, tags=list(ctx.tags), filters=list(ctx.filters))
