import pytest

from link_tracker.bot.context_storage import ContextStorage
from link_tracker.errors import AlreadyRegistered, DialogNotInitialized


def test_reg_user_twice() -> None:
    storage = ContextStorage()
    storage.reg_user(1)
    with pytest.raises(AlreadyRegistered):
        storage.reg_user(1)


def test_unknown_chat() -> None:
    """Тест: операции над незарегистрированным чатом"""
    storage = ContextStorage()
    with pytest.raises(DialogNotInitialized):
        storage.set_url(1, "https://github.com/a/b")
    with pytest.raises(DialogNotInitialized):
        storage.get(1)
    with pytest.raises(DialogNotInitialized):
        storage.reset(1)


def test_fill_and_reset() -> None:
    storage = ContextStorage()
    storage.reg_user(1)
    storage.set_url(1, "https://github.com/a/b")
    storage.add_tags(1, ["a"])
    storage.add_tags(1, ["b"])
    storage.add_filters(1, ["f"])

    ctx = storage.get(1)
    assert ctx.url == "https://github.com/a/b"
    assert ctx.tags == ["a", "b"]
    assert ctx.filters == ["f"]

    storage.reset(1)
    ctx = storage.get(1)
    assert ctx.url is None
    assert ctx.tags == [] and ctx.filters == []


def test_get_returns_copy() -> None:
    storage = ContextStorage()
    storage.reg_user(1)
    storage.get(1).tags.append("x")
    assert storage.get(1).tags == []
