from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any, TypeVar

import asyncpg
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from link_tracker.errors import StoreFailure, TransactionFailed
from link_tracker.logger.logger_init import logger

T = TypeVar("T")

# Активная транзакция текущей задачи: asyncpg.Connection или AsyncSession
_current_tx: ContextVar[Any] = ContextVar("current_tx", default=None)


def current_transaction() -> Any:
    return _current_tx.get()


class Transactor(ABC):
    """
    Выполняет функцию внутри транзакции.
    Хранилище берет открытую транзакцию из current_transaction(),
    поэтому все его вызовы внутри fn попадают в одну транзакцию.
    """

    @abstractmethod
    async def _begin(self) -> Any:
        """Открывает транзакцию и возвращает её хендл"""

    @abstractmethod
    async def _commit(self, handle: Any) -> None:
        pass

    @abstractmethod
    async def _rollback(self, handle: Any) -> None:
        pass

    @abstractmethod
    async def _release(self, handle: Any) -> None:
        pass

    async def with_transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        if _current_tx.get() is not None:
            # уже внутри транзакции, присоединяемся к ней
            return await fn()

        handle = await self._begin()
        try:
            token = _current_tx.set(handle)
            try:
                result = await fn()
            except BaseException as exc:
                rollback_error = None
                try:
                    await self._rollback(handle)
                except Exception as rb_exc:
                    logger.error("Ошибка при откате транзакции: %s", rb_exc)
                    rollback_error = rb_exc
                if rollback_error is not None and isinstance(exc, Exception):
                    raise TransactionFailed(exc, rollback_error) from exc
                raise
            finally:
                _current_tx.reset(token)

            await self._commit(handle)
            return result
        finally:
            await self._release(handle)


class AsyncpgTransactor(Transactor):
    def __init__(self, pool_getter: Callable[[], asyncpg.Pool]):
        self._pool_getter = pool_getter
        self._transactions: dict[int, Any] = {}

    async def _begin(self) -> asyncpg.Connection:
        pool = self._pool_getter()
        try:
            conn = await pool.acquire()
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StoreFailure(f"не удалось получить соединение для транзакции: {exc}") from exc
        tr = conn.transaction()
        try:
            await tr.start()
        except BaseException:
            await pool.release(conn)
            raise
        self._transactions[id(conn)] = tr
        return conn

    async def _commit(self, handle: asyncpg.Connection) -> None:
        try:
            await self._transactions[id(handle)].commit()
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise StoreFailure(f"ошибка при коммите транзакции: {exc}") from exc

    async def _rollback(self, handle: asyncpg.Connection) -> None:
        await self._transactions[id(handle)].rollback()

    async def _release(self, handle: asyncpg.Connection) -> None:
        self._transactions.pop(id(handle), None)
        await self._pool_getter().release(handle)


class SqlAlchemyTransactor(Transactor):
    def __init__(self, session_factory_getter: Callable[[], async_sessionmaker[AsyncSession]]):
        self._session_factory_getter = session_factory_getter

    async def _begin(self) -> AsyncSession:
        session = self._session_factory_getter()()
        try:
            await session.begin()
        except (SQLAlchemyError, OSError) as exc:
            await session.close()
            raise StoreFailure(f"ошибка при старте транзакции: {exc}") from exc
        return session

    async def _commit(self, handle: AsyncSession) -> None:
        try:
            await handle.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreFailure(f"ошибка при коммите транзакции: {exc}") from exc

    async def _rollback(self, handle: AsyncSession) -> None:
        await handle.rollback()

    async def _release(self, handle: AsyncSession) -> None:
        await handle.close()
