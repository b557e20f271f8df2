from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional

import asyncpg

from link_tracker.api.schemas.schemas import LinkInfo, LinkResponse
from link_tracker.database.base import STALENESS, LinkPaginator, SubscriptionStore
from link_tracker.database.transactor import current_transaction
from link_tracker.errors import LinkAlreadyTracked, LinkNotTracked, StoreFailure
from link_tracker.logger.logger_init import logger

DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class SqlLinkPaginator(LinkPaginator):
    def __init__(self, store: "SqlSubscriptionStore", batch_size: int, staleness: timedelta = STALENESS):
        super().__init__(batch_size, staleness)
        self._store = store

    async def _fetch(self, after_link_id: int) -> list[LinkInfo]:
        async with self._store.connection("ошибка при получении пачки ссылок") as conn:
            rows = await conn.fetch(
                """
                SELECT link_id, link_url, last_update_check
                FROM links
                WHERE link_id > $1 AND CURRENT_TIMESTAMP - last_update_check > $2
                ORDER BY link_id ASC
                LIMIT $3
                """,
                after_link_id,
                self.staleness,
                self.batch_size,
            )
        return [
            LinkInfo(link_id=row["link_id"], url=row["link_url"], last_check=row["last_update_check"])
            for row in rows
        ]


class SqlSubscriptionStore(SubscriptionStore):
    """Хранилище подписок на "чистом" SQL поверх asyncpg"""

    def __init__(self, db_url: str, batch_size: int = 500):
        self.db_url = db_url
        self.pool: Optional[asyncpg.Pool] = None
        self.batch_size = batch_size

    async def create_database(self, database_name: str):
        """Создает базу данных, если её нет"""
        sys_db_url = (
            self.db_url.rsplit("/", 1)[0] + "/postgres"
        )  # Подключение к системной БД postgres
        conn = await asyncpg.connect(sys_db_url)
        try:
            db_exists = await conn.fetchval(
                "SELECT 1 FROM pg_database WHERE datname = $1", database_name
            )
            if not db_exists:
                await conn.execute(f'CREATE DATABASE "{database_name}"')
                logger.info(f"База данных '{database_name}' успешно создана!")
            else:
                logger.info(f"База данных '{database_name}' уже существует.")
        finally:
            await conn.close()

    async def connect(self):
        """Создает пул подключений"""
        try:
            self.pool = await asyncpg.create_pool(self.db_url, min_size=4, max_size=15)
        except DB_ERRORS as exc:
            raise StoreFailure(f"не удалось подключиться к БД: {exc}") from exc
        logger.info("Соединение с БД успешно установлено")

    async def close(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            logger.info("Соединение с БД успешно закрыто")

    def get_pool(self) -> asyncpg.Pool:
        if not self.pool:
            raise RuntimeError("Connection pool is not initialized. Call connect() first.")
        return self.pool

    @asynccontextmanager
    async def connection(self, error_msg: str) -> AsyncIterator[asyncpg.Connection]:
        """
        Соединение активной транзакции, если она есть, иначе соединение из пула.
        Ошибки БД превращаются в StoreFailure
        """
        try:
            tx_conn = current_transaction()
            if tx_conn is not None:
                yield tx_conn
            else:
                async with self.get_pool().acquire() as conn:
                    yield conn
        except DB_ERRORS as exc:
            raise StoreFailure(f"{error_msg}: {exc}") from exc

    @asynccontextmanager
    async def transaction(self, error_msg: str) -> AsyncIterator[asyncpg.Connection]:
        """Как connection, но без активной транзакции открывает собственную"""
        try:
            tx_conn = current_transaction()
            if tx_conn is not None:
                yield tx_conn
            else:
                async with self.get_pool().acquire() as conn:
                    async with conn.transaction():
                        yield conn
        except DB_ERRORS as exc:
            raise StoreFailure(f"{error_msg}: {exc}") from exc

    async def register_user(self, user_id: int) -> None:
        async with self.connection("ошибка при добавлении нового пользователя") as conn:
            await conn.execute(
                "INSERT INTO users (user_id) VALUES ($1) ON CONFLICT (user_id) DO NOTHING", user_id
            )

    async def user_exists(self, user_id: int) -> bool:
        async with self.connection("ошибка при проверке пользователя") as conn:
            return bool(
                await conn.fetchval("SELECT EXISTS(SELECT 1 FROM users WHERE user_id = $1)", user_id)
            )

    async def delete_user(self, user_id: int) -> None:
        async with self.transaction("ошибка при удалении пользователя") as conn:
            await conn.execute("DELETE FROM userlinks WHERE user_id = $1", user_id)
            await conn.execute("DELETE FROM users WHERE user_id = $1", user_id)

    async def track_link(
        self,
        user_id: int,
        url: str,
        now: datetime,
        tags: Sequence[str] = (),
        filters: Sequence[str] = (),
    ) -> int:
        async with self.transaction("ошибка при добавлении ссылки пользователю") as conn:
            # строка ссылки заблокирована до конца транзакции
            link_id = await conn.fetchval(
                """
                INSERT INTO links (link_url, last_update_check) VALUES ($1, $2)
                ON CONFLICT (link_url) DO UPDATE SET link_url = EXCLUDED.link_url
                RETURNING link_id
                """,
                url,
                now,
            )

            await conn.execute(
                "INSERT INTO users (user_id) VALUES ($1) ON CONFLICT (user_id) DO NOTHING", user_id
            )

            inserted = await conn.fetchval(
                """
                INSERT INTO userlinks (user_id, link_id, tags, filters)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (user_id, link_id) DO NOTHING
                RETURNING link_id
                """,
                user_id,
                link_id,
                list(tags),
                list(filters),
            )
            if inserted is None:
                raise LinkAlreadyTracked(user_id, url)

            return int(link_id)

    async def untrack_link(self, user_id: int, url: str) -> int:
        async with self.connection("ошибка во время удаления ссылки пользователя") as conn:
            link_id = await conn.fetchval(
                """
                DELETE FROM userlinks USING links
                WHERE userlinks.link_id = links.link_id
                  AND links.link_url = $2
                  AND userlinks.user_id = $1
                RETURNING userlinks.link_id
                """,
                user_id,
                url,
            )
        if link_id is None:
            raise LinkNotTracked(user_id, url)
        return int(link_id)

    async def user_tracks_link(self, user_id: int, url: str) -> bool:
        async with self.connection("ошибка при проверке подписки пользователя") as conn:
            return bool(
                await conn.fetchval(
                    """
                    SELECT EXISTS(
                        SELECT 1 FROM userlinks
                        JOIN links ON links.link_id = userlinks.link_id
                        WHERE userlinks.user_id = $1 AND links.link_url = $2
                    )
                    """,
                    user_id,
                    url,
                )
            )

    async def all_user_links(self, user_id: int) -> list[str]:
        async with self.connection("ошибка при получении всех ссылок пользователя") as conn:
            rows = await conn.fetch(
                """
                SELECT links.link_url FROM links
                JOIN userlinks ON links.link_id = userlinks.link_id
                WHERE userlinks.user_id = $1
                """,
                user_id,
            )
        return [row["link_url"] for row in rows]

    async def user_subscriptions(self, user_id: int) -> list[LinkResponse]:
        async with self.connection("ошибка при получении подписок пользователя") as conn:
            rows = await conn.fetch(
                """
                SELECT links.link_id, links.link_url, userlinks.tags, userlinks.filters
                FROM userlinks
                JOIN links ON userlinks.link_id = links.link_id
                WHERE userlinks.user_id = $1
                ORDER BY links.link_id
                """,
                user_id,
            )
        return [
            LinkResponse(
                id=row["link_id"],
                url=row["link_url"],
                tags=list(row["tags"]) if row["tags"] else [],
                filters=list(row["filters"]) if row["filters"] else [],
            )
            for row in rows
        ]

    async def users_tracking(self, link_id: int) -> list[int]:
        async with self.connection("ошибка при получении отслеживающих ссылку пользователей") as conn:
            rows = await conn.fetch(
                "SELECT user_id FROM userlinks WHERE link_id = $1 ORDER BY user_id", link_id
            )
        return [row["user_id"] for row in rows]

    async def touch_last_check(self, url: str, checked_at: datetime) -> None:
        async with self.connection("ошибка при изменении времени проверки ссылки") as conn:
            await conn.execute(
                """
                UPDATE links
                SET last_update_check = GREATEST(last_update_check, $2)
                WHERE link_url = $1
                """,
                url,
                checked_at,
            )

    def new_paginator(self) -> SqlLinkPaginator:
        return SqlLinkPaginator(self, self.batch_size)

    async def sweep_orphan_links(self) -> int:
        async with self.connection("ошибка при удалении неотслеживаемых ссылок") as conn:
            rows = await conn.fetch(
                """
                DELETE FROM links
                WHERE link_id IN (
                    SELECT link_id FROM links
                    WHERE NOT EXISTS (
                        SELECT 1 FROM userlinks WHERE userlinks.link_id = links.link_id
                    )
                    FOR UPDATE SKIP LOCKED
                )
                RETURNING link_id
                """
            )
        return len(rows)
