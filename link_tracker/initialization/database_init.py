import asyncio

from link_tracker.database.base import SubscriptionStore
from link_tracker.database.orm_database import OrmSubscriptionStore
from link_tracker.database.run_migrations import run_migrations
from link_tracker.database.sql_database import SqlSubscriptionStore
from link_tracker.database.transactor import AsyncpgTransactor, SqlAlchemyTransactor, Transactor
from link_tracker.settings import DatabaseSettings


def build_store(settings: DatabaseSettings) -> tuple[SubscriptionStore, Transactor]:
    """Хранилище и транзактор по ACCESS_TYPE"""
    store: SqlSubscriptionStore | OrmSubscriptionStore
    transactor: Transactor

    match settings.ACCESS_TYPE.upper():
        case "SQL":
            store = SqlSubscriptionStore(settings.dsn, settings.BATCH_SIZE)
            transactor = AsyncpgTransactor(store.get_pool)
        case "ORM":
            store = OrmSubscriptionStore(settings.dsn, settings.BATCH_SIZE)
            transactor = SqlAlchemyTransactor(store.get_session_factory)
        case _:
            raise ValueError(f"Unknown ACCESS_TYPE: {settings.ACCESS_TYPE}")

    return store, transactor


async def create_db(settings: DatabaseSettings):
    """Функция инициализации БД: создание базы и применение миграций"""
    store, _ = build_store(settings)
    await store.create_database(settings.DB_NAME)
    await run_migrations(settings.dsn)


if __name__ == "__main__":
    asyncio.run(create_db(DatabaseSettings()))
