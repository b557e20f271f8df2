from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    LOGGING_LEVEL: str = "INFO"


class DatabaseSettings(_EnvSettings):
    DB_USER: str = "postgres"
    DB_PASS: str = "postgres"
    DB_NAME: str = "links"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    BATCH_SIZE: int = Field(default=500, gt=0)
    ACCESS_TYPE: str = "SQL"

    @property
    def dsn(self) -> str:
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASS}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class ScrapperSettings(_EnvSettings):
    SCRAPPER_HOST: str = "0.0.0.0"
    SCRAPPER_PORT: int = 8080
    BOT_HOST: str = "localhost"
    BOT_PORT: int = 8090
    GIT_KEY: str = ""
    UPDATES_TRANSPORT: str = "http"
    CHECK_CRON: str = "* * * * *"

    @property
    def bot_url(self) -> str:
        return f"http://{self.BOT_HOST}:{self.BOT_PORT}"


class BotSettings(_EnvSettings):
    BOT_TOKEN: str = ""
    BOT_HOST: str = "0.0.0.0"
    BOT_PORT: int = 8090
    SCRAPPER_HOST: str = "localhost"
    SCRAPPER_PORT: int = 8080
    BOT_POLL_LIMIT: int = Field(default=100, gt=0, le=100)
    BOT_POLL_PERIOD: float = 5.0
    UPDATES_TRANSPORT: str = "http"

    @property
    def scrapper_url(self) -> str:
        return f"http://{self.SCRAPPER_HOST}:{self.SCRAPPER_PORT}"


class KafkaSettings(_EnvSettings):
    BROKERS_ADDR: str = "localhost:9092"
    UPDATE_TOPIC: str = "link_updates"
    DEAD_LETTER_TOPIC: str = "link_updates_dlq"
    KAFKA_BATCH_SIZE: int = 16384
    KAFKA_GROUP_ID: str = "bot_group"

    @property
    def brokers(self) -> list[str]:
        return [addr.strip() for addr in self.BROKERS_ADDR.split(",") if addr.strip()]


class RedisSettings(_EnvSettings):
    REDIS_ADDR: str = ""

    @property
    def redis_url(self) -> str | None:
        if not self.REDIS_ADDR:
            return None
        if "://" in self.REDIS_ADDR:
            return self.REDIS_ADDR
        return f"redis://{self.REDIS_ADDR}"
