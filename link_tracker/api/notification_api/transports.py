import itertools
from abc import ABC, abstractmethod

import httpx
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from link_tracker.api.schemas.schemas import LinkUpdate
from link_tracker.errors import TransportFailed
from link_tracker.logger.logger_init import logger
from link_tracker.settings import KafkaSettings, ScrapperSettings

HTTP_TIMEOUT = 10.0


def serialize_update(update: LinkUpdate) -> bytes:
    return update.model_dump_json(by_alias=True).encode("utf-8")


class UpdateTransport(ABC):
    """Доставка LinkUpdate со стороны scrapper'а на сторону бота"""

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    @abstractmethod
    async def send(self, update: LinkUpdate) -> None:
        """Бросает TransportFailed, если обновление не доставлено"""


class HttpTransport(UpdateTransport):
    def __init__(self, bot_url: str, client: httpx.AsyncClient | None = None):
        self.bot_url = bot_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)

    async def stop(self) -> None:
        await self._client.aclose()

    async def send(self, update: LinkUpdate) -> None:
        """
        Делает http-запрос на сервис бота, чтобы отправить обновление
        :param update:
        :return:
        """
        try:
            response = await self._client.post(
                f"{self.bot_url}/updates",
                content=serialize_update(update),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise TransportFailed(f"ошибка при отправке обновления боту: {exc!r}") from exc

        if not response.is_success:
            raise TransportFailed(
                f"бот не принял обновление, код ответа сервера: {response.status_code}"
            )


class RoundRobinPartitioner:
    """Раскладывает сообщения по партициям топика по очереди"""

    def __init__(self):
        self._counter = itertools.count()

    def __call__(self, key: bytes | None, all_partitions: list[int], available: list[int]) -> int:
        partitions = available or all_partitions
        return partitions[next(self._counter) % len(partitions)]


class KafkaTransport(UpdateTransport):
    def __init__(self, brokers: list[str], topic: str, batch_size: int = 16384):
        self.brokers = brokers
        self.topic = topic
        self.batch_size = batch_size
        self._producer: AIOKafkaProducer | None = None

    async def start(self) -> None:
        self._producer = AIOKafkaProducer(
            bootstrap_servers=self.brokers,
            partitioner=RoundRobinPartitioner(),
            max_batch_size=self.batch_size,
        )
        await self._producer.start()
        logger.info(f"Kafka producer запущен, топик {self.topic}")

    async def stop(self) -> None:
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None

    async def send(self, update: LinkUpdate) -> None:
        """
        Пишет обновление в топик апдейтов Kafka
        :param update:
        :return:
        """
        if self._producer is None:
            raise TransportFailed("Kafka producer не запущен, вызовите start()")
        try:
            await self._producer.send_and_wait(self.topic, serialize_update(update))
        except KafkaError as exc:
            raise TransportFailed(f"ошибка при записи обновления в Kafka: {exc!r}") from exc
        logger.debug(f"Обновление по ссылке {update.url} отправлено в Kafka")


def build_transport(settings: ScrapperSettings, kafka_settings: KafkaSettings) -> UpdateTransport:
    match settings.UPDATES_TRANSPORT.lower():
        case "http":
            return HttpTransport(settings.bot_url)
        case "bus" | "kafka":
            return KafkaTransport(
                kafka_settings.brokers, kafka_settings.UPDATE_TOPIC, kafka_settings.KAFKA_BATCH_SIZE
            )
        case _:
            raise ValueError(f"Unknown UPDATES_TRANSPORT: {settings.UPDATES_TRANSPORT}")
