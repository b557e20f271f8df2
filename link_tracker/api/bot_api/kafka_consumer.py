import asyncio
import json

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.structs import ConsumerRecord
from pydantic import ValidationError

from link_tracker.api.bot_api.bot_send_message import deliver_update
from link_tracker.api.clients.telegram_client import TelegramBotClient
from link_tracker.api.schemas.schemas import LinkUpdate
from link_tracker.logger.logger_init import logger

POLL_TIMEOUT_MS = 1000


def dead_letter_payload(record: ConsumerRecord, error: Exception) -> dict[str, str]:
    raw = record.value or b""
    return {
        "error": str(error),
        "original_message": raw.decode("utf-8", errors="ignore"),
    }


async def handle_record(
    record: ConsumerRecord,
    tg_client: TelegramBotClient,
    dlq_producer: AIOKafkaProducer,
    dlq_topic: str,
) -> None:
    """
    Разбирает сообщение и рассылает обновление,
    неразобранные сообщения уходят в dead letter топик
    :param record:
    :param tg_client:
    :param dlq_producer:
    :param dlq_topic:
    :return:
    """
    try:
        update = LinkUpdate.model_validate_json(record.value or b"")
    except ValidationError as e:
        logger.error(f"Ошибка обработки сообщения из Kafka: {e}")
        payload = json.dumps(dead_letter_payload(record, e), ensure_ascii=False).encode("utf-8")
        await dlq_producer.send_and_wait(dlq_topic, payload)
        return

    logger.debug(f"Данные получены: {update.url}")
    await deliver_update(tg_client, update)


async def consume_messages(
    tg_client: TelegramBotClient,
    stop_event: asyncio.Event,
    kafka_servers: list[str],
    topic: str,
    dlq_topic: str,
    group_id: str = "bot_group",
) -> None:
    """
    Kafka consumer, рассылающий уведомления пользователям.
    Офсеты коммитятся вручную после обработки пачки,
    после stop_event дорабатывает текущую пачку и выходит
    :param tg_client:
    :param stop_event:
    :param kafka_servers:
    :param topic:
    :param dlq_topic:
    :param group_id:
    :return:
    """
    consumer = AIOKafkaConsumer(
        topic,
        bootstrap_servers=kafka_servers,
        group_id=group_id,
        enable_auto_commit=False,
        auto_offset_reset="earliest",
    )
    dlq_producer = AIOKafkaProducer(bootstrap_servers=kafka_servers)

    await consumer.start()
    await dlq_producer.start()
    logger.info(f"Kafka consumer запущен, топик {topic}")
    try:
        while not stop_event.is_set():
            batches = await consumer.getmany(timeout_ms=POLL_TIMEOUT_MS)
            if not batches:
                continue
            for records in batches.values():
                for record in records:
                    await handle_record(record, tg_client, dlq_producer, dlq_topic)
            await consumer.commit()
    finally:
        await consumer.stop()
        await dlq_producer.stop()
        logger.info("Kafka consumer остановлен")
