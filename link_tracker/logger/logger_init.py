import json
import logging
import os
import sys
from logging import Logger
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

LOGGER_NAME = "link_tracker"
QUIET_LOGGERS = ("httpx", "aiokafka")


class JSONFormatter(logging.Formatter):
    """Пишет запись лога одной JSON-строкой, с именем сервиса и местом вызова"""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "service": self.service,
            "level": record.levelname,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logger() -> Logger:
    """
    Настройка общего логгера: JSON в файл сервиса и человекочитаемый вывод в stdout.
    Уровень берется из LOGGING_LEVEL, каталог из LOG_DIR, имя сервиса из SERVICE_NAME
    """
    level = os.getenv("LOGGING_LEVEL", "DEBUG").upper()
    service = os.getenv("SERVICE_NAME", "link_tracker")
    log_dir = Path(os.getenv("LOG_DIR", "logger"))
    log_dir.mkdir(parents=True, exist_ok=True)

    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel(level)
    if app_logger.handlers:
        return app_logger

    file_handler = logging.FileHandler(log_dir / f"{service}.json", encoding="utf-8")
    file_handler.setFormatter(JSONFormatter(service))
    app_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-7s %(module)s:%(lineno)d | %(message)s", "%H:%M:%S")
    )
    app_logger.addHandler(console_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return app_logger


logger = setup_logger()
