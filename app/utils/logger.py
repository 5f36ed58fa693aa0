import logging
import json
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
import threading


ROOT_LOGGER_NAME = "waste_collection"

RECORD_FIELDS = {
    "time": "asctime",
    "level": "levelname",
    "logger": "name",
    "function": "funcName",
    "line": "lineno",
    "message": "message",
}


class SingletonLogger:
    """
    Configures the ``waste_collection`` handlers once per process.

    Area loggers (``waste_collection.lifecycle``, ``waste_collection.notifications``)
    propagate to the root so every line ends up in the same JSON files.

    Environment:
        LOG_DIR: directory for waste_collection.log and errors.log (default ``logs``)
        LOG_LEVEL: console threshold (default ``INFO``)
        LOG_MAX_BYTES / LOG_BACKUP_COUNT: rotation of both files
    """
    _instance = None
    _lock = threading.Lock()
    _logger = None

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SingletonLogger, cls).__new__(cls)
        return cls._instance

    def get_logger(self, name: str = ROOT_LOGGER_NAME) -> logging.Logger:
        if self._logger is None:
            with self._lock:
                if self._logger is None:
                    self._logger = self._configure_root()
        if not name or name == ROOT_LOGGER_NAME:
            return self._logger
        if not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    def _configure_root(self) -> logging.Logger:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        logger.handlers.clear()

        formatter = JsonFormatter(RECORD_FIELDS)
        logs_dir = Path(os.environ.get("LOG_DIR", "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)
        max_bytes = int(os.environ.get("LOG_MAX_BYTES", 5 * 1024 * 1024))
        backups = int(os.environ.get("LOG_BACKUP_COUNT", 3))

        for filename, level in (("waste_collection.log", logging.INFO), ("errors.log", logging.ERROR)):
            handler = RotatingFileHandler(
                logs_dir / filename, maxBytes=max_bytes, backupCount=backups, encoding='utf-8'
            )
            handler.setLevel(level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        return logger


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    ``fmt_dict`` maps output keys to LogRecord attributes. Structured data
    passed as ``extra={"context": {...}}`` is emitted under ``context``.
    """
    def __init__(self, fmt_dict: dict = None, time_format: str = "%Y-%m-%dT%H:%M:%S"):
        super().__init__()
        self.fmt_dict = fmt_dict if fmt_dict is not None else {"message": "message"}
        self.default_time_format = time_format
        self.default_msec_format = "%s.%03d"

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def format(self, record) -> str:
        record.message = record.getMessage()
        if self.usesTime():
            record.asctime = self.formatTime(record)

        payload = {key: getattr(record, attr, None) for key, attr in self.fmt_dict.items()}

        context = getattr(record, "context", None)
        if context:
            payload["context"] = context

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            payload["exc_info"] = record.exc_text
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(payload, default=str)


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Logger under ``waste_collection`` sharing the singleton handlers"""
    return SingletonLogger().get_logger(name)
