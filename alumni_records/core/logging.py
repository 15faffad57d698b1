import inspect
import logging
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
import os
import json
import time
from datetime import datetime, timezone
from functools import wraps
import traceback
from typing import Any, Dict, Iterable, Optional

from alumni_records.core.config import settings

# Attributes the store attaches to every write it logs
RECORD_FIELDS = ("entity", "record_id", "tenant_id")

MAX_LOG_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUPS = 5
AUDIT_DAYS = 30


def record_extra(entity: str, record_id: Any = None, tenant_id: Any = None) -> Dict[str, Any]:
    """``extra`` mapping for a log line about one record."""
    extra: Dict[str, Any] = {"entity": entity}
    if record_id is not None:
        extra["record_id"] = record_id
    if tenant_id is not None:
        extra["tenant_id"] = tenant_id
    return extra


class CustomJsonFormatter(logging.Formatter):
    """One JSON object per line, with selected ``extra`` attributes lifted to the top level"""
    def __init__(self, extra_fields: Iterable[str] = RECORD_FIELDS):
        super().__init__()
        self.extra_fields = tuple(extra_fields)

    @staticmethod
    def _exception(exc_info) -> Dict[str, Any]:
        exc_type, exc_value, exc_tb = exc_info
        return {
            'type': exc_type.__name__,
            'message': str(exc_value),
            'traceback': traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload['exception'] = self._exception(record.exc_info)
        if hasattr(record, 'duration'):
            payload['duration_ms'] = record.duration
        payload.update(
            (name, getattr(record, name)) for name in self.extra_fields if hasattr(record, name)
        )
        return json.dumps(payload, default=str)


class RecordWriteFilter(logging.Filter):
    """Lets through only lines that describe a record write."""

    def filter(self, record):
        return hasattr(record, "entity")


class LoggerFactory:
    """Factory class for creating and configuring loggers"""

    CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    @staticmethod
    def _file_handlers(log_dir: str) -> Dict[str, logging.Handler]:
        os.makedirs(log_dir, exist_ok=True)
        app = RotatingFileHandler(os.path.join(log_dir, 'app.log'), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
        error = RotatingFileHandler(os.path.join(log_dir, 'error.log'), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
        error.setLevel(logging.ERROR)
        # audit.log keeps a day per file of create/update/delete lines
        audit = TimedRotatingFileHandler(
            os.path.join(log_dir, 'audit.log'), when='midnight', interval=1, backupCount=AUDIT_DAYS
        )
        audit.addFilter(RecordWriteFilter())
        for handler in (app, error, audit):
            handler.setFormatter(CustomJsonFormatter())
        return {'app': app, 'error': error, 'audit': audit}

    @classmethod
    def create_logger(cls, name: str, log_dir: Optional[str] = None, level: str = "INFO", to_file: bool = False):
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level))

        # Remove existing handlers if any
        if logger.handlers:
            logger.handlers.clear()

        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(cls.CONSOLE_FORMAT))
        handlers = {'console': console}
        if to_file:
            handlers.update(cls._file_handlers(log_dir or os.path.join(os.getcwd(), 'logs')))

        for handler in handlers.values():
            if handler.level == logging.NOTSET:
                handler.setLevel(getattr(logging, level))
            logger.addHandler(handler)
        return logger


def log_function_call(logger):
    """Decorator to log function entry, exit, and performance"""
    def decorator(func):
        func_name = func.__name__

        def entered() -> float:
            logger.info(f"Entering function: {func_name}")
            return time.perf_counter()

        def exited(started: float) -> None:
            logger.info(
                f"Exiting function: {func_name}",
                extra={'duration': (time.perf_counter() - started) * 1000, 'function': func_name},
            )

        def failed() -> None:
            logger.error(f"Error in function: {func_name}", exc_info=True, extra={'function': func_name})

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = entered()
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    failed()
                    raise
                exited(started)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            started = entered()
            try:
                result = func(*args, **kwargs)
            except Exception:
                failed()
                raise
            exited(started)
            return result
        return sync_wrapper
    return decorator


# Create default logger instance
logger = LoggerFactory.create_logger(
    "AlumniRecordsLogger",
    log_dir=settings.LOG_DIR,
    level=settings.LOG_LEVEL,
    to_file=settings.LOG_TO_FILE
)
