"""
Logging configuration

structlog и stdlib logging выводятся одним ProcessorFormatter: записи модулей,
которые пишут через logging.getLogger, тоже получают chat_id и update
из контекста текущего апдейта (см. chat_context).
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, List, Optional

import structlog

# aiogram.event пишет строку на каждый обработанный апдейт
QUIET_LOGGERS = ("aiogram.event", "aiogram.dispatcher", "httpx", "httpcore")

_handler: Optional[logging.Handler] = None


def _shared_processors(app_name: str) -> List:
    def add_app_name(_, __, event_dict):
        event_dict.setdefault("app", app_name)
        return event_dict

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_name,
    ]


def setup_logging(level: str = "INFO", json_format: bool = False, app_name: str = "subject-bot") -> None:
    """Setup structured logging for structlog and stdlib loggers."""
    global _handler

    shared = _shared_processors(app_name)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_format:
        render = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render = [structlog.dev.ConsoleRenderer()]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *render],
    )

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stdout)
    _handler.setFormatter(formatter)
    root.addHandler(_handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def chat_context(chat_id: int, **extra) -> Iterator[None]:
    """Привязывает chat_id (и extra) ко всем записям внутри блока"""
    with structlog.contextvars.bound_contextvars(chat_id=chat_id, **extra):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger bound to the given name."""
    return structlog.get_logger(name)
