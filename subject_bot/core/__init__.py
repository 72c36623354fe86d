"""Core infrastructure: settings, logging, exceptions."""

from .config import Settings, get_settings
from .exceptions import (
    SubjectBotException,
    ConfigurationError,
    SessionStateError,
    ChainNotFoundError,
    TranscriptParseError,
)
from .logging import chat_context, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "chat_context",
    "SubjectBotException",
    "ConfigurationError",
    "SessionStateError",
    "ChainNotFoundError",
    "TranscriptParseError",
]
