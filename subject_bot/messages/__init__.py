"""
Subject Bot Messages System

Централизованная система управления сообщениями с поддержкой:
- Мультиязычности (ru, uk, en)
- Markdown форматирования для Telegram
- Шаблонизации с переменными (Jinja2)
- Клавиатур и кнопок
- Цепочек вопросов (ChainCatalog)
"""

from .service import MessageService
from .validators import MessageValidator, ValidationResult
from .formatters import TelegramFormatter
from .constants import MessageConstants
from .catalog import ChainCatalog, ChainConfig, AIPrompts

# Singleton instances для всего приложения
_message_service = None
_chain_catalog = None


def get_message_service(default_locale: str = 'ru') -> MessageService:
    """Получить синглтон MessageService"""
    global _message_service
    if _message_service is None:
        _message_service = MessageService(default_locale=default_locale)
    return _message_service


def get_chain_catalog() -> ChainCatalog:
    """Получить синглтон ChainCatalog"""
    global _chain_catalog
    if _chain_catalog is None:
        _chain_catalog = ChainCatalog.load()
    return _chain_catalog


__all__ = [
    'MessageService',
    'MessageValidator',
    'ValidationResult',
    'TelegramFormatter',
    'MessageConstants',
    'ChainCatalog',
    'ChainConfig',
    'AIPrompts',
    'get_message_service',
    'get_chain_catalog',
]
