"""
Telegram Interface - Telegram слой Subject Bot

Архитектура:
- controller: Главный координатор
- gateway: Транспорт (send_text / send_typing / send_file)
- lifecycle: Управление жизненным циклом бота
- handlers: Обработчики команд, ответов и кнопок
- middleware: Промежуточные слои
- handler_registry: Регистрация handlers с DI
- config: Константы бота
"""

from .gateway import TelegramGateway
from .lifecycle import BotLifecycle
from .handler_registry import HandlerRegistry
from .handlers import CommandHandlers, SurveyHandlers, CallbackHandlers
from .middleware import SessionLoggerMiddleware

__all__ = [
    # Transport
    "TelegramGateway",

    # Lifecycle
    "BotLifecycle",

    # Registry
    "HandlerRegistry",

    # Handlers
    "CommandHandlers",
    "SurveyHandlers",
    "CallbackHandlers",

    # Middleware
    "SessionLoggerMiddleware",
]
