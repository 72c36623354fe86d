"""
Handlers - обработчики команд и сообщений Telegram бота

Модули:
- command_handlers: Команды (/start, /restart)
- survey_handlers: Ответы и импорт транскрипта
- callback_handlers: Callback кнопки
"""

from .command_handlers import CommandHandlers
from .survey_handlers import SurveyHandlers
from .callback_handlers import CallbackHandlers

__all__ = [
    "CommandHandlers",
    "SurveyHandlers",
    "CallbackHandlers",
]
