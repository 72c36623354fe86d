"""
Configuration - конфигурация Telegram слоя

Настройки приложения живут в subject_bot.core.config (pydantic-settings).
Здесь - загрузка .env в окружение и константы самого бота.
"""

from dotenv import load_dotenv

from subject_bot.core.config import Settings, get_settings

# Load environment variables
load_dotenv()

# Команды в меню Telegram
BOT_COMMANDS = {
    "start": "Начать опрос",
    "restart": "Пройти заново",
}

# Типы апдейтов, которые бот получает при polling
ALLOWED_UPDATES = ["message", "callback_query"]

# Расширения и mime-типы для импорта транскрипта
IMPORT_EXTENSIONS = (".txt",)
IMPORT_MIME_TYPES = ("text/plain",)

__all__ = [
    "Settings",
    "get_settings",
    "BOT_COMMANDS",
    "ALLOWED_UPDATES",
    "IMPORT_EXTENSIONS",
    "IMPORT_MIME_TYPES",
]
