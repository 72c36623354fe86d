"""
Message Constants

Telegram limits, callback data and decorative elements
"""

from typing import Dict


class MessageConstants:
    """Константы для сообщений"""

    # Telegram limits
    TELEGRAM_MESSAGE_LIMIT = 4096
    SAFE_MESSAGE_LENGTH = 4000  # Оставляем запас для форматирования
    CALLBACK_DATA_LIMIT = 64
    BUTTON_TEXT_LIMIT = 64

    # Locales
    LOCALES = {
        'supported': ['ru', 'uk', 'en'],
        'default': 'ru',
    }

    # Flags for the language menu
    LANGUAGE_BUTTONS: Dict[str, str] = {
        'ru': '🇷🇺 Русский',
        'uk': '🇺🇦 Українська',
        'en': '🇬🇧 English',
    }

    # Callback data
    CALLBACK_LANGUAGE_PREFIX = 'lang_'
    CALLBACK_CHAIN_PREFIX = 'start_chain_'
    CALLBACK_START_QUESTIONS = 'start_questions'
    CALLBACK_SAVE_RESULTS = 'save_results'
    CALLBACK_RESTART = 'restart'

    # Export document borders
    BORDER_HEAVY = '═' * 43
    BORDER_LIGHT = '─' * 43
