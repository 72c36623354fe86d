"""
Subject Bot - опросный Telegram бот

Пакет содержит общие компоненты бота:
- core: конфигурация, логирование, исключения
- messages: шаблоны сообщений, клавиатуры, цепочки вопросов
- ai: генерация глубокого анализа ответов
"""

__version__ = "1.2.0"
