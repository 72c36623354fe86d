"""
Command Handlers - команды бота

Обработчики для:
- /start - новая сессия опроса (меню языков или первый вопрос)
- /restart - сброс сессии и старт заново
"""

import logging
from aiogram.types import Message

logger = logging.getLogger(__name__)


class CommandHandlers:
    """
    Обработчики команд бота

    Все методы статические - не требуют состояния.
    Получают необходимые зависимости через параметры.
    """

    @staticmethod
    async def cmd_start(message: Message, engine):
        """Команда /start - точка входа в опрос"""
        user_name = message.from_user.full_name if message.from_user else "unknown"
        logger.info(f"👤 User started: {user_name} (chat: {message.chat.id})")

        try:
            await engine.handle_start(message.chat.id)
        except Exception as e:
            logger.error(f"❌ /start failed for chat {message.chat.id}: {e}", exc_info=True)

    @staticmethod
    async def cmd_restart(message: Message, engine):
        """Команда /restart - пройти опрос заново"""
        logger.info(f"🔄 /restart from chat {message.chat.id}")

        try:
            await engine.handle_restart(message.chat.id)
        except Exception as e:
            logger.error(f"❌ /restart failed for chat {message.chat.id}: {e}", exc_info=True)
