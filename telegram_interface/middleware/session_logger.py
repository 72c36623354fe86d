"""
Session Logger Middleware - логирование переходов состояния опроса

Middleware для отслеживания изменений SessionStatus каждого чата.
Полезно для отладки и мониторинга пользовательских потоков.
"""

import logging
from typing import Callable, Dict, Any, Awaitable, Optional

from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery

from subject_bot.core import chat_context

logger = logging.getLogger(__name__)


class SessionLoggerMiddleware(BaseMiddleware):
    """
    Middleware для логирования переходов сессии

    Логирует:
    - Текущее состояние до выполнения handler
    - Изменение состояния после выполнения handler
    """

    def __init__(self, engine):
        super().__init__()
        self.engine = engine

    async def __call__(
        self,
        handler: Callable[[Message | CallbackQuery, Dict[str, Any]], Awaitable[Any]],
        event: Message | CallbackQuery,
        data: Dict[str, Any]
    ) -> Any:
        chat_id = self._get_chat_id(event)
        if chat_id is None:
            return await handler(event, data)

        with chat_context(chat_id, update=type(event).__name__):
            return await self._observe(handler, event, data, chat_id)

    async def _observe(self, handler, event, data, chat_id: int) -> Any:
        before = self.engine.get_status(chat_id)
        logger.debug(
            f"🔄 Session [BEFORE]: chat={chat_id}, "
            f"status={before.value if before else 'None'}, "
            f"event={type(event).__name__}"
        )

        result = await handler(event, data)

        after = self.engine.get_status(chat_id)
        if after != before:
            logger.info(
                f"✨ Session [CHANGED]: chat={chat_id}, "
                f"{before.value if before else 'None'} → {after.value if after else 'None'}"
            )

        return result

    @staticmethod
    def _get_chat_id(event: Message | CallbackQuery) -> Optional[int]:
        if isinstance(event, CallbackQuery):
            return event.message.chat.id if event.message else None
        chat = getattr(event, 'chat', None)
        return chat.id if chat else None
