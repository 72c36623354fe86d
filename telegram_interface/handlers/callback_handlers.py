"""
Callback Handlers - обработчики callback кнопок

Callbacks:
- lang_<code> - выбор языка
- start_chain_<id> - выбор урока (цепочки)
- start_questions - начать отвечать
- save_results - сохранить результаты в файл
- restart - пройти заново
"""

import logging
from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery

from subject_bot.messages.constants import MessageConstants

logger = logging.getLogger(__name__)


class CallbackHandlers:
    """Обработчики callback кнопок"""

    @staticmethod
    async def callback_language(callback: CallbackQuery, engine):
        """Выбор языка"""
        await CallbackHandlers._ack(callback)
        chat_id = callback.message.chat.id
        language = callback.data[len(MessageConstants.CALLBACK_LANGUAGE_PREFIX):]
        logger.info(f"🌐 Language '{language}' selected in chat {chat_id}")

        try:
            await engine.handle_language_select(chat_id, language)
        except Exception as e:
            logger.error(f"❌ Language select failed in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    async def callback_chain(callback: CallbackQuery, engine):
        """Выбор урока"""
        await CallbackHandlers._ack(callback)
        chat_id = callback.message.chat.id
        chain_id = callback.data[len(MessageConstants.CALLBACK_CHAIN_PREFIX):]
        logger.info(f"📚 Chain '{chain_id}' selected in chat {chat_id}")

        try:
            await engine.handle_chain_select(chat_id, chain_id)
        except Exception as e:
            logger.error(f"❌ Chain select failed in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    async def callback_start_questions(callback: CallbackQuery, engine):
        await CallbackHandlers._ack(callback)
        chat_id = callback.message.chat.id

        try:
            await engine.handle_start_questions(chat_id)
        except Exception as e:
            logger.error(f"❌ Start questions failed in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    async def callback_save_results(callback: CallbackQuery, engine):
        """Сохранить ответы и анализ в файл"""
        await CallbackHandlers._ack(callback)
        chat_id = callback.message.chat.id
        logger.info(f"💾 Save results requested in chat {chat_id}")

        try:
            await engine.save_results(chat_id)
        except Exception as e:
            logger.error(f"❌ Save results failed in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    async def callback_restart(callback: CallbackQuery, engine):
        await CallbackHandlers._ack(callback)
        chat_id = callback.message.chat.id

        try:
            await engine.handle_restart(chat_id)
        except Exception as e:
            logger.error(f"❌ Restart failed in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    async def _ack(callback: CallbackQuery):
        """Убирает "часики" на кнопке; устаревший callback не мешает обработке"""
        try:
            await callback.answer()
        except TelegramAPIError as e:
            logger.warning(f"⚠️ Callback answer failed: {e}")
