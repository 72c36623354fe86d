"""
Survey Handlers - ответы на вопросы и импорт транскрипта

- Текст (не команда) → QuestionFlowEngine.handle_answer
- Документ .txt → TranscriptParser → сразу анализ
"""

import logging
from aiogram.types import Message

from ..config import IMPORT_EXTENSIONS, IMPORT_MIME_TYPES

logger = logging.getLogger(__name__)


class SurveyHandlers:
    """Обработчики сообщений во время опроса"""

    @staticmethod
    async def handle_answer(message: Message, engine):
        """Текстовый ответ на текущий вопрос"""
        chat_id = message.chat.id

        try:
            await engine.handle_answer(chat_id, message.text)
        except Exception as e:
            logger.error(f"❌ Error handling answer in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    async def handle_document(message: Message, engine, gateway, messages, max_import_bytes: int):
        """
        Загруженный транскрипт

        Проверяет тип и размер файла, скачивает и передаёт в движок.
        """
        chat_id = message.chat.id
        document = message.document
        language = SurveyHandlers._session_language(engine, chat_id, messages)

        file_name = (document.file_name or "").lower()
        is_text = file_name.endswith(IMPORT_EXTENSIONS) or document.mime_type in IMPORT_MIME_TYPES
        if not is_text:
            logger.info(f"📥 Unsupported upload in chat {chat_id}: {document.file_name} ({document.mime_type})")
            await gateway.send_text(chat_id, messages.get_message('import_unsupported', language))
            return

        if document.file_size and document.file_size > max_import_bytes:
            logger.info(f"📥 Upload too large in chat {chat_id}: {document.file_size} bytes")
            await gateway.send_text(
                chat_id,
                messages.get_message('import_too_large', language, max_kb=max_import_bytes // 1024)
            )
            return

        try:
            text = await gateway.download_text(document.file_id)
            if text is None:
                await gateway.send_text(chat_id, messages.get_message('import_unsupported', language))
                return

            logger.info(f"📥 Transcript uploaded in chat {chat_id}: {document.file_name} ({len(text)} chars)")
            await engine.import_transcript(chat_id, text)

        except Exception as e:
            logger.error(f"❌ Error importing transcript in chat {chat_id}: {e}", exc_info=True)

    @staticmethod
    def _session_language(engine, chat_id: int, messages) -> str:
        session = engine.store.get(chat_id)
        return session.language if session else messages.default_locale
