"""
Telegram Gateway - транспорт опроса поверх aiogram Bot

Отвечает за:
- Отправку текста (длинные сообщения режутся на части по параграфам)
- Индикатор "печатает..."
- Отправку файлов
- Скачивание загруженных документов

Ошибки доставки логируются и возвращаются как False, без retry.
"""

import io
import logging
from pathlib import Path
from typing import Any, Optional, Union

from aiogram import Bot
from aiogram.enums import ChatAction, ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BufferedInputFile, FSInputFile

from subject_bot.messages import TelegramFormatter
from systems.survey.transport import SurveyTransport

logger = logging.getLogger(__name__)


class TelegramGateway(SurveyTransport):
    """Реализация SurveyTransport для Telegram"""

    def __init__(self, bot: Bot, formatter: Optional[TelegramFormatter] = None,
                 parse_mode: Optional[str] = ParseMode.MARKDOWN):
        self.bot = bot
        self.formatter = formatter or TelegramFormatter()
        self.parse_mode = parse_mode

    async def send_text(self, chat_id: int, text: str, reply_markup: Optional[Any] = None) -> bool:
        """
        Отправляет текст; клавиатура прикрепляется к последней части

        Returns:
            True если все части доставлены
        """
        parts = self.formatter.split_message(text)

        try:
            for i, part in enumerate(parts):
                is_last = i == len(parts) - 1
                await self.bot.send_message(
                    chat_id,
                    part,
                    parse_mode=self.parse_mode,
                    reply_markup=reply_markup if is_last else None
                )
        except TelegramAPIError as e:
            logger.error(f"❌ Failed to send message to chat {chat_id}: {e}")
            return False

        if len(parts) > 1:
            logger.info(f"📤 Long message sent to chat {chat_id} in {len(parts)} parts")
        return True

    async def send_typing(self, chat_id: int) -> bool:
        try:
            await self.bot.send_chat_action(chat_id, ChatAction.TYPING)
        except TelegramAPIError as e:
            logger.error(f"❌ Failed to send typing to chat {chat_id}: {e}")
            return False
        return True

    async def send_file(self, chat_id: int, file: Union[str, Path, bytes], caption: str = "",
                        filename: Optional[str] = None) -> bool:
        if isinstance(file, bytes):
            document = BufferedInputFile(file, filename=filename or "results.txt")
        else:
            document = FSInputFile(file, filename=filename)

        try:
            await self.bot.send_document(chat_id, document, caption=caption or None)
        except TelegramAPIError as e:
            logger.error(f"❌ Failed to send file to chat {chat_id}: {e}")
            return False

        logger.info(f"📎 File sent to chat {chat_id}")
        return True

    async def download_text(self, file_id: str, encoding: str = 'utf-8-sig') -> Optional[str]:
        """Скачивает документ в память и декодирует; None при ошибке"""
        buffer = io.BytesIO()

        try:
            await self.bot.download(file_id, destination=buffer)
        except TelegramAPIError as e:
            logger.error(f"❌ Failed to download file {file_id}: {e}")
            return None

        try:
            return buffer.getvalue().decode(encoding)
        except UnicodeDecodeError as e:
            logger.warning(f"⚠️ Uploaded file is not valid {encoding}: {e}")
            return None
