"""
Transcript Exporter - выгрузка ответов и анализа в .txt

Порядок секций фиксирован:
    заголовок, дата/время, ответы (вопрос N, вопрос, ответ, разделитель),
    глубокий анализ (или "недоступен"), поздравление.

Временный файл удаляется сразу после попытки отправки
при любом исходе (успех, ошибка доставки, исключение).
"""

import logging
import tempfile
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from subject_bot.messages import ChainCatalog, MessageService
from subject_bot.messages.constants import MessageConstants

from .session_store import Session, SessionStore
from .transport import SurveyTransport

logger = logging.getLogger(__name__)


class ExportResult(str, Enum):
    DELIVERED = "delivered"
    NO_SESSION = "no_session"
    SEND_FAILED = "send_failed"


class TranscriptExporter:
    """Рендер и отправка файла с результатами; сессию не изменяет"""

    def __init__(
        self,
        store: SessionStore,
        messages: MessageService,
        transport: SurveyTransport,
        catalog: Optional[ChainCatalog] = None,
        export_dir: Optional[Path] = None
    ):
        self.store = store
        self.messages = messages
        self.transport = transport
        self.catalog = catalog
        self.export_dir = Path(export_dir) if export_dir else Path(tempfile.gettempdir())

    async def export(self, chat_id: int) -> ExportResult:
        session = self.store.get(chat_id)
        if session is None:
            logger.info(f"💾 Nothing to export for chat {chat_id}")
            await self.transport.send_text(
                chat_id, self.messages.get_message('no_data_to_save', self.messages.default_locale)
            )
            return ExportResult.NO_SESSION

        now = datetime.now()
        content = self.render(session, now)
        file_path = self.export_dir / f"results_{chat_id}_{int(now.timestamp() * 1000)}.txt"

        delivered = False
        try:
            self.export_dir.mkdir(parents=True, exist_ok=True)
            file_path.write_text(content, encoding='utf-8')

            delivered = await self.transport.send_file(
                chat_id,
                file_path,
                caption=self.messages.get_message('results_caption', session.language)
            )
        except Exception as e:
            logger.error(f"❌ Export failed for chat {chat_id}: {e}", exc_info=True)
        finally:
            file_path.unlink(missing_ok=True)
            logger.debug(f"Temporary export file removed: {file_path.name}")

        if delivered:
            logger.info(f"💾 Results sent to chat {chat_id} ({len(session.answers)} answers)")
            await self.transport.send_text(
                chat_id, self.messages.get_message('results_saved', session.language)
            )
            return ExportResult.DELIVERED

        await self.transport.send_text(
            chat_id, self.messages.get_message('export_failed', session.language)
        )
        return ExportResult.SEND_FAILED

    def render(self, session: Session, now: datetime) -> str:
        """Детерминированный текст документа для момента now"""
        lang = session.language
        heavy = MessageConstants.BORDER_HEAVY
        light = MessageConstants.BORDER_LIGHT

        date_format = self.messages.get_setting('date_format', lang, default='%d.%m.%Y')
        time_format = self.messages.get_setting('time_format', lang, default='%H:%M:%S')

        lines: List[str] = [
            heavy,
            f"   {self._label('header', session)}",
            heavy,
            "",
            f"{self._label('date', session)} {now.strftime(date_format)}",
            f"{self._label('time', session)} {now.strftime(time_format)}",
            "",
            light,
            f"   {self._label('answers', session)}",
            light,
            "",
        ]

        for i, pair in enumerate(session.answers, start=1):
            lines.extend([
                self._label('question_label', session, number=i),
                pair.question,
                "",
                self._label('answer_label', session),
                pair.answer,
                "",
                light,
                "",
            ])

        lines.extend([
            heavy,
            f"   {self._label('analysis_header', session)}",
            heavy,
            "",
            session.summary if session.summary is not None else self._label('analysis_unavailable', session),
            "",
            heavy,
            f"   {self._label('congrats_footer', session)}",
            heavy,
        ])

        return "\n".join(lines) + "\n"

    def _label(self, key: str, session: Session, **kwargs) -> str:
        """Подпись из export шаблонов; цепочка может переопределить"""
        override = self._chain_labels(session).get(key)
        if override is not None:
            return override.format(**kwargs) if kwargs else override
        return self.messages.get_message(key, session.language, 'export', **kwargs)

    def _chain_labels(self, session: Session) -> dict:
        if self.catalog is None or session.chain is None:
            return {}
        if not self.catalog.has_chain(session.language, session.chain):
            return {}
        return self.catalog.get_chain_config(session.language, session.chain).export_labels
