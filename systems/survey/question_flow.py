"""
Question Flow Engine - машина состояний опроса

Состояния выводятся из Session (см. SessionStatus):

    NoSession --start--> AWAITING_SELECTION (или сразу ANSWERING)
    AWAITING_SELECTION --select--> ANSWERING
    ANSWERING --answer--> ANSWERING | SUMMARIZING
    SUMMARIZING --summary (или fallback)--> COMPLETED
    COMPLETED --save--> COMPLETED
    COMPLETED --restart--> NoSession → start

Каждая операция выполняется под lock своего чата: события одного
чата обрабатываются по очереди, разные чаты не блокируют друг друга.
"""

import asyncio
import logging
from typing import Optional, Sequence

from subject_bot.ai.summary import SummaryService
from subject_bot.core.exceptions import ChainNotFoundError, TranscriptParseError
from subject_bot.messages import ChainCatalog, MessageService, MessageValidator, TelegramFormatter
from subject_bot.messages.constants import MessageConstants

from .session_store import Session, SessionStatus, SessionStore
from .transcript_exporter import ExportResult, TranscriptExporter
from .transcript_parser import TranscriptParser
from .transport import SurveyTransport

logger = logging.getLogger(__name__)


class QuestionFlowEngine:
    """
    Ведёт пользователя по цепочке вопросов

    Features:
    - Выбор языка и цепочки (меню пропускается, если выбора нет)
    - Прогресс "Вопрос N из M" + текст вопроса одним сообщением
    - Ограничение длины ответа без изменения сессии
    - Автоматический переход к анализу после последнего ответа
    - Сохранение результатов в файл и перезапуск
    - Импорт готового транскрипта
    """

    def __init__(
        self,
        store: SessionStore,
        catalog: ChainCatalog,
        messages: MessageService,
        summary: SummaryService,
        transport: SurveyTransport,
        exporter: TranscriptExporter,
        parser: Optional[TranscriptParser] = None,
        max_answer_length: int = 4000,
        answer_delay: float = 0.5,
        default_language: str = "ru",
        languages: Optional[Sequence[str]] = None
    ):
        self.store = store
        self.catalog = catalog
        self.messages = messages
        self.summary = summary
        self.transport = transport
        self.exporter = exporter
        self.parser = parser or TranscriptParser()

        self.max_answer_length = max_answer_length
        self.answer_delay = answer_delay
        self.default_language = default_language
        self.languages = list(languages or [default_language])

        self.validator = MessageValidator()
        self.formatter = TelegramFormatter()

        logger.info(
            f"✅ QuestionFlowEngine initialized "
            f"(languages={self.languages}, max_answer={max_answer_length}, delay={answer_delay}s)"
        )

    # ========================================================================
    # START / SELECTION
    # ========================================================================

    async def handle_start(self, chat_id: int):
        """Новая сессия: меню языков или сразу выбор цепочки"""
        async with self.store.lock(chat_id):
            await self._start(chat_id)

    async def handle_language_select(self, chat_id: int, language: str):
        async with self.store.lock(chat_id):
            if language not in self.languages:
                logger.warning(f"Unknown language '{language}' selected in chat {chat_id}")
                return

            await self._select_language(chat_id, language)

    async def handle_chain_select(self, chat_id: int, chain_id: str):
        """Выбор цепочки: новая сессия на текущем языке + кнопка старта"""
        async with self.store.lock(chat_id):
            session = self.store.get(chat_id)
            language = session.language if session else self.default_language

            if not self.catalog.has_chain(language, chain_id):
                logger.warning(f"Unknown chain '{chain_id}' for lang={language} in chat {chat_id}")
                return

            await self._begin_chain(chat_id, language, chain_id, start_now=False)

    async def handle_start_questions(self, chat_id: int):
        """Кнопка "Начать отвечать" после вступления цепочки"""
        async with self.store.lock(chat_id):
            session = self.store.get(chat_id)
            if session is None:
                await self._send_session_expired(chat_id)
                return

            if session.status != SessionStatus.AWAITING_SELECTION or not session.questions:
                logger.debug(f"start_questions ignored in chat {chat_id} (status={session.status.value})")
                return

            self.store.touch(chat_id)
            session.begin_questions()
            await self.send_next_question(session)

    async def handle_restart(self, chat_id: int):
        """Очистка сессии и повторный старт"""
        async with self.store.lock(chat_id):
            self.store.clear(chat_id)
            logger.info(f"🔄 Restart requested in chat {chat_id}")
            await self._start(chat_id)

    async def _start(self, chat_id: int):
        self.store.create(chat_id, self.default_language)

        if len(self.languages) > 1:
            await self.transport.send_text(
                chat_id,
                self.messages.get_message('choose_language', self.default_language),
                reply_markup=self.messages.get_language_keyboard(self.languages)
            )
            return

        await self._select_language(chat_id, self.languages[0])

    async def _select_language(self, chat_id: int, language: str):
        try:
            chain_ids = self.catalog.chain_ids(language)
        except ChainNotFoundError as e:
            logger.error(f"❌ {e.message} (chat {chat_id})")
            return

        if len(chain_ids) == 1:
            await self._begin_chain(chat_id, language, chain_ids[0], start_now=True)
            return

        self.store.create(chat_id, language)

        rows = []
        for chain_id in chain_ids:
            config = self.catalog.get_chain_config(language, chain_id)
            rows.append([(config.title, f"{MessageConstants.CALLBACK_CHAIN_PREFIX}{chain_id}")])

        await self.transport.send_text(
            chat_id,
            self.messages.get_message('choose_lesson', language),
            reply_markup=self.messages.build_keyboard(rows)
        )

    async def _begin_chain(self, chat_id: int, language: str, chain_id: str, start_now: bool):
        config = self.catalog.get_chain_config(language, chain_id)
        session = self.store.create(chat_id, language, chain_id, config.questions)

        if config.intro:
            await self.transport.send_text(chat_id, config.intro)

        if start_now:
            session.begin_questions()
            await self.send_next_question(session)
            return

        await self.transport.send_text(
            chat_id,
            self.messages.get_message('choose_action', language),
            reply_markup=self.messages.get_keyboard('survey_start', language)
        )

    # ========================================================================
    # ANSWERING
    # ========================================================================

    async def send_next_question(self, session: Session):
        """Текущий вопрос, либо анализ, если вопросы закончились"""
        if session.status == SessionStatus.SUMMARIZING:
            await self.generate_and_send_summary(session)
            return

        question = session.current_question
        if question is None:
            return

        text = self.messages.get_message(
            'question_progress', session.language,
            current=session.cursor + 1,
            total=session.question_count,
            question=question
        )
        await self.transport.send_text(session.chat_id, text)
        logger.debug(f"Question {session.cursor + 1}/{session.question_count} sent to chat {session.chat_id}")

    async def handle_answer(self, chat_id: int, text: str) -> bool:
        """
        Обработка текстового ответа

        Returns:
            True если ответ принят
        """
        if text is None or text.startswith('/'):
            return False

        async with self.store.lock(chat_id):
            session = self.store.get(chat_id)
            if session is None:
                await self._send_session_expired(chat_id)
                return False

            self.store.touch(chat_id)

            if session.status != SessionStatus.ANSWERING:
                logger.debug(f"Text ignored in chat {chat_id} (status={session.status.value})")
                return False

            validation = self.validator.validate_answer(text, self.max_answer_length)
            if not validation.is_valid:
                logger.info(f"⚠️ Answer rejected in chat {chat_id}: {'; '.join(validation.errors)}")
                await self.transport.send_text(
                    chat_id,
                    self.messages.get_message(
                        'answer_too_long', session.language, max_length=self.max_answer_length
                    )
                )
                await self.send_next_question(session)
                return False

            session.record_answer(text)
            logger.info(
                f"✅ Answer {session.cursor}/{session.question_count} accepted in chat {chat_id}"
            )

            if self.answer_delay > 0:
                await asyncio.sleep(self.answer_delay)

            await self.send_next_question(session)
            return True

    # ========================================================================
    # SUMMARY
    # ========================================================================

    async def generate_and_send_summary(self, session: Session):
        """SUMMARIZING → COMPLETED: анализ хранится даже если это fallback"""
        chat_id = session.chat_id
        language = session.language

        await self.transport.send_text(chat_id, self.messages.get_message('analyzing', language))
        await self.transport.send_typing(chat_id)

        summary = await self.summary.generate_summary(session.answers, language, session.chain)
        session.set_summary(summary)
        logger.info(f"🔮 Summary stored for chat {chat_id} ({len(summary)} chars)")

        safe_summary = self.formatter.sanitize_markdown(summary)
        await self.transport.send_text(
            chat_id,
            self.messages.get_message('deep_analysis', language, text=safe_summary)
        )

        congrats = self._get_congrats(language, session.chain)
        if congrats:
            await self.transport.send_text(chat_id, congrats)

        await self.transport.send_text(
            chat_id,
            self.messages.get_message('save_prompt', language),
            reply_markup=self.messages.get_keyboard('survey_completed', language)
        )

    def _get_congrats(self, language: str, chain_id: Optional[str]) -> Optional[str]:
        try:
            if chain_id is None:
                chain_id = self.catalog.default_chain(language)
            return self.catalog.get_chain_config(language, chain_id).congrats
        except ChainNotFoundError as e:
            logger.warning(f"No congrats text: {e.message}")
            return None

    # ========================================================================
    # EXPORT / IMPORT
    # ========================================================================

    async def save_results(self, chat_id: int) -> ExportResult:
        async with self.store.lock(chat_id):
            self.store.touch(chat_id)
            return await self.exporter.export(chat_id)

    async def import_transcript(self, chat_id: int, text: str) -> bool:
        """
        Импорт готового транскрипта: пары сразу попадают в сессию,
        затем запускается анализ

        Returns:
            True если найдена хотя бы одна пара
        """
        async with self.store.lock(chat_id):
            current = self.store.get(chat_id)
            language = current.language if current else self.default_language

            try:
                pairs = self.parser.parse(text)
            except TranscriptParseError as e:
                logger.info(f"📥 Import rejected in chat {chat_id}: {e.message}")
                await self.transport.send_text(chat_id, self.messages.get_message('import_empty', language))
                return False

            session = self.store.create(chat_id, language)
            session.load_transcript(pairs)

            await self.transport.send_text(
                chat_id,
                self.messages.get_message('import_accepted', language, count=len(pairs))
            )
            await self.generate_and_send_summary(session)
            return True

    # ========================================================================
    # HELPERS
    # ========================================================================

    def get_status(self, chat_id: int) -> Optional[SessionStatus]:
        """None если сессии нет"""
        session = self.store.get(chat_id)
        return session.status if session else None

    async def _send_session_expired(self, chat_id: int):
        logger.info(f"⌛ No session for chat {chat_id}")
        await self.transport.send_text(
            chat_id,
            self.messages.get_message('session_expired', self.default_language)
        )
