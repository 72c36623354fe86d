"""
Session Store - in-memory хранилище сессий опроса

Управляет lifecycle сессий:
- Создание (перезапись) / получение / удаление
- Отметка активности
- Фоновая очистка сессий без активности (sweep)

Состояние живёт только в памяти процесса и теряется при перезапуске.
Все операции над словарём синхронные и выполняются в event loop,
поэтому sweep и обработчики событий не пересекаются посреди операции.
Последовательность событий одного чата обеспечивает lock(chat_id).
Время активности считается по time.monotonic(), перевод системных
часов не влияет на истечение сессий.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Dict, List, NamedTuple, Optional

from subject_bot.core.exceptions import SessionStateError

logger = logging.getLogger(__name__)


# ============================================================================
# MODELS
# ============================================================================

class SessionStatus(str, Enum):
    """Производные состояния сессии (не хранятся, вычисляются)"""
    AWAITING_SELECTION = "awaiting_selection"
    ANSWERING = "answering"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"


class QAPair(NamedTuple):
    """Пара вопрос-ответ в порядке вопросов"""
    question: str
    answer: str


@dataclass
class Session:
    """
    Сессия опроса одного чата

    cursor - индекс следующего вопроса, 0 <= cursor <= len(questions).
    questions - снимок списка вопросов активной цепочки на момент выбора.
    """
    chat_id: int
    language: str
    chain: Optional[str] = None
    questions: List[str] = field(default_factory=list)
    cursor: int = 0
    answers: List[QAPair] = field(default_factory=list)
    summary: Optional[str] = None
    questions_started: bool = False
    last_activity: float = field(default_factory=time.monotonic)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def status(self) -> SessionStatus:
        if not self.questions_started:
            return SessionStatus.AWAITING_SELECTION
        if self.summary is not None:
            return SessionStatus.COMPLETED
        if self.cursor >= self.question_count:
            return SessionStatus.SUMMARIZING
        return SessionStatus.ANSWERING

    @property
    def current_question(self) -> Optional[str]:
        if self.cursor < self.question_count:
            return self.questions[self.cursor]
        return None

    def begin_questions(self):
        """Переход к первому вопросу"""
        if not self.questions:
            raise SessionStateError(self.chat_id, "no questions selected")
        self.questions_started = True
        self.check_invariants()

    def record_answer(self, answer: str) -> QAPair:
        """Сохраняет ответ на текущий вопрос и сдвигает cursor"""
        if self.status != SessionStatus.ANSWERING:
            raise SessionStateError(self.chat_id, f"cannot accept answer in state {self.status.value}")

        pair = QAPair(question=self.questions[self.cursor], answer=answer.strip())
        self.answers.append(pair)
        self.cursor += 1

        self.check_invariants()
        return pair

    def load_transcript(self, pairs: List[QAPair]):
        """Заполняет сессию готовыми парами, минуя ответы по одному"""
        if self.answers:
            raise SessionStateError(self.chat_id, "transcript can only be loaded into an empty session")

        self.questions = [pair.question for pair in pairs]
        self.answers = [QAPair(pair.question, pair.answer.strip()) for pair in pairs]
        self.cursor = len(self.answers)
        self.questions_started = True
        self.check_invariants()

    def set_summary(self, summary: str):
        """Сохраняет анализ (один раз за жизнь сессии)"""
        if self.summary is not None:
            raise SessionStateError(self.chat_id, "summary already generated")
        if self.status != SessionStatus.SUMMARIZING:
            raise SessionStateError(self.chat_id, f"cannot store summary in state {self.status.value}")

        self.summary = summary
        self.check_invariants()

    def check_invariants(self):
        if not 0 <= self.cursor <= self.question_count:
            raise SessionStateError(
                self.chat_id, f"cursor {self.cursor} out of range 0..{self.question_count}"
            )
        if len(self.answers) != self.cursor:
            raise SessionStateError(
                self.chat_id, f"{len(self.answers)} answers stored for cursor {self.cursor}"
            )
        for i, pair in enumerate(self.answers):
            if pair.question != self.questions[i]:
                raise SessionStateError(self.chat_id, f"answer {i} is labeled with a foreign question")


# ============================================================================
# SESSION STORE
# ============================================================================

class _ChatLock:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.holders = 0


class SessionStore:
    """
    Хранилище сессий: chat_id → Session

    Features:
    - create перезаписывает предыдущую сессию (единственный reset)
    - get никогда не создаёт сессию
    - clear идемпотентен
    - Фоновый sweep каждые sweep_interval удаляет сессии старше timeout
    """

    def __init__(self, timeout_minutes: float = 30, sweep_interval_minutes: float = 10):
        if sweep_interval_minutes >= timeout_minutes:
            raise ValueError("sweep interval must be shorter than session timeout")

        # Секунды
        self.timeout = timeout_minutes * 60
        self.sweep_interval = sweep_interval_minutes * 60

        self._sessions: Dict[int, Session] = {}
        # Только чаты с операцией в работе или в очереди
        self._locks: Dict[int, _ChatLock] = {}

        # Background tasks
        self._sweep_task: Optional[asyncio.Task] = None

    # ========================================================================
    # CRUD
    # ========================================================================

    def create(
        self,
        chat_id: int,
        language: str,
        chain: Optional[str] = None,
        questions: Optional[List[str]] = None
    ) -> Session:
        """Создает (или перезаписывает) сессию с cursor=0"""
        session = Session(
            chat_id=chat_id,
            language=language,
            chain=chain,
            questions=list(questions or []),
        )
        replaced = chat_id in self._sessions
        self._sessions[chat_id] = session

        logger.info(
            f"Session {'re' if replaced else ''}created for chat {chat_id} "
            f"(lang={language}, chain={chain}, questions={session.question_count})"
        )
        return session

    def get(self, chat_id: int) -> Optional[Session]:
        return self._sessions.get(chat_id)

    def clear(self, chat_id: int) -> bool:
        """Удаляет сессию; повторный вызов ничего не делает"""
        session = self._sessions.pop(chat_id, None)

        if session is not None:
            logger.info(f"Session cleared for chat {chat_id}")
            return True
        return False

    def touch(self, chat_id: int) -> bool:
        session = self._sessions.get(chat_id)
        if session is None:
            return False
        session.last_activity = time.monotonic()
        return True

    def clear_all(self):
        count = len(self._sessions)
        self._sessions.clear()
        logger.info(f"All sessions discarded ({count})")

    @asynccontextmanager
    async def lock(self, chat_id: int) -> AsyncIterator[None]:
        """
        Последовательная обработка событий одного чата

        Lock живёт, пока его кто-то держит или ждёт, и удаляется
        после выхода последнего, есть у чата сессия или нет.
        """
        entry = self._locks.get(chat_id)
        if entry is None:
            entry = _ChatLock()
            self._locks[chat_id] = entry

        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0 and self._locks.get(chat_id) is entry:
                del self._locks[chat_id]

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    def __len__(self) -> int:
        return len(self._sessions)

    # ========================================================================
    # EXPIRY
    # ========================================================================

    def sweep(self, now: Optional[float] = None) -> List[int]:
        """
        Удаляет сессии без активности дольше timeout

        Args:
            now: момент по шкале time.monotonic()

        Returns:
            Список chat_id удалённых сессий
        """
        if now is None:
            now = time.monotonic()

        expired = [
            chat_id for chat_id, session in self._sessions.items()
            if now - session.last_activity > self.timeout
        ]

        for chat_id in expired:
            del self._sessions[chat_id]
            logger.info(f"🧹 Cleaned up stale session for chat {chat_id}")

        return expired

    async def start(self):
        """Запускает фоновый sweep"""
        if self._sweep_task and not self._sweep_task.done():
            return

        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            f"✅ Session sweeper started (timeout={self.timeout}s, interval={self.sweep_interval}s)"
        )

    async def stop(self):
        """Останавливает sweep и удаляет все сессии"""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        self.clear_all()
        logger.info("✅ Session store stopped")

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self):
        """Фоновая очистка устаревших сессий"""
        while True:
            try:
                await asyncio.sleep(self.sweep_interval)

                expired = self.sweep()
                if expired:
                    logger.info(f"Sessions timed out: {expired}")

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Session sweep error: {e}", exc_info=True)
