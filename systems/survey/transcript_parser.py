"""
Transcript Parser - разбор готового текстового транскрипта

Правила по строкам:
- "Вопрос N" / "Питання N" / "Question N" (с любым префиксом из эмодзи)
  начинает новую пару; текст после маркера - вопрос
- если в документе нет таких маркеров, новую пару начинает строка "N." / "N)"
- "Ответ" / "Відповідь" / "Answer" начинает ответ
- остальные непустые строки после вопроса копятся в ответ
- после маркера ответа строка "Вопрос N ..." начинает новую пару, только если
  это голая подпись или (вне формата выгрузки) N - следующий номер
- декоративные строки (═══, ───, ***) пропускаются, внутри ответа остаются,
  если за ними ответ продолжается
- баннер анализа ("ГЛУБОКИЙ АНАЛИЗ" и т.п.) завершает разбор

Понимает и собственный формат выгрузки бота.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from subject_bot.core.exceptions import TranscriptParseError

from .session_store import QAPair

logger = logging.getLogger(__name__)

QUESTION_MARKER = re.compile(
    r'^\W*(?:вопрос|питання|question)\s*№?\s*(\d+)\s*[:.)\-–—]?\s*(.*)$',
    re.IGNORECASE
)
NUMBERED_LINE = re.compile(r'^\s*(\d+)\s*[.)]\s+(.+)$')
ANSWER_MARKER = re.compile(
    r'^\W*(?:ответ|відповідь|answer)\b\s*[:.\-–—]?\s*(.*)$',
    re.IGNORECASE
)
ANALYSIS_BANNER = re.compile(
    r'^\W*(?:глубокий анализ|глибокий аналіз|deep analysis)\W*$',
    re.IGNORECASE
)
DECORATIVE_LINE = re.compile(r'^[\s═─━=\-_*~#•·]{3,}$')


@dataclass
class _PendingPair:
    number: int
    question_lines: List[str] = field(default_factory=list)
    answer_lines: List[str] = field(default_factory=list)
    answer_marked: bool = False
    # Декоративные строки внутри ответа; сохраняются, если ответ продолжается
    held_lines: List[str] = field(default_factory=list)

    def add_answer_line(self, line: str):
        self.answer_lines.extend(self.held_lines)
        self.held_lines = []
        self.answer_lines.append(line)

    def starts_next(self, number: int, remainder: str, labels_only: bool) -> bool:
        """Строка-маркер внутри ответа начинает новую пару или продолжает ответ"""
        if not self.answer_marked or not remainder:
            return True
        return not labels_only and number == self.number + 1

    def to_pair(self) -> Optional[QAPair]:
        question = " ".join(self.question_lines).strip()
        if not question:
            return None
        return QAPair(question=question, answer="\n".join(self.answer_lines).strip())


class TranscriptParser:
    """Парсер пар вопрос/ответ из свободного текста"""

    def parse(self, text: str) -> List[QAPair]:
        """
        Returns:
            Распознанные пары в порядке документа

        Raises:
            TranscriptParseError: если не найдено ни одной пары
        """
        lines = (text or "").replace('\r\n', '\n').replace('\r', '\n').split('\n')
        markers = [m for m in (QUESTION_MARKER.match(line.strip()) for line in lines) if m]
        use_markers = bool(markers)
        # Формат выгрузки: подпись "Вопрос N:" на отдельной строке
        labels_only = use_markers and not markers[0].group(2).strip()

        pairs: List[QAPair] = []
        current: Optional[_PendingPair] = None

        for raw_line in lines:
            line = raw_line.strip()

            if not line:
                continue

            if DECORATIVE_LINE.match(line):
                if current is not None and current.answer_marked:
                    current.held_lines.append(line)
                continue

            if ANALYSIS_BANNER.match(line):
                break

            marker = self._match_question(line, use_markers)
            if marker is not None:
                number, remainder = marker
                if current is None or current.starts_next(number, remainder, labels_only):
                    self._flush(current, pairs)
                    current = _PendingPair(number=number)
                    if remainder:
                        current.question_lines.append(remainder)
                    continue

            if current is None:
                # Заголовок документа до первого вопроса
                continue

            answer_match = ANSWER_MARKER.match(line)
            if answer_match and not current.answer_marked:
                # Строки до маркера ответа - продолжение вопроса
                current.question_lines.extend(current.answer_lines)
                current.answer_lines = []
                current.answer_marked = True
                if answer_match.group(1):
                    current.answer_lines.append(answer_match.group(1))
                continue

            if not current.question_lines:
                current.question_lines.append(line)
            else:
                current.add_answer_line(line)

        self._flush(current, pairs)

        if not pairs:
            raise TranscriptParseError(f"{len(lines)} lines scanned")

        logger.info(f"📥 Transcript parsed: {len(pairs)} question/answer pairs")
        return pairs

    @staticmethod
    def _match_question(line: str, use_markers: bool) -> Optional[Tuple[int, str]]:
        if use_markers:
            match = QUESTION_MARKER.match(line)
        else:
            match = NUMBERED_LINE.match(line)
        if match:
            return int(match.group(1)), match.group(2).strip()
        return None

    @staticmethod
    def _flush(current: Optional[_PendingPair], pairs: List[QAPair]):
        if current is None:
            return
        pair = current.to_pair()
        if pair is not None:
            pairs.append(pair)
