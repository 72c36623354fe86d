"""
Survey System - ядро опроса

Components:
- SessionStore: in-memory сессии с фоновой очисткой
- QuestionFlowEngine: машина состояний вопрос/ответ
- TranscriptExporter: выгрузка результатов в файл
- TranscriptParser: импорт готового транскрипта
"""

from .session_store import QAPair, Session, SessionStatus, SessionStore
from .transport import SurveyTransport
from .transcript_parser import TranscriptParser
from .transcript_exporter import ExportResult, TranscriptExporter
from .question_flow import QuestionFlowEngine

__all__ = [
    'QAPair',
    'Session',
    'SessionStatus',
    'SessionStore',
    'SurveyTransport',
    'TranscriptParser',
    'ExportResult',
    'TranscriptExporter',
    'QuestionFlowEngine',
]
