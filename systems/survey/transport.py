"""
Survey Transport Protocol - что ядро опроса требует от мессенджера

Все методы best-effort: ошибки доставки логируются реализацией
и возвращаются как False, но не пробрасываются в движок.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union


class SurveyTransport(ABC):
    """Интерфейс транспорта для QuestionFlowEngine и TranscriptExporter"""

    @abstractmethod
    async def send_text(self, chat_id: int, text: str, reply_markup: Optional[Any] = None) -> bool:
        """Отправить текст (с клавиатурой, если передана)"""
        pass

    @abstractmethod
    async def send_typing(self, chat_id: int) -> bool:
        """Показать индикатор набора текста"""
        pass

    @abstractmethod
    async def send_file(self, chat_id: int, file: Union[str, Path, bytes], caption: str = "",
                        filename: Optional[str] = None) -> bool:
        """Отправить файл (путь или байты) с подписью"""
        pass
