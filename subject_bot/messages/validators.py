"""
Message Validators

Validation of user answers, buttons and callback data for Telegram
"""

from dataclasses import dataclass, field
from typing import List

from .constants import MessageConstants


@dataclass
class ValidationResult:
    """Результат валидации"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str):
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        self.warnings.append(warning)


class MessageValidator:
    """Валидатор сообщений для Telegram"""

    def validate_answer(self, text: str, max_length: int) -> ValidationResult:
        """
        Проверка ответа пользователя

        Только ограничение длины: пустой ответ (после trim) допускается.
        """
        result = ValidationResult(is_valid=True)

        if text is None:
            result.add_error("Answer is missing")
            return result

        if len(text) > max_length:
            result.add_error(f"Answer too long: {len(text)} characters (max {max_length})")
        elif not text.strip():
            result.add_warning("Answer is empty")

        return result

    def validate_button_text(self, text: str) -> ValidationResult:
        """Валидация текста кнопки"""
        result = ValidationResult(is_valid=True)

        if not text or not text.strip():
            result.add_error("Button text is empty")
        elif len(text) > MessageConstants.BUTTON_TEXT_LIMIT:
            result.add_warning(f"Button text is long: {len(text)} characters")

        return result

    def validate_callback_data(self, callback_data: str) -> ValidationResult:
        """Валидация callback_data (лимит Telegram - 64 байта)"""
        result = ValidationResult(is_valid=True)

        if not callback_data:
            result.add_error("callback_data is empty")
            return result

        size = len(callback_data.encode('utf-8'))
        if size > MessageConstants.CALLBACK_DATA_LIMIT:
            result.add_error(f"callback_data too long: {size} bytes (max 64)")

        return result
