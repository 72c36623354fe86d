"""
Telegram Formatters

Safe formatting utilities for Telegram messages in legacy Markdown mode
"""

import re
from typing import List

from .constants import MessageConstants


class TelegramFormatter:
    """Форматтер для Telegram сообщений"""

    # Символы разметки legacy Markdown, которые ломают парсинг без пары
    MARKDOWN_PAIRED = ('*', '_', '`')
    HEADING = re.compile(r'^[ \t]{0,3}#{1,6}[ \t]+(.+?)[ \t]*#*[ \t]*$', re.MULTILINE)

    def __init__(self):
        self.constants = MessageConstants()

    def sanitize_markdown(self, text: str) -> str:
        """
        Приводит AI-разметку к legacy Markdown Telegram

        - **bold** → *bold*
        - __italic__ → _italic_
        - # Заголовок → *Заголовок*
        - непарные *, _, ` экранируются
        """
        if not text:
            return ""

        # Заголовки до **, звёздочки внутри заголовка снимаются
        safe = self.HEADING.sub(lambda m: f"*{m.group(1).replace('*', '').strip()}*", text)
        safe = re.sub(r'\*\*(.+?)\*\*', r'*\1*', safe, flags=re.DOTALL)
        safe = re.sub(r'__(.+?)__', r'_\1_', safe, flags=re.DOTALL)

        for char in self.MARKDOWN_PAIRED:
            if self._count_unescaped(safe, char) % 2:
                safe = self._escape_char(safe, char)

        # Непарная квадратная скобка начинает ссылку
        if safe.count('[') != safe.count(']'):
            safe = self._escape_char(safe, '[')

        return safe

    def clean_telegram_text(self, text: str) -> str:
        """Очистка текста для Telegram"""
        if not text:
            return ""

        # Удаляем лишние переносы строк
        text = re.sub(r'\n{3,}', '\n\n', text)

        # Удаляем пробелы в конце строк
        lines = [line.rstrip() for line in text.split('\n')]
        text = '\n'.join(lines)

        return text.strip()

    def split_message(self, text: str, max_length: int = None) -> List[str]:
        """
        Разбивает длинный текст на части по параграфам

        Telegram лимит: 4096 символов на сообщение.
        Сначала режем по двойным переносам, затем по строкам,
        и только строку длиннее лимита режем жёстко.
        """
        max_length = max_length or self.constants.SAFE_MESSAGE_LENGTH

        if len(text) <= max_length:
            return [text]

        parts = []
        current_part = ""

        for paragraph in text.split('\n\n'):
            if len(paragraph) > max_length:
                for line in paragraph.split('\n'):
                    while len(line) > max_length:
                        if current_part:
                            parts.append(current_part.strip())
                            current_part = ""
                        parts.append(line[:max_length])
                        line = line[max_length:]

                    if len(current_part) + len(line) + 1 <= max_length:
                        current_part += line + '\n'
                    else:
                        if current_part:
                            parts.append(current_part.strip())
                        current_part = line + '\n'
            else:
                if len(current_part) + len(paragraph) + 2 <= max_length:
                    current_part += paragraph + '\n\n'
                else:
                    if current_part:
                        parts.append(current_part.strip())
                    current_part = paragraph + '\n\n'

        if current_part.strip():
            parts.append(current_part.strip())

        return parts

    @staticmethod
    def _count_unescaped(text: str, char: str) -> int:
        return len(re.findall(r'(?<!\\)' + re.escape(char), text))

    @staticmethod
    def _escape_char(text: str, char: str) -> str:
        return re.sub(r'(?<!\\)' + re.escape(char), '\\\\' + char, text)
