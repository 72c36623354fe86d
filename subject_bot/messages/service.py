"""
Message Service

Core service for centralized message management with i18n support
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from jinja2 import Environment, TemplateSyntaxError

from .constants import MessageConstants
from .formatters import TelegramFormatter
from .validators import MessageValidator

logger = logging.getLogger(__name__)


class MessageService:
    """Централизованный сервис сообщений"""

    def __init__(self, templates_dir: Optional[str] = None,
                 default_locale: str = MessageConstants.LOCALES['default']):
        if templates_dir is None:
            # Путь к шаблонам относительно этого файла
            templates_dir = Path(__file__).parent / "templates"

        self.templates_dir = Path(templates_dir)
        self.default_locale = default_locale
        self.validator = MessageValidator()
        self.formatter = TelegramFormatter()
        self.constants = MessageConstants()

        self.jinja_env = Environment(
            autoescape=False,  # Разметка Telegram, не HTML страницы
            trim_blocks=True,
            lstrip_blocks=True
        )

        # Кэш загруженных шаблонов
        self._templates_cache: Dict[str, Dict[str, Any]] = {}
        self._keyboards_cache: Dict[str, Dict[str, Any]] = {}

        self._load_all_templates()

        logger.info(f"MessageService initialized with templates from {self.templates_dir}")

    def _load_all_templates(self):
        """Загрузка всех шаблонов из файлов"""
        if not self.templates_dir.exists():
            logger.warning(f"Templates directory not found: {self.templates_dir}")
            return

        for locale_dir in sorted(self.templates_dir.iterdir()):
            if locale_dir.is_dir() and locale_dir.name in self.constants.LOCALES['supported']:
                self._load_locale_templates(locale_dir.name)

    def _load_locale_templates(self, locale: str):
        """Загрузка шаблонов для конкретной локали"""
        locale_path = self.templates_dir / locale

        self._templates_cache[locale] = {}
        self._keyboards_cache[locale] = {}

        for json_file in sorted(locale_path.glob("*.json")):
            try:
                with json_file.open('r', encoding='utf-8') as f:
                    data = json.load(f)

                category = json_file.stem

                # Разделяем сообщения и клавиатуры
                if 'keyboards' in data:
                    self._keyboards_cache[locale][category] = data['keyboards']
                    data = {k: v for k, v in data.items() if k != 'keyboards'}

                if data:
                    self._templates_cache[locale][category] = data

                logger.debug(f"Loaded templates for {locale}/{category}")

            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Failed to load {json_file}: {e}")

    @lru_cache(maxsize=512)
    def get_message(self, key: str, locale: str = 'ru',
                    category: str = 'ui', **kwargs) -> str:
        """Получить сообщение с подстановкой переменных"""

        template_data = self._get_template_data(key, locale, category)
        if not template_data:
            return f"[MISSING: {locale}.{category}.{key}]"

        template_str = template_data.get('template', '')
        if not template_str:
            return f"[EMPTY_TEMPLATE: {locale}.{category}.{key}]"

        try:
            template = self.jinja_env.from_string(template_str)
            rendered = template.render(**kwargs)
            return self.formatter.clean_telegram_text(rendered)

        except TemplateSyntaxError as e:
            logger.error(f"Template syntax error in {locale}.{category}.{key}: {e}")
            return f"[TEMPLATE_ERROR: {e}]"

        except Exception as e:
            logger.error(f"Error rendering template {locale}.{category}.{key}: {e}")
            return f"[RENDER_ERROR: {e}]"

    def get_setting(self, key: str, locale: str = 'ru', category: str = 'export',
                    default: Optional[str] = None) -> Optional[str]:
        """Получить сырое (нерендеримое) значение из шаблонов, например формат даты"""
        template_data = self._get_template_data(key, locale, category)
        if not template_data:
            return default
        return template_data.get('value', default)

    def get_keyboard(self, keyboard_key: str, locale: str = 'ru') -> Optional[InlineKeyboardMarkup]:
        """Получить готовую клавиатуру"""
        keyboard_data = self._get_keyboard_data(keyboard_key, locale)
        if not keyboard_data:
            logger.warning(f"Keyboard not found: {locale}.{keyboard_key}")
            return None

        try:
            return self._build_keyboard(keyboard_data.get('buttons', []))
        except Exception as e:
            logger.error(f"Error building keyboard {locale}.{keyboard_key}: {e}")
            return None

    def build_keyboard(self, rows: Sequence[Sequence[Tuple[str, str]]]) -> InlineKeyboardMarkup:
        """Построить клавиатуру из рядов (text, callback_data)"""
        return self._build_keyboard([
            [{'text': text, 'callback_data': data} for text, data in row]
            for row in rows
        ])

    def get_language_keyboard(self, languages: Sequence[str]) -> InlineKeyboardMarkup:
        """Клавиатура выбора языка (все языки в один ряд)"""
        row = [
            (self.constants.LANGUAGE_BUTTONS.get(lang, lang), f"{self.constants.CALLBACK_LANGUAGE_PREFIX}{lang}")
            for lang in languages
        ]
        return self.build_keyboard([row])

    def get_available_locales(self) -> List[str]:
        """Получить список доступных локалей"""
        return list(self._templates_cache.keys())

    def _get_template_data(self, key: str, locale: str, category: str) -> Optional[Dict[str, Any]]:
        """Получить данные шаблона с fallback на локаль по умолчанию"""

        template_data = (self._templates_cache
                         .get(locale, {})
                         .get(category, {})
                         .get(key))

        if template_data:
            return template_data

        if locale != self.default_locale:
            template_data = (self._templates_cache
                             .get(self.default_locale, {})
                             .get(category, {})
                             .get(key))

            if template_data:
                logger.debug(f"Using fallback {self.default_locale} for {locale}.{category}.{key}")
                return template_data

        return None

    def _get_keyboard_data(self, keyboard_key: str, locale: str) -> Optional[Dict[str, Any]]:
        """Получить данные клавиатуры с fallback"""

        for category_keyboards in self._keyboards_cache.get(locale, {}).values():
            if keyboard_key in category_keyboards:
                return category_keyboards[keyboard_key]

        if locale != self.default_locale:
            for category_keyboards in self._keyboards_cache.get(self.default_locale, {}).values():
                if keyboard_key in category_keyboards:
                    logger.debug(f"Using fallback {self.default_locale} keyboard for {locale}.{keyboard_key}")
                    return category_keyboards[keyboard_key]

        return None

    def _build_keyboard(self, buttons_data: List[List[Dict[str, Any]]]) -> InlineKeyboardMarkup:
        """Построение клавиатуры из данных"""
        keyboard = []
        for row in buttons_data:
            button_row = []
            for button_config in row:
                text = button_config.get('text', '')
                callback_data = button_config.get('callback_data', '')
                url = button_config.get('url')

                text_result = self.validator.validate_button_text(text)
                if not text_result.is_valid:
                    logger.warning(f"Invalid button text: {text_result.errors}")
                    continue

                if callback_data:
                    callback_result = self.validator.validate_callback_data(callback_data)
                    if not callback_result.is_valid:
                        logger.warning(f"Invalid callback_data: {callback_result.errors}")
                        continue

                    button = InlineKeyboardButton(text=text, callback_data=callback_data)
                elif url:
                    button = InlineKeyboardButton(text=text, url=url)
                else:
                    logger.warning(f"Button without callback_data or url: {button_config}")
                    continue

                button_row.append(button)

            if button_row:
                keyboard.append(button_row)

        return InlineKeyboardMarkup(inline_keyboard=keyboard)
