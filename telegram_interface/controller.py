"""
Subject Bot Controller - координатор

Этот controller - только координация и композиция, без бизнес-логики.

Архитектура:
- lifecycle: Управление жизненным циклом бота
- handlers: Обработчики команд, ответов и кнопок
- middleware: Промежуточные слои
- gateway: Транспорт опроса поверх aiogram Bot
"""

import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from pydantic import ValidationError

from subject_bot.ai import SummaryService
from subject_bot.core import ConfigurationError, Settings, get_settings, setup_logging
from subject_bot.core.logging import get_logger
from subject_bot.messages import get_chain_catalog, get_message_service
from systems.survey import QuestionFlowEngine, SessionStore, TranscriptExporter

from .gateway import TelegramGateway
from .handler_registry import HandlerRegistry
from .lifecycle import BotLifecycle

logger = logging.getLogger(__name__)


class SubjectBotController:
    """
    Контроллер Subject Bot

    Ответственность:
    - Композиция всех компонентов
    - Инициализация Bot и Dispatcher
    - Регистрация handlers через HandlerRegistry
    - Запуск через BotLifecycle

    НЕ содержит:
    - Бизнес-логику
    - Обработчики команд
    - Прямое управление lifecycle
    """

    def __init__(self, settings: Settings):
        logger.info("🤖 Initializing Subject Bot Controller...")
        self.settings = settings

        # 1. Create Bot and Dispatcher
        self.bot = Bot(token=settings.telegram_bot_token)
        self.dp = Dispatcher()
        logger.info("✅ Bot and Dispatcher created")

        # 2. Static data: messages and question chains
        self.messages = get_message_service(default_locale=settings.default_language)
        self.catalog = get_chain_catalog()
        missing = [lang for lang in settings.languages if lang not in self.catalog.languages()]
        if missing:
            raise ConfigurationError(f"no question chains for languages: {missing}")
        logger.info(f"✅ MessageService initialized (locales: {self.messages.get_available_locales()})")

        # 3. Survey core
        self.store = SessionStore(
            timeout_minutes=settings.session_timeout_minutes,
            sweep_interval_minutes=settings.sweep_interval_minutes
        )
        self.gateway = TelegramGateway(self.bot)
        self.summary = SummaryService(
            catalog=self.catalog,
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            model=settings.summary_model,
            temperature=settings.summary_temperature,
            max_tokens=settings.summary_max_tokens,
            timeout=settings.summary_timeout_seconds,
            default_language=settings.default_language
        )
        self.exporter = TranscriptExporter(
            store=self.store,
            messages=self.messages,
            transport=self.gateway,
            catalog=self.catalog,
            export_dir=settings.export_dir
        )
        self.engine = QuestionFlowEngine(
            store=self.store,
            catalog=self.catalog,
            messages=self.messages,
            summary=self.summary,
            transport=self.gateway,
            exporter=self.exporter,
            max_answer_length=settings.max_answer_length,
            answer_delay=settings.answer_delay_seconds,
            default_language=settings.default_language,
            languages=settings.languages
        )

        # 4. Handlers
        self.handler_registry = HandlerRegistry(
            dp=self.dp,
            engine=self.engine,
            gateway=self.gateway,
            messages=self.messages,
            max_import_bytes=settings.max_import_bytes
        )
        self.handler_registry.register_all()

        # 5. Lifecycle
        self.lifecycle = BotLifecycle(
            bot=self.bot,
            dispatcher=self.dp,
            store=self.store,
            summary=self.summary
        )

        logger.info("🎉 Subject Bot Controller initialized successfully")

    async def start(self):
        """Запуск бота (lifecycle делает всё остальное)"""
        logger.info("🚀 Starting Subject Bot...")
        await self.lifecycle.start_polling()

    async def stop(self):
        logger.info("🛑 Stopping Subject Bot...")
        await self.lifecycle.stop()


async def main():
    """
    Точка входа для запуска бота

    Использование:
        python -m telegram_interface.controller
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        get_logger(__name__).error("startup_aborted", reason="invalid configuration", errors=e.errors())
        sys.exit(1)

    setup_logging(level=settings.log_level, json_format=settings.json_logs, app_name=settings.app_name)
    get_logger(__name__).info(
        "startup",
        app=settings.app_name,
        languages=settings.languages,
        ai_enabled=bool(settings.openrouter_api_key),
        session_timeout_minutes=settings.session_timeout_minutes
    )

    try:
        controller = SubjectBotController(settings)
    except ConfigurationError as e:
        get_logger(__name__).error("startup_aborted", reason=e.message)
        sys.exit(1)

    await controller.start()


def run():
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
