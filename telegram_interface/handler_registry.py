"""
Handler Registry - регистрация всех обработчиков бота

Отвечает за:
- Регистрацию handlers с dependency injection
- Связывание handlers с командами и callback данными
- Middleware регистрацию
"""

import logging
from functools import partial
from aiogram import Dispatcher, F
from aiogram.filters import CommandStart, Command

from subject_bot.messages.constants import MessageConstants

from .handlers import CommandHandlers, SurveyHandlers, CallbackHandlers
from .middleware import SessionLoggerMiddleware

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """
    Регистратор всех обработчиков бота

    Использует dependency injection для передачи зависимостей в handlers.
    """

    def __init__(
        self,
        dp: Dispatcher,
        engine,
        gateway,
        messages,
        max_import_bytes: int
    ):
        """
        Args:
            dp: Aiogram Dispatcher
            engine: QuestionFlowEngine
            gateway: TelegramGateway
            messages: MessageService
            max_import_bytes: Лимит размера загружаемого транскрипта
        """
        self.dp = dp
        self.engine = engine
        self.gateway = gateway
        self.messages = messages
        self.max_import_bytes = max_import_bytes

    def register_all(self):
        """Регистрация всех handlers и middleware"""
        logger.info("🔧 Registering all handlers...")

        # 1. Register middleware
        self._register_middleware()

        # 2. Register command handlers
        self._register_command_handlers()

        # 3. Register callback handlers
        self._register_callback_handlers()

        # 4. Register survey handlers (последними: ловят любой текст)
        self._register_survey_handlers()

        logger.info("✅ All handlers registered successfully")

    def _register_middleware(self):
        """Регистрация middleware"""
        self.dp.message.middleware(SessionLoggerMiddleware(self.engine))
        self.dp.callback_query.middleware(SessionLoggerMiddleware(self.engine))
        logger.info("🔄 Middleware registered: SessionLoggerMiddleware")

    def _register_command_handlers(self):
        """Регистрация команд"""
        # /start
        self.dp.message.register(
            partial(CommandHandlers.cmd_start, engine=self.engine),
            CommandStart()
        )

        # /restart
        self.dp.message.register(
            partial(CommandHandlers.cmd_restart, engine=self.engine),
            Command("restart")
        )

        logger.info("📝 Command handlers registered: /start, /restart")

    def _register_callback_handlers(self):
        """Регистрация callback handlers"""
        constants = MessageConstants

        self.dp.callback_query.register(
            partial(CallbackHandlers.callback_language, engine=self.engine),
            F.data.startswith(constants.CALLBACK_LANGUAGE_PREFIX)
        )

        self.dp.callback_query.register(
            partial(CallbackHandlers.callback_chain, engine=self.engine),
            F.data.startswith(constants.CALLBACK_CHAIN_PREFIX)
        )

        self.dp.callback_query.register(
            partial(CallbackHandlers.callback_start_questions, engine=self.engine),
            F.data == constants.CALLBACK_START_QUESTIONS
        )

        self.dp.callback_query.register(
            partial(CallbackHandlers.callback_save_results, engine=self.engine),
            F.data == constants.CALLBACK_SAVE_RESULTS
        )

        self.dp.callback_query.register(
            partial(CallbackHandlers.callback_restart, engine=self.engine),
            F.data == constants.CALLBACK_RESTART
        )

        logger.info("🔘 Callback handlers registered")

    def _register_survey_handlers(self):
        """Ответы и загрузка транскрипта"""
        self.dp.message.register(
            partial(
                SurveyHandlers.handle_document,
                engine=self.engine,
                gateway=self.gateway,
                messages=self.messages,
                max_import_bytes=self.max_import_bytes
            ),
            F.document
        )

        # Команды без обработчика сюда не попадают
        self.dp.message.register(
            partial(SurveyHandlers.handle_answer, engine=self.engine),
            F.text & ~F.text.startswith("/")
        )

        logger.info("🧠 Survey handlers registered")
