"""
Bot Lifecycle Manager - управление жизненным циклом бота

Отвечает за:
- Запуск фоновых сервисов (sweep сессий, HTTP client для AI)
- Запуск polling с graceful shutdown
- Обработку сигналов (SIGINT, SIGTERM)
- Корректное освобождение ресурсов
"""

import asyncio
import logging
import signal

from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BotCommand

from subject_bot.ai import SummaryService
from systems.survey import SessionStore

from ..config import ALLOWED_UPDATES, BOT_COMMANDS

logger = logging.getLogger(__name__)


class BotLifecycle:
    """
    Управление жизненным циклом Telegram бота

    Координирует запуск и остановку всех компонентов системы.
    """

    def __init__(
        self,
        bot: Bot,
        dispatcher: Dispatcher,
        store: SessionStore,
        summary: SummaryService
    ):
        """
        Args:
            bot: Aiogram Bot instance
            dispatcher: Aiogram Dispatcher instance
            store: SessionStore (фоновый sweep)
            summary: SummaryService (HTTP client)
        """
        self.bot = bot
        self.dp = dispatcher
        self.store = store
        self.summary = summary

        # Shutdown event для graceful shutdown
        self._shutdown_event = asyncio.Event()
        self._stopped = False

    async def setup_signal_handlers(self):
        """
        Настроить обработчики сигналов для graceful shutdown
        """
        loop = asyncio.get_running_loop()

        def signal_handler(sig):
            logger.info(f"🛑 Received signal {sig}, initiating graceful shutdown...")
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
            except NotImplementedError:
                logger.warning(f"Signal handler for {sig} is not supported on this platform")

        logger.info("📡 Signal handlers configured (SIGINT, SIGTERM)")

    async def initialize_services(self) -> bool:
        """
        Запустить фоновые сервисы

        Returns:
            True если инициализация успешна, False иначе
        """
        try:
            await self.store.start()
            await self.summary.start()

            try:
                await self.bot.set_my_commands([
                    BotCommand(command=command, description=description)
                    for command, description in BOT_COMMANDS.items()
                ])
            except TelegramAPIError as e:
                logger.warning(f"⚠️ Failed to set bot commands: {e}")

            return True

        except Exception as e:
            logger.error(f"❌ Failed to initialize services: {e}", exc_info=True)
            return False

    async def start_polling(self):
        """
        Запуск polling с graceful shutdown
        """
        try:
            # 📡 Настраиваем signal handlers для graceful shutdown
            await self.setup_signal_handlers()

            # 🚀 Запускаем сервисы
            services_initialized = await self.initialize_services()
            if not services_initialized:
                logger.error("❌ Failed to initialize services, aborting")
                return

            logger.info("Starting Subject Bot polling...")

            # Запускаем polling с graceful shutdown через shutdown_event
            polling_task = asyncio.create_task(
                self.dp.start_polling(self.bot, allowed_updates=ALLOWED_UPDATES, handle_signals=False)
            )
            shutdown_task = asyncio.create_task(self._shutdown_event.wait())

            # Ждем сигнала shutdown (или падения polling)
            done, _ = await asyncio.wait(
                {polling_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED
            )

            # Graceful shutdown
            logger.info("🛑 Initiating graceful shutdown...")
            for task in (polling_task, shutdown_task):
                if not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass

            if polling_task in done and not polling_task.cancelled() and polling_task.exception():
                logger.error(f"Polling stopped with error: {polling_task.exception()}")
            else:
                logger.info("✅ Polling task cancelled")

        except KeyboardInterrupt:
            logger.info("Bot stopped by user (Ctrl+C)")
        except Exception as e:
            logger.error(f"Bot error: {e}", exc_info=True)
            raise
        finally:
            # Всегда освобождаем ресурсы
            await self.stop()

    async def stop(self):
        """
        Graceful остановка бота с освобождением всех ресурсов
        """
        if self._stopped:
            return
        self._stopped = True

        logger.info("🛑 Stopping bot gracefully...")

        try:
            logger.info(f"📊 Active sessions at shutdown: {len(self.store)}")

            # 1. Останавливаем sweep и удаляем все сессии
            await self.store.stop()

            # 2. Закрываем HTTP client AI сервиса
            await self.summary.close()

            # 3. Закрываем Telegram bot session
            await self.bot.session.close()
            logger.info("✅ Bot session closed")

            logger.info("🎉 Bot stopped successfully")

        except Exception as e:
            logger.error(f"❌ Error during shutdown: {e}", exc_info=True)
