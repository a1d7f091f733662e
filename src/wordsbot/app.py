"""Main application entry point."""
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (  # noqa: E402
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from wordsbot.bot import (  # noqa: E402
    ADDING_WORD,
    LOGIN,
    MAIN_MENU,
    REVIEWING,
    handle_add_word_text,
    handle_callback,
    handle_cancel,
    handle_history,
    handle_login,
    handle_review,
    handle_start,
)
from wordsbot.config import settings  # noqa: E402
from wordsbot.models.base import init_db  # noqa: E402
from wordsbot.monitoring import start_monitoring  # noqa: E402
from wordsbot.services.api_client import ApiClient  # noqa: E402


def build_conversation_handler() -> ConversationHandler:
    """Create the conversation handler for messages and callbacks."""
    text = filters.TEXT & ~filters.COMMAND
    return ConversationHandler(
        entry_points=[CommandHandler("start", handle_start)],
        states={
            LOGIN: [
                MessageHandler(text, handle_login),
                CallbackQueryHandler(handle_callback),
            ],
            MAIN_MENU: [
                CallbackQueryHandler(handle_callback),
            ],
            ADDING_WORD: [
                MessageHandler(text, handle_add_word_text),
                CallbackQueryHandler(handle_callback),
            ],
            REVIEWING: [
                CallbackQueryHandler(handle_review),
            ],
        },
        fallbacks=[
            CommandHandler("start", handle_start),
            CommandHandler("cancel", handle_cancel),
            CommandHandler("history", handle_history),
        ],
        per_message=False,
    )


class WordsBot:
    """Main application class."""

    def __init__(self, api: Optional[ApiClient] = None):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.api = api
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            settings.validate_bot()

            # Initialize database
            init_db()
            self.logger.info("Database initialized")

            if self.api is None:
                self.api = ApiClient(settings.api.base_url, settings.api.timeout)
            self.logger.info(f"Using Words API at {self.api.base_url}")

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics served on port {settings.monitoring.port}")

            # Create application
            self.application = Application.builder().token(settings.bot.token).build()
            self.application.bot_data["api"] = self.api
            self.application.add_handler(build_conversation_handler())
            self.logger.info("Handlers added")

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            self.running = True
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.running:
            return

        try:
            if self.application:
                if self.application.updater and self.application.updater.running:
                    await self.application.updater.stop()
                if self.application.running:
                    await self.application.stop()
                await self.application.shutdown()
                self.application = None
                self.logger.info("Application stopped")

            if self.api:
                await self.api.close()
                self.api = None
                self.logger.info("API client closed")

        finally:
            self.running = False
