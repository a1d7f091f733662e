"""Command-line entry point."""
import asyncio
import logging
import signal

from wordsbot.app import WordsBot
from wordsbot.config import ensure_directories
from wordsbot.logging_config import setup_logging

logger = logging.getLogger("wordsbot")


def exception_handler(stop_requested: asyncio.Event):
    """Build a loop exception handler that logs and asks main() to shut down."""
    def handle_exception(loop, context):
        error = context.get("exception", context["message"])
        logger.error(f"Unhandled exception in event loop: {error}")
        stop_requested.set()
    return handle_exception


async def main() -> None:
    """Run the bot until SIGINT, SIGTERM or an unhandled loop exception."""
    loop = asyncio.get_running_loop()
    stop_requested = asyncio.Event()
    loop.set_exception_handler(exception_handler(stop_requested))
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_requested.set)

    bot = WordsBot()
    try:
        await bot.start()
        logger.info("Bot is polling, press Ctrl+C to stop")
        await stop_requested.wait()
        logger.info("Stop requested, shutting down...")
    finally:
        await bot.stop()


def run() -> None:
    """Entry point for the wordsbot command."""
    ensure_directories()
    setup_logging("Starting WordsBot ...")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    run()
