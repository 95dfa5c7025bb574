"""KozyTrack entry point."""

import asyncio
import os
import signal
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from kozytrack.config import BASE_DIR, Settings, get_settings
from kozytrack.core.bot import create_bot
from kozytrack.core.lifespan import lifespan
from kozytrack.logging_config import get_logger, log_with_context, set_log_level, setup_logging
from kozytrack.utils.process_lock import acquire_lock, release_lock

logger = get_logger(__name__)


async def run(settings: Settings) -> None:
    """Build the bot, attach its services and run until closed."""
    bot = create_bot(settings)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, lambda: asyncio.ensure_future(bot.close()))
    except NotImplementedError:
        # Windows event loops have no signal handlers
        pass

    async with bot, lifespan(bot):
        await bot.start(settings.discord_bot_token)


def main() -> int:
    # Load environment variables from .env file
    load_dotenv(BASE_DIR / ".env")

    # Configure structured logging (JSON to file + console) so settings errors are recorded
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        settings = get_settings()
    except ValidationError as e:
        log_with_context(logger, "critical", "Invalid configuration", error=str(e), event_type="config_invalid")
        return 1
    set_log_level(settings.log_level)

    if not acquire_lock(settings.lock_file):
        logger.critical("Another KozyTrack instance is already running, exiting")
        return 1

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except Exception as e:
        log_with_context(
            logger,
            "critical",
            "Bot stopped with an unhandled error",
            error=str(e),
            error_type=type(e).__name__,
            event_type="bot_crashed",
        )
        return 1
    finally:
        release_lock(settings.lock_file)
    logger.info("KozyTrack stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
