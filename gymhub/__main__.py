"""Main application module."""

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env file for local development (ignored if not exists)
load_dotenv(Path(__file__).parent.parent / '.env')

from gymhub.config import get_settings  # noqa: E402
from gymhub.database.session import get_session_maker, init_db  # noqa: E402
from gymhub.webapp.server import create_webapp, start_webapp, stop_webapp  # noqa: E402

logger = logging.getLogger(__name__)


async def run_server() -> None:
    """Run the web server until cancelled."""
    settings = get_settings()

    # Setup logging
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.info("Starting GymHub...")

    # Initialize database
    session_maker = get_session_maker()
    await init_db(session_maker)
    logger.info("Database initialized")

    app = create_webapp(session_maker, settings)
    runner = await start_webapp(app, host=settings.webapp_host, port=settings.webapp_port)
    if runner is None:
        return

    try:
        await asyncio.Event().wait()
    finally:
        await stop_webapp(runner)
        await session_maker.kw["bind"].dispose()
        logger.info("GymHub stopped")


def main() -> None:
    """Entry point for the server."""
    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
