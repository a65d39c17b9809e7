import asyncio
import signal

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from moodtrader.communication.orchestrator import build_orchestrator
from moodtrader.config.settings import settings
from moodtrader.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def run():
    """Run the agent loop until SIGINT or SIGTERM."""
    orchestrator = build_orchestrator(settings)
    await orchestrator.initialize()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, orchestrator.stop)

    try:
        await orchestrator.run()
    finally:
        await orchestrator.shutdown()


def main():
    """Run the trading agent."""
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Starting agent (paper_mode={settings.execution.PAPER_MODE})")
    asyncio.run(run())


if __name__ == "__main__":
    main()
