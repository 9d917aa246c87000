"""
Main entry point for the Storm Alert Filter system.
"""

import asyncio
import sys
from typing import Optional

from .orchestrator import ApplicationOrchestrator
from .utils.logging import get_logger, setup_logging


async def async_main(config_path: Optional[str] = None):
    """Async main application entry point."""
    setup_logging(log_level="INFO", log_to_files=False)
    logger = get_logger("main")

    logger.info(
        "Starting Storm Alert Filter", extra={"config_path": config_path}
    )

    try:
        orchestrator = ApplicationOrchestrator(config_path)
        await orchestrator.run()

    except Exception as e:
        logger.error("Application failed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


def main():
    """Main application entry point."""
    config_path = None

    if len(sys.argv) > 1:
        config_path = sys.argv[1]

    try:
        asyncio.run(async_main(config_path))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")


if __name__ == "__main__":
    main()
