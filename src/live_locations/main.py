"""Main entry point for the live locations application."""

import asyncio
import logging
import sys

from pydantic import ValidationError

from live_locations.adapters.config import AppConfig
from live_locations.adapters.web import (
    AsyncioTimerScheduler,
    PubSubMessagePublisher,
    PyViewWebAdapter,
)
from live_locations.application.services import LocationSharingService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main application entry point."""
    try:
        config = AppConfig()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    settings = config.liveness_settings()
    logger.info(
        f"Liveness: grace={config.grace_period_seconds}s, hard timeout={config.hard_timeout_seconds}s, "
        f"sweep every {config.sweep_interval_seconds}s, policy={config.offline_policy}"
    )

    publisher = PubSubMessagePublisher()
    service = LocationSharingService(
        publisher,
        settings,
        AsyncioTimerScheduler(),
        echo_location_to_origin=config.echo_location_to_origin,
    )
    display_adapter = PyViewWebAdapter(service, publisher, config)

    try:
        await display_adapter.start()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        await display_adapter.stop()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
