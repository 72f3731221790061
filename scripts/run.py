#!/usr/bin/env python3
"""Run randavatar as an HTTP service, or run a single update tick.

Usage:
    python scripts/run.py                # HTTP mode with uvicorn (scheduler included)
    python scripts/run.py --port 3000    # Custom port
    python scripts/run.py --tick-once    # One avatar tick, print the report, exit
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from randavatar.config import settings
from randavatar.errors import AvatarError

logger = structlog.get_logger()


def run_http_mode(port: int = 3000) -> None:
    """Serve the FastAPI app; the lifespan starts the tick scheduler."""
    import uvicorn

    logger.info("starting_randavatar", mode="http", port=port)

    uvicorn.run(
        "randavatar.app:api",
        host="0.0.0.0",
        port=port,
        reload=(settings.env == "development"),
    )


def run_tick_once() -> int:
    """Run one tick against the configured store and print its report."""
    from randavatar.crons.updater import AvatarUpdater
    from randavatar.db.session import close_db
    from randavatar.db.store import get_store

    async def _run() -> int:
        try:
            report = await AvatarUpdater(get_store()).run_tick()
        except AvatarError as e:
            logger.error("tick_failed", error=str(e))
            return 1
        finally:
            await close_db()
        print(json.dumps(report.to_dict(), indent=2))
        return 0

    return asyncio.run(_run())


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the Randomize Avatar service")
    parser.add_argument("--port", type=int, default=3000, help="Port for HTTP mode")
    parser.add_argument("--tick-once", action="store_true", help="Run a single update tick and exit")
    args = parser.parse_args()

    try:
        if args.tick_once:
            return run_tick_once()
        run_http_mode(args.port)
        return 0
    except KeyboardInterrupt:
        logger.info("shutting_down", reason="keyboard_interrupt")
        return 0


if __name__ == "__main__":
    sys.exit(main())
