from __future__ import annotations

import argparse
import asyncio
import logging

from src.adapters.api.dependencies import build_feed_store
from src.config import BoardSettings, env_bool

logger = logging.getLogger(__name__)


async def run(*, force: bool, loop: bool) -> int:
    settings = BoardSettings.from_env()
    store = build_feed_store(settings)

    outcome = await store.refresh(force=force)
    logger.info(
        "Refresh %s (origin=%s, last_updated=%s)",
        "succeeded" if outcome.success else f"failed: {outcome.error}",
        outcome.origin,
        outcome.last_updated,
    )
    if not loop:
        return 0 if outcome.success else 1

    await store.run_periodic(
        interval_s=settings.refresh_interval_s, refresh_first=False
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Refresh the GTFS snapshot cache shared by the API processes."
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Download even if the cached snapshot is still fresh.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh once and exit (same as WORKER_LOOP=0).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )

    loop = env_bool("WORKER_LOOP", True) and not args.once
    raise SystemExit(asyncio.run(run(force=args.force, loop=loop)))


if __name__ == "__main__":
    main()
