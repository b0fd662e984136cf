"""Backfill content analytics for existing tweets.

One-time script to compute content_analytics rows for every posted tweet,
so the insight generator has history before the first engagement sync.

Usage:
    cd backend && python -m scripts.backfill_content_analytics [user_id ...]
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


async def main(user_ids: list[str]):
    from config import get_settings
    from database import async_session, engine
    from services.container import build_services

    services = build_services(async_session, get_settings())

    if not user_ids:
        user_ids = await services.accounts.list_user_ids()
    logger.info(f"Backfilling content analytics for {len(user_ids)} users...")

    total = 0
    for user_id in user_ids:
        analyzed = await services.content_analytics.backfill_user(user_id)
        logger.info(f"  {user_id}: {analyzed} tweets analyzed")
        total += analyzed

    await engine.dispose()
    logger.info(f"Backfill complete! {total} tweets analyzed")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
