"""
Send the daily mention digest.

Meant to be run once a day by an external scheduler. Each user with daily
email enabled gets one email listing their unread mentions from the last
interval.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import timedelta

from untitledone.config import settings
from untitledone.database import AsyncSessionLocal, engine
from untitledone.services.digest import collect_digests, send_daily_digests
from untitledone.services.email import get_email_sender


async def main(interval_hours: int, dry_run: bool) -> int:
    interval = timedelta(hours=interval_hours)
    failed = 0
    try:
        async with AsyncSessionLocal() as session:
            if dry_run:
                digests = await collect_digests(session, interval=interval)
                for digest in digests:
                    print(f"{digest.email or '<no email>'}: {len(digest.items)} mention(s)")
                print(f"{len(digests)} digest(s) would be sent.")
            else:
                result = await send_daily_digests(session, get_email_sender(), interval=interval)
                failed = result.failed
    finally:
        await engine.dispose()
    return 1 if failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send daily mention digest emails")
    parser.add_argument(
        "--interval-hours",
        type=int,
        default=settings.digest_interval_hours,
        help="How far back to look for unread mentions (default: %(default)s)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the digests that would be sent without sending them",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    raise SystemExit(asyncio.run(main(args.interval_hours, args.dry_run)))
