"""Mark confirmed bookings whose stay has ended as completed."""
from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import date

from staybook.db.session import get_sessionmaker
from staybook.services import booking_lifecycle_service
from staybook.services.event_service import get_notifier


async def complete_elapsed(today: date | None = None) -> int:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        completed = await booking_lifecycle_service.complete_elapsed_bookings(
            session,
            notifier=get_notifier(),
            today=today or date.today(),
        )
    print(f"Completed {len(completed)} booking(s).")
    return len(completed)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Treat this ISO date as today (defaults to the current date).",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)
    asyncio.run(complete_elapsed(args.today))


if __name__ == "__main__":
    main()
