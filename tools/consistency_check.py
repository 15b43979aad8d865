#!/usr/bin/env python3
import argparse
import asyncio
import sys

from sqlalchemy.ext.asyncio import async_sessionmaker

from stockhold.core.config import get_settings
from stockhold.db.engine import create_async_engine_safe
from stockhold.services.consistency import find_mismatches


async def main() -> int:
    parser = argparse.ArgumentParser(
        description="巡检 stocks.reserved_quantity 与 active 预占之和是否一致（只读）"
    )
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args()

    url = args.database_url or get_settings().DATABASE_URL
    engine = create_async_engine_safe(url, isolation_level=None)
    try:
        async with async_sessionmaker(engine, expire_on_commit=False)() as session:
            mismatches = await find_mismatches(session)
    finally:
        await engine.dispose()

    for m in mismatches:
        print(
            f"{m.key}: quantity={m.quantity} reserved={m.reserved_quantity} "
            f"active={m.active_quantity} diff={m.diff}"
        )
    print(f"mismatches={len(mismatches)}")
    return 1 if mismatches else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
