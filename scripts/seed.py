# scripts/seed.py
"""
填充演示数据：N 个仓库 × M 个商品，每个库存键 quantity 相同。

默认 3 × 3 × 100（与集成测试夹具一致）：
    python scripts/seed.py
    python scripts/seed.py --warehouses 5 --products 10 --quantity 500 --truncate
"""

import argparse
import asyncio
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stockhold.core.config import get_settings
from stockhold.db.engine import create_async_engine_safe
from stockhold.services.catalog_writer import (
    create_product,
    create_stock,
    create_warehouse,
    truncate_tables,
)


async def seed(
    session: AsyncSession, *, warehouses: int, products: int, quantity: int
) -> None:
    wh_ids = []
    for i in range(warehouses):
        wh_ids.append(await create_warehouse(session, uuid.uuid4(), f"warehouse-{i + 1}"))

    skus = []
    for j in range(products):
        skus.append(await create_product(session, f"SKU-{j + 1:04d}", name=f"product-{j + 1}"))

    for wh in wh_ids:
        for sku in skus:
            await create_stock(session, wh, sku, quantity)
            print(f"stock {wh} / {sku} = {quantity}")


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--warehouses", type=int, default=3)
    parser.add_argument("--products", type=int, default=3)
    parser.add_argument("--quantity", type=int, default=100)
    parser.add_argument("--truncate", action="store_true", help="先清空四张表")
    args = parser.parse_args()

    settings = get_settings()
    engine = create_async_engine_safe(
        settings.DATABASE_URL, isolation_level=settings.DB_ISOLATION_LEVEL
    )
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with maker() as session:
            if args.truncate:
                await truncate_tables(session)
            await seed(
                session,
                warehouses=args.warehouses,
                products=args.products,
                quantity=args.quantity,
            )
        print("数据库填充完成！")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
