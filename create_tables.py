# create_tables.py
import asyncio

from stockhold.core.config import get_settings
from stockhold.db import Base, init_models
from stockhold.db.engine import create_async_engine_safe


async def main() -> None:
    print("正在创建所有数据库表...")

    # 导入所有模型，确保它们的元数据被注册
    init_models()

    settings = get_settings()
    engine = create_async_engine_safe(settings.DATABASE_URL, isolation_level=None)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()

    print("所有数据库表创建完成！")


if __name__ == "__main__":
    asyncio.run(main())
