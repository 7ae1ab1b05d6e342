"""
数据库初始化脚本

创建所有表并写入默认奖励规则
"""

import asyncio
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from backend.config.rewards import RewardConfig
from backend.db import base
from backend.db.base import get_database_url
from backend.db.dao.reward_rule_dao import RewardRuleDAO
from backend.db.models import Base
from backend.db.session import get_session


async def create_tables(engine: AsyncEngine):
    """创建所有表（已存在的表跳过）"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ All tables created")


async def seed_reward_rules(session_factory=None) -> int:
    """
    写入默认奖励规则

    Returns:
        新写入的规则数量
    """
    async with get_session(session_factory) as session:
        inserted = await RewardRuleDAO.seed_defaults(session, RewardConfig.DEFAULT_RULES)
    logger.info(f"✅ Reward rules seeded ({inserted} new)")
    return inserted


async def initialize():
    """在应用连接池上完成建表与默认数据（应用启动时调用）"""
    if base.async_engine is None:
        await base.init_db()

    await create_tables(base.async_engine)
    await seed_reward_rules()


async def main():
    """主函数"""
    logger.info("🚀 Starting database initialization...")
    logger.info(f"Database URL: {get_database_url(async_mode=True)}")

    engine = create_async_engine(get_database_url(async_mode=True), echo=True)
    try:
        await create_tables(engine)
        await base.init_db()
        await seed_reward_rules()
        logger.success("✅ Database initialization completed successfully!")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise
    finally:
        await engine.dispose()
        await base.close_db()


if __name__ == "__main__":
    asyncio.run(main())
