"""
数据库会话管理

提供数据库会话的便捷访问（非 FastAPI 上下文，如异步奖励触发）
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.db import base


@asynccontextmanager
async def get_session(
    session_factory: Optional[async_sessionmaker] = None
) -> AsyncIterator[AsyncSession]:
    """
    获取数据库会话的上下文管理器

    使用示例：
    ```python
    async with get_session() as session:
        await ledger_service.credit_if_eligible(session, user_id, "signup", "signup", {})
    ```

    Args:
        session_factory: 会话工厂（默认使用 init_db 创建的全局工厂）

    Yields:
        AsyncSession: 数据库会话
    """
    factory = session_factory or base.AsyncSessionLocal
    if not factory:
        raise RuntimeError("Database not initialized")

    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
