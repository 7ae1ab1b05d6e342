"""
数据库基础配置

包含 Base 类、数据库引擎初始化等
"""

from sqlalchemy import JSON
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from backend.config.settings import settings

# 声明式基类
Base = declarative_base()

# JSON 列：PostgreSQL 使用 JSONB，其他方言（测试用 SQLite）使用通用 JSON
JSONType = JSON().with_variant(JSONB(), "postgresql")

# 异步引擎（用于 asyncpg）
async_engine = None
AsyncSessionLocal = None


def get_database_url(async_mode: bool = True) -> str:
    """
    获取数据库连接 URL

    Args:
        async_mode: 是否使用异步模式

    Returns:
        数据库连接 URL
    """
    if not settings.DATABASE_ENABLED or not settings.DATABASE_URL:
        raise RuntimeError("Database is not enabled or DATABASE_URL is not set")

    url = settings.DATABASE_URL

    # 异步模式：postgresql:// -> postgresql+asyncpg://，sqlite:// -> sqlite+aiosqlite://
    if async_mode and url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://")
    elif async_mode and url.startswith("sqlite://"):
        url = url.replace("sqlite://", "sqlite+aiosqlite://")

    return url


def insert_ignore(session: AsyncSession, model):
    """
    构造 INSERT ... ON CONFLICT DO NOTHING 语句

    根据会话绑定的数据库方言选择对应的 insert 构造器，
    调用方通过 .on_conflict_do_nothing(index_elements=[...]) 指定冲突列。

    Args:
        session: 数据库会话
        model: ORM 模型类

    Returns:
        方言相关的 Insert 对象
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise RuntimeError(f"Unsupported database dialect: {dialect}")


async def init_db():
    """
    初始化数据库连接

    创建异步引擎和会话工厂
    """
    global async_engine, AsyncSessionLocal

    if not settings.DATABASE_ENABLED:
        return

    url = get_database_url(async_mode=True)
    engine_kwargs = {"echo": settings.DEBUG}
    if url.startswith("postgresql"):
        engine_kwargs.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
        )

    # 创建异步引擎
    async_engine = create_async_engine(url, **engine_kwargs)

    # 创建异步会话工厂
    AsyncSessionLocal = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db():
    """关闭数据库连接"""
    global async_engine, AsyncSessionLocal

    if async_engine:
        await async_engine.dispose()
        async_engine = None
        AsyncSessionLocal = None


async def get_db():
    """
    获取数据库会话（依赖注入用）

    一次请求即一个工作单元：成功提交，异常回滚

    Yields:
        AsyncSession: 数据库会话
    """
    if not AsyncSessionLocal:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
