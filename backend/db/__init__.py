"""
数据库模块

包含 SQLAlchemy ORM 模型、数据库连接管理等
"""

from .base import Base, JSONType, get_db, init_db, close_db, insert_ignore
from .session import get_session

__all__ = [
    "Base",
    "JSONType",
    "get_db",
    "init_db",
    "close_db",
    "insert_ignore",
    "get_session",
]
