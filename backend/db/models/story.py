"""
故事表 ORM 模型
"""

from sqlalchemy import Column, String, Text, TIMESTAMP, Index
from datetime import datetime

from backend.db.base import Base


class Story(Base):
    """故事表"""
    __tablename__ = "stories"

    # 主键
    id = Column(String(64), primary_key=True, comment="故事ID")

    # 基本信息
    slug = Column(String(128), unique=True, nullable=True, comment="URL 标识")
    title = Column(String(256), nullable=False, comment="故事标题")
    summary = Column(Text, nullable=True, comment="故事简介")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="创建时间")
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")

    # 索引
    __table_args__ = (
        Index('idx_stories_created_at', 'created_at'),
    )
