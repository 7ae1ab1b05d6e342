"""
故事版本表 ORM 模型

每个已发布版本对应一张不可变的节点图
"""

from sqlalchemy import Column, String, Boolean, TIMESTAMP, ForeignKey, Index
from datetime import datetime

from backend.db.base import Base


class StoryVersion(Base):
    """故事版本表"""
    __tablename__ = "story_versions"

    # 主键
    id = Column(String(64), primary_key=True, comment="版本ID")

    # 外键
    story_id = Column(String(64), ForeignKey("stories.id"), nullable=False, comment="所属故事")

    # 发布状态
    is_published = Column(Boolean, nullable=False, default=False, comment="是否已发布")
    published_at = Column(TIMESTAMP, nullable=True, comment="发布时间")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="创建时间")

    # 索引
    __table_args__ = (
        Index('idx_versions_story', 'story_id'),
        Index('idx_versions_published', 'story_id', 'is_published', 'published_at'),
    )
