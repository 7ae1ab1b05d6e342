"""
章节解锁记录表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, UniqueConstraint
from datetime import datetime

from backend.db.base import Base


class ChapterUnlock(Base):
    """章节解锁记录表（永久授权）"""
    __tablename__ = "chapter_unlocks"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, comment="用户ID")
    story_id = Column(String(64), ForeignKey("stories.id"), nullable=False, comment="故事ID")

    # 解锁信息
    chapter_number = Column(Integer, nullable=False, comment="章节序号")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="解锁时间")

    # 约束
    __table_args__ = (
        UniqueConstraint('user_id', 'story_id', 'chapter_number', name='uk_user_story_chapter'),
    )
