"""
旅程反馈表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, Text, TIMESTAMP, ForeignKey, UniqueConstraint
from datetime import datetime

from backend.db.base import Base


class RunFeedback(Base):
    """旅程反馈表（完成旅程后提交，每个旅程一条）"""
    __tablename__ = "run_feedback"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    run_id = Column(String(64), ForeignKey("story_runs.id"), nullable=False, comment="旅程ID")
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, comment="用户ID")
    story_id = Column(String(64), ForeignKey("stories.id"), nullable=False, comment="故事ID")

    # 反馈内容
    rating = Column(Integer, nullable=True, comment="整体评分（1-5）")
    feedback = Column(Text, nullable=True, comment="反馈文本")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="创建时间")
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="更新时间")

    # 约束
    __table_args__ = (
        UniqueConstraint('run_id', 'user_id', name='uk_run_feedback'),
    )
