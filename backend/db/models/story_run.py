"""
故事旅程表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP, ForeignKey, Index, UniqueConstraint
from datetime import datetime

from backend.db.base import Base


class StoryRun(Base):
    """故事旅程表（一次阅读实例）"""
    __tablename__ = "story_runs"

    # 主键
    id = Column(String(64), primary_key=True, comment="旅程ID")

    # 外键
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, comment="用户ID")
    story_id = Column(String(64), ForeignKey("stories.id"), nullable=False, comment="故事ID")
    version_id = Column(String(64), ForeignKey("story_versions.id"), nullable=False, comment="故事版本ID")
    current_node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="当前节点")

    # 状态
    is_completed = Column(Boolean, nullable=False, default=False, comment="是否已完成")

    # 时间戳
    started_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="开始时间")
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")

    # 索引
    __table_args__ = (
        Index('idx_runs_user', 'user_id'),
        Index('idx_runs_user_story', 'user_id', 'story_id', 'is_completed', 'updated_at'),
    )


class RunChoice(Base):
    """旅程选择历史（追加写）"""
    __tablename__ = "run_choices"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    run_id = Column(String(64), ForeignKey("story_runs.id"), nullable=False, comment="旅程ID")
    from_node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="起点节点")
    to_node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="终点节点")

    # 选择信息
    step_no = Column(Integer, nullable=False, comment="做出选择时的章节序号")
    genre_key = Column(String(64), nullable=False, comment="所选题材")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="选择时间")

    # 约束和索引：每个旅程的每一步只能选择一次
    __table_args__ = (
        UniqueConstraint('run_id', 'step_no', name='uk_run_choice_step'),
        Index('idx_run_choices_to', 'run_id', 'to_node_id'),
    )
