"""
阅读状态表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, UniqueConstraint
from datetime import datetime

from backend.db.base import Base


class ReadingState(Base):
    """阅读状态表（每个用户、旅程、节点一条）"""
    __tablename__ = "reading_states"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, comment="用户ID")
    run_id = Column(String(64), ForeignKey("story_runs.id"), nullable=False, comment="旅程ID")
    node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="节点ID")

    # 阅读进度
    page_index = Column(Integer, nullable=False, default=0, comment="当前页")
    bookmark_page_index = Column(Integer, nullable=True, comment="书签页")
    font_px = Column(Integer, nullable=True, comment="字号（像素）")

    # 时间戳
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="更新时间")

    # 约束
    __table_args__ = (
        UniqueConstraint('user_id', 'run_id', 'node_id', name='uk_reading_state'),
    )
