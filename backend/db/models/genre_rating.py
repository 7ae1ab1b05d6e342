"""
章节评分表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, Index, UniqueConstraint, CheckConstraint
from datetime import datetime

from backend.db.base import Base


class GenreRating(Base):
    """章节评分表"""
    __tablename__ = "genre_ratings"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, comment="用户ID")
    run_id = Column(String(64), ForeignKey("story_runs.id"), nullable=False, comment="旅程ID")
    node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="节点ID")

    # 评分信息
    genre_key = Column(String(64), nullable=False, comment="题材键")
    rating = Column(Integer, nullable=False, comment="评分（1-5）")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="评分时间")

    # 约束和索引
    __table_args__ = (
        UniqueConstraint('run_id', 'node_id', name='uk_rating_run_node'),
        CheckConstraint('rating BETWEEN 1 AND 5', name='ck_genre_ratings_range'),
        Index('idx_ratings_node', 'node_id'),
    )
