"""
故事节点与选项表 ORM 模型（节点图）
"""

from sqlalchemy import Column, String, Integer, Text, Boolean, TIMESTAMP, ForeignKey, Index, UniqueConstraint, CheckConstraint
from datetime import datetime

from backend.db.base import Base


class StoryNode(Base):
    """故事节点表"""
    __tablename__ = "story_nodes"

    # 主键
    id = Column(String(64), primary_key=True, comment="节点ID")

    # 外键
    version_id = Column(String(64), ForeignKey("story_versions.id"), nullable=False, comment="所属版本")

    # 节点信息
    step_no = Column(Integer, nullable=False, comment="章节序号（1-5）")
    is_start = Column(Boolean, nullable=False, default=False, comment="是否起始节点")
    title = Column(String(256), nullable=True, comment="章节标题")
    content = Column(Text, nullable=True, comment="章节正文")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="创建时间")

    # 约束和索引
    __table_args__ = (
        CheckConstraint('step_no BETWEEN 1 AND 5', name='ck_story_nodes_step_no'),
        Index('idx_nodes_version', 'version_id'),
        Index('idx_nodes_version_start', 'version_id', 'is_start'),
    )


class NodeChoice(Base):
    """节点选项表（有向边）"""
    __tablename__ = "node_choices"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    from_node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="起点节点")
    to_node_id = Column(String(64), ForeignKey("story_nodes.id"), nullable=False, comment="终点节点")

    # 选项信息
    genre_key = Column(String(64), nullable=False, comment="题材键")
    label = Column(String(128), nullable=True, comment="选项文案")

    # 约束和索引
    __table_args__ = (
        UniqueConstraint('from_node_id', 'genre_key', name='uk_node_choice_genre'),
        Index('idx_choices_from', 'from_node_id'),
        Index('idx_choices_to', 'to_node_id'),
    )
