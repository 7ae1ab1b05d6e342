"""
奖励规则表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP
from datetime import datetime

from backend.db.base import Base, JSONType


class RewardRule(Base):
    """奖励规则表（管理后台维护，核心逻辑只读）"""
    __tablename__ = "reward_rules"

    # 主键
    key = Column(String(64), primary_key=True, comment="规则键")

    # 规则配置
    label = Column(String(128), nullable=True, comment="规则名称")
    coins = Column(Integer, nullable=False, default=0, comment="奖励金币数")
    enabled = Column(Boolean, nullable=False, default=True, comment="是否启用")
    daily_cap = Column(Integer, nullable=True, comment="每日上限（金币）")
    meta = Column(JSONType, nullable=False, default=dict, comment="附加配置")

    # 时间戳
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")
