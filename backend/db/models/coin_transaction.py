"""
金币流水表 ORM 模型（追加写账本）
"""

from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, Index
from datetime import datetime

from backend.db.base import Base, JSONType


class CoinTransaction(Base):
    """金币流水表"""
    __tablename__ = "coin_transactions"

    # 主键
    id = Column(Integer, primary_key=True, autoincrement=True, comment="自增ID")

    # 外键
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, comment="用户ID")

    # 交易信息
    type = Column(String(20), nullable=False, comment="交易类型（earn/redeem/adjust）")
    coins = Column(Integer, nullable=False, comment="金币变动（正数增加，负数减少）")
    reason = Column(String(64), nullable=True, comment="交易原因")
    meta = Column(JSONType, nullable=False, default=dict, comment="附加信息")

    # 去重键（奖励触发的幂等保证）
    dedup_key = Column(String(512), nullable=True, comment="去重键")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="交易时间")

    # 索引
    __table_args__ = (
        Index('uk_coin_tx_dedup', 'user_id', 'dedup_key', unique=True),
        Index('idx_coin_tx_user', 'user_id', 'created_at'),
        Index('idx_coin_tx_user_reason', 'user_id', 'type', 'reason', 'created_at'),
    )
