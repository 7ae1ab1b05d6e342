"""
用户表 ORM 模型
"""

from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP, Index, CheckConstraint
from datetime import datetime

from backend.db.base import Base


class User(Base):
    """用户表"""
    __tablename__ = "users"

    # 主键
    id = Column(String(64), primary_key=True, comment="用户ID")

    # 基本信息
    email = Column(String(128), unique=True, nullable=False, comment="邮箱")
    full_name = Column(String(128), nullable=True, comment="姓名")

    # 订阅与权限
    plan = Column(String(20), nullable=False, default="free", comment="订阅计划（free/premium/creator）")
    is_admin = Column(Boolean, nullable=False, default=False, comment="是否管理员")

    # 金币余额（账本的缓存投影，只能通过 LedgerDAO 修改）
    coins = Column(Integer, nullable=False, default=0, comment="金币余额")

    # 时间戳
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, comment="创建时间")
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow, comment="更新时间")

    # 约束和索引
    __table_args__ = (
        CheckConstraint('coins >= 0', name='ck_users_coins_non_negative'),
        Index('idx_users_email', 'email'),
    )
