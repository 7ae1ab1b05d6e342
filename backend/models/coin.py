"""
金币账本相关数据模型
"""

import json
from typing import Optional, List, Any, Dict
from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum


class TransactionType(str, Enum):
    """交易类型"""
    EARN = "earn"
    REDEEM = "redeem"
    ADJUST = "adjust"


class CreditOutcome(str, Enum):
    """发放奖励的结果"""
    CREDITED = "credited"
    CAP_REACHED = "cap_reached"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    RULE_UNAVAILABLE = "rule_unavailable"


class DedupKey(BaseModel):
    """
    奖励去重键

    由 (用户, 交易类型, 原因, 稳定标识) 组成，映射为确定性的字符串，
    写入 coin_transactions.dedup_key 唯一索引。
    """
    user_id: str
    type: TransactionType = TransactionType.EARN
    reason: str
    stable_id: str

    class Config:
        frozen = True

    @classmethod
    def from_meta(
        cls,
        user_id: str,
        reason: str,
        meta: Optional[Dict[str, Any]],
        type: TransactionType = TransactionType.EARN
    ) -> "DedupKey":
        """从 meta 派生稳定标识（按键排序的紧凑 JSON，与键顺序无关）"""
        stable_id = json.dumps(meta or {}, sort_keys=True, separators=(",", ":"), default=str)
        return cls(user_id=user_id, type=type, reason=reason, stable_id=stable_id)

    def as_index_value(self) -> str:
        """唯一索引中存储的值（用户ID 由索引的另一列承担）"""
        return f"{self.type.value}:{self.reason}:{self.stable_id}"


class CreditResult(BaseModel):
    """发放奖励结果"""
    outcome: CreditOutcome = Field(..., description="结果标签")
    coins: int = Field(0, description="本次发放金币数")
    balance: Optional[int] = Field(None, description="发放后余额（仅 credited）")
    transaction_id: Optional[int] = Field(None, description="交易ID（仅 credited）")

    @property
    def credited(self) -> bool:
        return self.outcome == CreditOutcome.CREDITED


class CoinTransactionResponse(BaseModel):
    """金币流水展示"""
    id: int = Field(..., description="交易ID")
    type: TransactionType = Field(..., description="交易类型")
    coins: int = Field(..., description="金币变动")
    reason: Optional[str] = Field(None, description="交易原因")
    created_at: datetime = Field(..., description="交易时间")
    story_title: Optional[str] = Field(None, description="关联故事标题")
    chapter_number: Optional[int] = Field(None, description="关联章节序号")
    note: Optional[str] = Field(None, description="备注")


class CoinSummary(BaseModel):
    """用户金币汇总"""
    available: int = Field(..., description="可用金币")
    used: int = Field(..., description="已消费金币")


class GlobalCoinSummary(CoinSummary):
    """全站金币汇总（管理后台）"""
    earned: int = Field(..., description="累计发放金币")


class AdjustRequest(BaseModel):
    """管理员调整金币请求"""
    user_id: str = Field(..., min_length=1, description="用户ID")
    delta: int = Field(..., description="调整数量（可为负）")
    reason: str = Field("admin_adjust", description="调整原因")


class RefundRequest(BaseModel):
    """管理员退款请求"""
    transaction_id: int = Field(..., description="原交易ID")


class RefundResult(BaseModel):
    """退款结果"""
    transaction_id: int = Field(..., description="退款交易ID")
    refunded_tx_id: int = Field(..., description="原交易ID")
    user_id: str = Field(..., description="用户ID")
    delta: int = Field(..., description="退款金币变动")
    balance: int = Field(..., description="退款后余额")


class ReconcileResult(BaseModel):
    """余额对账结果"""
    user_id: str
    cached: int = Field(..., description="对账前缓存余额")
    ledger: int = Field(..., description="账本合计")

    @property
    def drifted(self) -> bool:
        return self.cached != self.ledger


class CoinHistory(BaseModel):
    """金币流水列表"""
    items: List[CoinTransactionResponse] = Field(default_factory=list)
