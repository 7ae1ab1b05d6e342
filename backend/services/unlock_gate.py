"""
章节解锁判定

纯函数：给定 (订阅计划, 章节序号, 是否已解锁, 余额) 给出判定结果，
不读写数据库，也不消费金币。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from backend.config.settings import settings


class UnlockStatus(str, Enum):
    """解锁判定状态"""
    ALLOWED = "allowed"          # 可以直接阅读
    REDEEMABLE = "redeemable"    # 余额足够，调用方可以显式兑换
    LOCKED = "locked"            # 余额不足


@dataclass(frozen=True)
class UnlockDecision:
    """解锁判定结果"""
    status: UnlockStatus
    chapter_number: int
    required_coins: int = 0
    available: int = 0

    @property
    def allowed(self) -> bool:
        return self.status == UnlockStatus.ALLOWED


def required_coins_for_chapter(step_no: int, costs: Optional[Dict[int, int]] = None) -> int:
    """
    章节解锁价格（查表，未配置的章节免费）

    Args:
        step_no: 章节序号
        costs: 价格表，默认读取配置 unlock.chapter_costs

    Returns:
        所需金币
    """
    table = settings.CHAPTER_COSTS if costs is None else costs
    return int(table.get(step_no, 0))


def is_paid_chapter(step_no: int, costs: Optional[Dict[int, int]] = None) -> bool:
    """章节是否需要金币解锁"""
    return step_no > settings.FREE_CHAPTERS and required_coins_for_chapter(step_no, costs) > 0


def decide(
    plan: str,
    step_no: int,
    already_unlocked: bool,
    balance: int,
    costs: Optional[Dict[int, int]] = None
) -> UnlockDecision:
    """
    判定章节是否可以阅读

    规则：
    - 非免费计划始终可读
    - 前两章对所有人免费
    - 已解锁的章节永久可读，与当前余额无关
    - 余额足够时返回 REDEEMABLE，由调用方显式兑换
    - 否则锁定，并带上所需金币与当前余额

    Args:
        plan: 订阅计划（free/premium/creator）
        step_no: 章节序号
        already_unlocked: 是否存在解锁记录
        balance: 当前余额（快照）
        costs: 价格表

    Returns:
        UnlockDecision
    """
    if plan != settings.FREE_PLAN or step_no <= settings.FREE_CHAPTERS:
        return UnlockDecision(UnlockStatus.ALLOWED, step_no)

    if already_unlocked:
        return UnlockDecision(UnlockStatus.ALLOWED, step_no)

    required = required_coins_for_chapter(step_no, costs)
    if required <= 0:
        return UnlockDecision(UnlockStatus.ALLOWED, step_no)

    status = UnlockStatus.REDEEMABLE if balance >= required else UnlockStatus.LOCKED
    return UnlockDecision(status, step_no, required_coins=required, available=balance)
