"""
业务服务层
"""

from .unlock_gate import UnlockStatus, UnlockDecision, decide, required_coins_for_chapter
from .ledger_service import ledger_service, LedgerService
from .unlock_service import unlock_service, UnlockService
from .reward_service import reward_service, RewardService
from .run_service import run_service, RunService

__all__ = [
    # 解锁判定
    "UnlockStatus",
    "UnlockDecision",
    "decide",
    "required_coins_for_chapter",
    # 服务类
    "LedgerService",
    "UnlockService",
    "RewardService",
    "RunService",
    # 全局服务实例
    "ledger_service",
    "unlock_service",
    "reward_service",
    "run_service",
]
