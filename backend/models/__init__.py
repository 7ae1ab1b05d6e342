"""
数据模型模块

导出所有 Pydantic 数据模型，用于 API 请求/响应验证
"""

# 通用响应
from .response import ApiResponse, ErrorResponse

# 金币模块
from .coin import (
    TransactionType, CreditOutcome, DedupKey, CreditResult,
    CoinTransactionResponse, CoinSummary, GlobalCoinSummary, CoinHistory,
    AdjustRequest, RefundRequest, RefundResult, ReconcileResult
)

# 旅程模块
from .run import (
    NodeView, ChoiceView, CurrentNode, ChapterLocked, RunView,
    StartRunResult, RunListItem, PickedStep, Journey, RunSummary,
    UnlockResult, ReadingStateView, ChooseRequest, RateRequest, UnlockRequest,
    ReadingStateRequest, FeedbackRequest
)

__all__ = [
    # Response
    "ApiResponse",
    "ErrorResponse",

    # Coin
    "TransactionType",
    "CreditOutcome",
    "DedupKey",
    "CreditResult",
    "CoinTransactionResponse",
    "CoinSummary",
    "GlobalCoinSummary",
    "CoinHistory",
    "AdjustRequest",
    "RefundRequest",
    "RefundResult",
    "ReconcileResult",

    # Run
    "NodeView",
    "ChoiceView",
    "CurrentNode",
    "ChapterLocked",
    "RunView",
    "StartRunResult",
    "RunListItem",
    "PickedStep",
    "Journey",
    "RunSummary",
    "UnlockResult",
    "ReadingStateView",
    "ChooseRequest",
    "RateRequest",
    "UnlockRequest",
    "ReadingStateRequest",
    "FeedbackRequest",
]
