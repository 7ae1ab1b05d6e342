"""
领域异常

服务层与 DAO 层抛出，API 层统一转换为结构化错误响应
"""

from typing import Optional, Dict, Any


class StoryCoinError(Exception):
    """领域异常基类"""

    code = "INTERNAL_ERROR"
    http_status = 500
    default_message = "服务器内部错误"

    def __init__(self, message: Optional[str] = None, **detail: Any):
        self.message = message or self.default_message
        self.detail: Dict[str, Any] = detail
        super().__init__(self.message)

    def to_error(self) -> Dict[str, Any]:
        """转换为 API 错误体"""
        error = {"code": self.code, "message": self.message}
        error.update(self.detail)
        return error


class NotFoundError(StoryCoinError):
    """旅程、节点、规则或交易不存在"""
    code = "NOT_FOUND"
    http_status = 404
    default_message = "资源不存在"


class AlreadyChosenError(StoryCoinError):
    """当前章节已做出选择（章节一旦选择即锁定）"""
    code = "ALREADY_CHOSEN"
    http_status = 409
    default_message = "该章节已选择，无法修改"


class InvalidChoiceError(StoryCoinError):
    """当前节点不存在该题材选项"""
    code = "INVALID_CHOICE"
    http_status = 400
    default_message = "无效的选项"


class RunCompletedError(StoryCoinError):
    """旅程已完成，不允许再修改"""
    code = "RUN_COMPLETED"
    http_status = 400
    default_message = "旅程已完成"


class RunNotFinishableError(StoryCoinError):
    """旅程未到达终章或终章未评分"""
    code = "RUN_NOT_FINISHABLE"
    http_status = 400
    default_message = "旅程尚不能结束"


class RunNotCompletedError(StoryCoinError):
    """旅程尚未完成（如提交反馈）"""
    code = "RUN_NOT_COMPLETED"
    http_status = 400
    default_message = "旅程尚未完成"


class InsufficientCoinsError(StoryCoinError):
    """金币不足（余额不允许为负）"""
    code = "INSUFFICIENT_COINS"
    http_status = 402
    default_message = "金币不足"


class AlreadyRefundedError(StoryCoinError):
    """该交易已退款"""
    code = "ALREADY_REFUNDED"
    http_status = 409
    default_message = "该交易已退款"


class InvalidAmountError(StoryCoinError):
    """金币数量无效"""
    code = "INVALID_AMOUNT"
    http_status = 400
    default_message = "金币数量必须为非零整数"


class InvalidChapterError(StoryCoinError):
    """章节不需要解锁或不存在"""
    code = "INVALID_CHAPTER"
    http_status = 400
    default_message = "无效的章节序号"


class IntegrityFaultError(StoryCoinError):
    """数据完整性错误（悬空引用、缺少起始节点等）"""
    code = "INTEGRITY_FAULT"
    http_status = 500
    default_message = "故事数据不完整"
