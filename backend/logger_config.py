"""
日志配置模块

账本操作写入独立的日志文件，便于对账与审计
"""
import os
from loguru import logger
from functools import wraps

from backend.config.settings import settings
from backend.exceptions import StoryCoinError

_configured = False


def setup_logging():
    """添加账本日志文件（应用启动时调用一次）"""
    global _configured
    if _configured:
        return

    os.makedirs(settings.LOG_DIR, exist_ok=True)
    logger.add(
        os.path.join(settings.LOG_DIR, "ledger.log"),
        rotation="10 MB",  # 日志文件达到 10MB 时轮转
        retention="30 days",
        compression="zip",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {extra[ledger_op]} | {message}",
        level=settings.LOG_LEVEL,
        filter=lambda record: "ledger_op" in record["extra"]
    )
    _configured = True


def ledger_operation(operation: str):
    """
    装饰器：为账本操作绑定日志上下文

    用法:
        @staticmethod
        @ledger_operation("refund")
        async def refund(...):
            pass
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            with logger.contextualize(ledger_op=operation):
                try:
                    return await func(*args, **kwargs)
                except StoryCoinError as e:
                    logger.warning(f"⚠️  {operation} rejected: {e.code} {e.detail}")
                    raise
                except Exception as e:
                    logger.error(f"❌ {operation} failed: {e}")
                    raise

        return wrapper

    return decorator
