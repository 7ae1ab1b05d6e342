"""
API v1 路由汇总
"""

from fastapi import APIRouter

from .runs import router as runs_router
from .coins import router as coins_router
from .admin import router as admin_router

# 创建 v1 API 路由
api_router = APIRouter()

# 注册子路由（按前缀分组）
api_router.include_router(runs_router, tags=["Run"])
api_router.include_router(coins_router, prefix="/coins", tags=["Coin"])
api_router.include_router(admin_router, prefix="/admin/coins", tags=["Admin"])
