"""
金币模块路由
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models import ApiResponse, CoinHistory
from backend.api.deps import get_current_user, get_db_session
from backend.services.ledger_service import ledger_service

router = APIRouter()


@router.get("/summary", response_model=ApiResponse)
async def get_summary(
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    金币汇总

    返回：
    - available: 可用金币
    - used: 已消费金币
    """
    result = await ledger_service.summary(session, current_user["user_id"])
    return ApiResponse(success=True, data=result.model_dump())


@router.get("/history", response_model=ApiResponse)
async def get_history(
    type: Optional[str] = Query(None, description="交易类型筛选（earn/redeem/adjust）"),
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """金币流水（最近 200 条）"""
    items = await ledger_service.history(session, current_user["user_id"], type)
    return ApiResponse(success=True, data=CoinHistory(items=items).model_dump(mode="json"))
