"""
管理后台金币路由（需要管理员权限）
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models import ApiResponse, AdjustRequest, RefundRequest
from backend.api.deps import require_admin, get_db_session
from backend.services.ledger_service import ledger_service

router = APIRouter()


@router.get("/summary", response_model=ApiResponse)
async def global_summary(
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    """全站金币汇总"""
    result = await ledger_service.global_summary(session)
    return ApiResponse(success=True, data=result.model_dump())


@router.post("/adjust", response_model=ApiResponse)
async def adjust(
    data: AdjustRequest,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    """
    调整用户金币

    - delta 为非零整数，可为负
    - 调整后余额不能为负
    """
    balance = await ledger_service.adjust(
        session,
        data.user_id,
        data.delta,
        reason=data.reason,
        meta={"by_admin": admin["user_id"]},
    )
    return ApiResponse(success=True, data={"user_id": data.user_id, "balance": balance})


@router.post("/refund", response_model=ApiResponse)
async def refund(
    data: RefundRequest,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    """退款（同一交易只能退款一次）"""
    result = await ledger_service.refund(session, data.transaction_id, admin_id=admin["user_id"])
    return ApiResponse(success=True, data=result.model_dump())


@router.post("/reconcile/{user_id}", response_model=ApiResponse)
async def reconcile(
    user_id: str,
    admin: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    """按账本合计修正用户余额"""
    result = await ledger_service.reconcile(session, user_id)
    return ApiResponse(
        success=True,
        data={**result.model_dump(), "drifted": result.drifted}
    )
