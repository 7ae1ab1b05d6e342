"""
故事旅程模块路由
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models import (
    ApiResponse, ChapterLocked, ChooseRequest, RateRequest, UnlockRequest,
    ReadingStateRequest, FeedbackRequest
)
from backend.api.deps import get_current_user, get_db_session
from backend.services.run_service import run_service
from backend.services.unlock_service import unlock_service

router = APIRouter()


def _run_view_response(view):
    """锁定信号以 403 返回，正常节点包装为 ApiResponse"""
    if isinstance(view, ChapterLocked):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                "success": False,
                "message": "Chapter locked",
                **view.model_dump(),
            }
        )
    return ApiResponse(success=True, data=view.model_dump())


@router.get("/runs", response_model=ApiResponse)
async def list_runs(
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    我的旅程列表

    每个故事一条：优先进行中的旅程，否则为最近完成的旅程
    """
    runs = await run_service.list_runs(session, current_user["user_id"])
    return ApiResponse(success=True, data=[r.model_dump() for r in runs])


@router.post("/stories/{story_id}/start", response_model=ApiResponse)
async def start_run(
    story_id: str,
    restart: bool = Query(False, description="是否重新开始"),
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    开始或继续旅程

    - 存在进行中的旅程时继续（restart=true 时新建）
    - 新旅程从最新发布版本的起始节点开始
    """
    result = await run_service.start_run(session, current_user["user_id"], story_id, restart)
    return ApiResponse(success=True, data=result.model_dump())


@router.get("/runs/{run_id}/current")
async def get_current_node(
    run_id: str,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    获取当前章节

    章节未解锁时返回 403 与 CHAPTER_LOCKED（含所需金币与当前余额）
    """
    view = await run_service.get_current_node(
        session, run_id, current_user["user_id"], current_user["plan"]
    )
    return _run_view_response(view)


@router.post("/runs/{run_id}/choose")
async def choose(
    run_id: str,
    data: ChooseRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    选择题材，进入下一章

    - 每一章只能选择一次
    - 下一章未解锁时返回 403 CHAPTER_LOCKED，旅程不变
    """
    view = await run_service.choose(
        session, run_id, current_user["user_id"], current_user["plan"], data.genre_key
    )
    return _run_view_response(view)


@router.post("/runs/{run_id}/unlock", response_model=ApiResponse)
async def unlock_chapter(
    run_id: str,
    data: UnlockRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    用金币解锁章节

    - 已解锁的章节不重复扣费
    - 余额不足返回 402
    """
    result = await unlock_service.unlock_chapter(
        session, run_id, current_user["user_id"], current_user["plan"], data.chapter_number
    )
    return ApiResponse(success=True, data=result.model_dump())


@router.post("/runs/{run_id}/rate", response_model=ApiResponse)
async def rate(
    run_id: str,
    data: RateRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """为章节评分（1-5）"""
    await run_service.rate(session, run_id, current_user["user_id"], data.node_id, data.rating)
    return ApiResponse(success=True, message="Rating saved")


@router.post("/runs/{run_id}/finish", response_model=ApiResponse)
async def finish(
    run_id: str,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """结束旅程（需在最后一章并已评分）"""
    await run_service.finish(session, run_id, current_user["user_id"])
    return ApiResponse(success=True, message="Run finished")


@router.get("/runs/{run_id}/journey", response_model=ApiResponse)
async def journey(
    run_id: str,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """旅程进度"""
    result = await run_service.journey(session, run_id, current_user["user_id"])
    return ApiResponse(success=True, data=result.model_dump())


@router.get("/runs/{run_id}/summary", response_model=ApiResponse)
async def summary(
    run_id: str,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """旅程总结"""
    result = await run_service.summary(session, run_id, current_user["user_id"])
    return ApiResponse(success=True, data=result.model_dump())


@router.get("/runs/{run_id}/unlocks", response_model=ApiResponse)
async def unlocked_chapters(
    run_id: str,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """旅程所属故事下已解锁的章节"""
    chapters = await run_service.unlocked_chapters(session, run_id, current_user["user_id"])
    return ApiResponse(success=True, data={"unlocked_chapters": chapters})


@router.get("/runs/{run_id}/reading-state", response_model=ApiResponse)
async def get_reading_state(
    run_id: str,
    node_id: str = Query(..., min_length=1, description="节点ID"),
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """获取节点阅读状态（未保存时 state 为 null）"""
    state = await run_service.get_reading_state(session, run_id, current_user["user_id"], node_id)
    return ApiResponse(success=True, data={"state": state.model_dump() if state else None})


@router.post("/runs/{run_id}/reading-state", response_model=ApiResponse)
async def save_reading_state(
    run_id: str,
    data: ReadingStateRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """保存节点阅读状态（页码、书签、字号）"""
    state = await run_service.save_reading_state(
        session,
        run_id,
        current_user["user_id"],
        data.node_id,
        page_index=data.page_index,
        bookmark_page_index=data.bookmark_page_index,
        font_px=data.font_px,
    )
    return ApiResponse(success=True, data={"state": state.model_dump()})


@router.post("/runs/{run_id}/feedback", response_model=ApiResponse)
async def submit_feedback(
    run_id: str,
    data: FeedbackRequest,
    current_user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session)
):
    """
    提交旅程反馈

    - 仅限已完成的旅程
    - 重复提交覆盖之前的反馈
    """
    await run_service.submit_feedback(
        session, run_id, current_user["user_id"], rating=data.rating, feedback=data.feedback
    )
    return ApiResponse(success=True, message="Feedback saved")
