"""
章节解锁服务

decide_unlock 只读判定；unlock_chapter 是唯一会为章节扣费的入口
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config.settings import settings
from backend.db.dao import UnlockDAO, LedgerDAO, RunDAO, StoryDAO
from backend.exceptions import InvalidChapterError, NotFoundError
from backend.models import UnlockResult
from backend.services.unlock_gate import (
    UnlockDecision, decide, is_paid_chapter, required_coins_for_chapter
)
from backend.services.ledger_service import LedgerService


class UnlockService:
    """章节解锁服务"""

    @staticmethod
    async def decide_unlock(
        session: AsyncSession,
        plan: str,
        step_no: int,
        user_id: str,
        story_id: str
    ) -> UnlockDecision:
        """
        读取解锁记录与余额快照后做出判定

        余额只作参考，真正扣费时会再次校验
        """
        if plan != settings.FREE_PLAN or step_no <= settings.FREE_CHAPTERS:
            return decide(plan, step_no, False, 0)

        already_unlocked = await UnlockDAO.is_unlocked(session, user_id, story_id, step_no)
        balance = await LedgerDAO.get_balance(session, user_id)
        return decide(plan, step_no, already_unlocked, balance)

    @staticmethod
    async def unlock_chapter(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        plan: str,
        chapter_number: int
    ) -> UnlockResult:
        """
        用金币解锁章节

        Args:
            session: 数据库会话
            run_id: 旅程ID（用于定位故事）
            user_id: 用户ID
            plan: 订阅计划
            chapter_number: 章节序号

        Returns:
            UnlockResult
        """
        if not is_paid_chapter(chapter_number):
            raise InvalidChapterError(chapter_number=chapter_number)

        if plan != settings.FREE_PLAN:
            return UnlockResult(unlocked=True, chapter_number=chapter_number)

        run = await RunDAO.get_owned(session, run_id, user_id)
        if run is None:
            raise NotFoundError("旅程不存在", resource="run", run_id=run_id)

        story = await StoryDAO.get_story(session, run.story_id)
        cost = required_coins_for_chapter(chapter_number)

        remaining = await LedgerService.redeem_chapter(
            session,
            user_id=user_id,
            story_id=run.story_id,
            chapter_number=chapter_number,
            cost=cost,
            story_title=story.title if story else None,
        )

        if remaining is None:
            logger.info(f"Chapter {chapter_number} of {run.story_id} already unlocked for {user_id}")
            return UnlockResult(
                already_unlocked=True,
                remaining_coins=await LedgerDAO.get_balance(session, user_id),
                story_id=run.story_id,
                chapter_number=chapter_number,
            )

        return UnlockResult(
            spent=cost,
            remaining_coins=remaining,
            story_id=run.story_id,
            chapter_number=chapter_number,
        )


# 全局解锁服务实例
unlock_service = UnlockService()
