"""
奖励触发服务

把业务事件（注册、评分、完成旅程、作品被点赞/浏览）转换为账本奖励。
奖励是附带效果：每次发放在独立的 SAVEPOINT 中执行，失败时只回滚奖励本身的写入，
调用方在同一会话中的其他写入照常提交。

调用方：on_chapter_rated / on_run_finished 由旅程服务调用；
on_signup、on_writing_liked、on_writing_viewed 供外部的注册与作品服务调用
（本服务不负责注册和作品的点赞、浏览计数），调用时传入同一个工作单元的会话。
"""

from typing import Optional, List
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config.rewards import RewardConfig
from backend.models import CreditResult
from backend.services.ledger_service import LedgerService


class RewardService:
    """奖励触发服务"""

    @staticmethod
    async def _grant(
        session: AsyncSession,
        user_id: str,
        rule_key: str,
        meta: Optional[dict] = None,
        stable_id: Optional[str] = None
    ) -> Optional[CreditResult]:
        try:
            async with session.begin_nested():
                return await LedgerService.credit_if_eligible(
                    session,
                    user_id=user_id,
                    rule_key=rule_key,
                    reason=rule_key,
                    meta=meta,
                    stable_id=stable_id,
                )
        except Exception as e:
            logger.error(f"❌ Reward '{rule_key}' for {user_id} failed: {e}")
            return None

    @staticmethod
    async def on_signup(session: AsyncSession, user_id: str) -> Optional[CreditResult]:
        """注册奖励（每个用户一次）"""
        return await RewardService._grant(session, user_id, RewardConfig.SIGNUP, meta={})

    @staticmethod
    async def on_chapter_rated(
        session: AsyncSession,
        user_id: str,
        run_id: str,
        node_id: str
    ) -> Optional[CreditResult]:
        """章节评分奖励（同一旅程同一节点一次）"""
        return await RewardService._grant(
            session, user_id, RewardConfig.CHAPTER_RATE,
            meta={"runId": run_id, "nodeId": node_id},
        )

    @staticmethod
    async def on_run_finished(
        session: AsyncSession,
        user_id: str,
        run_id: str,
        story_id: str,
        node_id: str,
        step_no: int
    ) -> Optional[CreditResult]:
        """
        完成旅程奖励

        Args:
            session: 数据库会话
            user_id: 用户ID
            run_id: 旅程ID
            story_id: 故事ID
            node_id: 终章节点ID
            step_no: 终章序号

        Returns:
            CreditResult；失败时为 None
        """
        return await RewardService._grant(
            session, user_id, RewardConfig.CHAPTER_COMPLETE,
            meta={"runId": run_id, "storyId": story_id, "nodeId": node_id, "stepNo": step_no},
            stable_id=f"{run_id}:{node_id}",
        )

    @staticmethod
    async def on_writing_liked(
        session: AsyncSession,
        author_id: str,
        liker_id: str,
        writing_id: str
    ) -> Optional[CreditResult]:
        """作品被点赞奖励给作者（每个点赞者一次，自己点赞不计）"""
        if author_id == liker_id:
            return None

        return await RewardService._grant(
            session, author_id, RewardConfig.WRITING_LIKE,
            meta={"writingId": writing_id, "likerId": liker_id},
        )

    @staticmethod
    async def on_writing_viewed(
        session: AsyncSession,
        author_id: str,
        writing_id: str,
        views_count: int
    ) -> List[CreditResult]:
        """
        作品浏览里程碑奖励

        对已达到的每个里程碑发放一次，重复调用不会重复发放

        Args:
            session: 数据库会话
            author_id: 作者ID
            writing_id: 作品ID
            views_count: 当前浏览次数

        Returns:
            每个已达到里程碑的发放结果
        """
        results = []
        for threshold, rule_key in RewardConfig.VIEW_MILESTONES:
            if views_count < threshold:
                break
            result = await RewardService._grant(
                session, author_id, rule_key,
                meta={"writingId": writing_id, "milestone": threshold},
            )
            if result is not None:
                results.append(result)
        return results


# 全局奖励服务实例
reward_service = RewardService()
