"""
故事旅程数据访问对象
"""

from typing import Optional, List, Tuple
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

from backend.db.base import insert_ignore
from backend.db.models.story import Story
from backend.db.models.story_run import StoryRun, RunChoice
from backend.db.models.reading_state import ReadingState
from backend.db.models.run_feedback import RunFeedback
from backend.utils.id_generator import generate_run_id


class RunDAO:
    """旅程 DAO"""

    @staticmethod
    async def create(
        session: AsyncSession,
        user_id: str,
        story_id: str,
        version_id: str,
        start_node_id: str
    ) -> StoryRun:
        """
        创建旅程

        Args:
            session: 数据库会话
            user_id: 用户ID
            story_id: 故事ID
            version_id: 发布版本ID
            start_node_id: 起始节点ID

        Returns:
            StoryRun: 新创建的旅程
        """
        run = StoryRun(
            id=generate_run_id(),
            user_id=user_id,
            story_id=story_id,
            version_id=version_id,
            current_node_id=start_node_id,
            is_completed=False,
        )
        session.add(run)
        await session.flush()
        return run

    @staticmethod
    async def get_owned(session: AsyncSession, run_id: str, user_id: str) -> Optional[StoryRun]:
        """获取属于该用户的旅程"""
        result = await session.execute(
            select(StoryRun).where(StoryRun.id == run_id, StoryRun.user_id == user_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active(session: AsyncSession, user_id: str, story_id: str) -> Optional[StoryRun]:
        """获取用户在该故事下最近更新的未完成旅程"""
        result = await session.execute(
            select(StoryRun)
            .where(
                StoryRun.user_id == user_id,
                StoryRun.story_id == story_id,
                StoryRun.is_completed.is_(False)
            )
            .order_by(StoryRun.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_user(session: AsyncSession, user_id: str) -> List[Tuple[StoryRun, str]]:
        """
        获取用户的旅程列表（每个故事一条）

        优先返回进行中的旅程，否则返回最近完成的旅程
        """
        result = await session.execute(
            select(StoryRun, Story.title)
            .join(Story, StoryRun.story_id == Story.id)
            .where(StoryRun.user_id == user_id)
            .order_by(StoryRun.story_id, StoryRun.is_completed.asc(), StoryRun.updated_at.desc())
        )

        runs = []
        seen = set()
        for run, title in result.all():
            if run.story_id in seen:
                continue
            seen.add(run.story_id)
            runs.append((run, title))
        return runs

    @staticmethod
    async def get_choice_for_step(session: AsyncSession, run_id: str, step_no: int) -> Optional[RunChoice]:
        """获取旅程某一步的选择"""
        result = await session.execute(
            select(RunChoice).where(RunChoice.run_id == run_id, RunChoice.step_no == step_no)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_choice_to_node(session: AsyncSession, run_id: str, node_id: str) -> Optional[RunChoice]:
        """获取旅程中到达某节点的选择"""
        result = await session.execute(
            select(RunChoice).where(RunChoice.run_id == run_id, RunChoice.to_node_id == node_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_choices(session: AsyncSession, run_id: str) -> List[RunChoice]:
        """获取旅程的选择历史（按章节排序）"""
        result = await session.execute(
            select(RunChoice).where(RunChoice.run_id == run_id).order_by(RunChoice.step_no)
        )
        return list(result.scalars().all())

    @staticmethod
    async def record_choice(
        session: AsyncSession,
        run_id: str,
        step_no: int,
        from_node_id: str,
        genre_key: str,
        to_node_id: str
    ) -> bool:
        """
        写入选择记录（run_id, step_no 唯一）

        Returns:
            True 表示写入成功；False 表示该步已被选择
        """
        stmt = insert_ignore(session, RunChoice).values(
            run_id=run_id,
            step_no=step_no,
            from_node_id=from_node_id,
            genre_key=genre_key,
            to_node_id=to_node_id,
            created_at=datetime.utcnow(),
        ).on_conflict_do_nothing(index_elements=["run_id", "step_no"])
        result = await session.execute(stmt.returning(RunChoice.id))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def advance(
        session: AsyncSession,
        run_id: str,
        from_node_id: str,
        to_node_id: str
    ) -> bool:
        """
        推进当前节点（比较并交换：仅当当前节点仍为 from_node_id 且未完成）

        Returns:
            是否推进成功
        """
        result = await session.execute(
            update(StoryRun)
            .where(
                StoryRun.id == run_id,
                StoryRun.current_node_id == from_node_id,
                StoryRun.is_completed.is_(False)
            )
            .values(current_node_id=to_node_id, updated_at=datetime.utcnow())
            .returning(StoryRun.id)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def complete(session: AsyncSession, run_id: str) -> bool:
        """
        标记旅程完成

        Returns:
            True 表示本次完成；False 表示之前已完成
        """
        result = await session.execute(
            update(StoryRun)
            .where(StoryRun.id == run_id, StoryRun.is_completed.is_(False))
            .values(is_completed=True, updated_at=datetime.utcnow())
            .returning(StoryRun.id)
        )
        return result.scalar_one_or_none() is not None

    # ==================== 阅读状态 ====================

    @staticmethod
    async def get_reading_state(
        session: AsyncSession,
        user_id: str,
        run_id: str,
        node_id: str
    ) -> Optional[ReadingState]:
        """获取某节点的阅读状态"""
        result = await session.execute(
            select(ReadingState).where(
                ReadingState.user_id == user_id,
                ReadingState.run_id == run_id,
                ReadingState.node_id == node_id
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert_reading_state(
        session: AsyncSession,
        user_id: str,
        run_id: str,
        node_id: str,
        page_index: int,
        bookmark_page_index: Optional[int],
        font_px: Optional[int]
    ) -> ReadingState:
        """
        写入阅读状态（user_id, run_id, node_id 唯一，重复写入时覆盖）

        Returns:
            ReadingState: 写入后的记录
        """
        now = datetime.utcnow()
        stmt = insert_ignore(session, ReadingState).values(
            user_id=user_id,
            run_id=run_id,
            node_id=node_id,
            page_index=page_index,
            bookmark_page_index=bookmark_page_index,
            font_px=font_px,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "run_id", "node_id"],
            set_={
                "page_index": stmt.excluded.page_index,
                "bookmark_page_index": stmt.excluded.bookmark_page_index,
                "font_px": stmt.excluded.font_px,
                "updated_at": now,
            },
        )
        result = await session.execute(stmt.returning(ReadingState.id))
        state_id = result.scalar_one()
        return await session.get(ReadingState, state_id, populate_existing=True)

    # ==================== 旅程反馈 ====================

    @staticmethod
    async def upsert_feedback(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        story_id: str,
        rating: Optional[int],
        feedback: Optional[str]
    ) -> RunFeedback:
        """写入旅程反馈（run_id, user_id 唯一，重复提交时覆盖评分与文本）"""
        now = datetime.utcnow()
        stmt = insert_ignore(session, RunFeedback).values(
            run_id=run_id,
            user_id=user_id,
            story_id=story_id,
            rating=rating,
            feedback=feedback,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["run_id", "user_id"],
            set_={
                "rating": stmt.excluded.rating,
                "feedback": stmt.excluded.feedback,
                "updated_at": now,
            },
        )
        result = await session.execute(stmt.returning(RunFeedback.id))
        feedback_id = result.scalar_one()
        return await session.get(RunFeedback, feedback_id, populate_existing=True)
