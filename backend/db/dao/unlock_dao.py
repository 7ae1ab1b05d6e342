"""
章节解锁数据访问对象
"""

from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.db.base import insert_ignore
from backend.db.models.chapter_unlock import ChapterUnlock


class UnlockDAO:
    """章节解锁 DAO"""

    @staticmethod
    async def is_unlocked(
        session: AsyncSession,
        user_id: str,
        story_id: str,
        chapter_number: int
    ) -> bool:
        """检查章节是否已解锁"""
        result = await session.execute(
            select(ChapterUnlock.id).where(
                ChapterUnlock.user_id == user_id,
                ChapterUnlock.story_id == story_id,
                ChapterUnlock.chapter_number == chapter_number
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def grant(
        session: AsyncSession,
        user_id: str,
        story_id: str,
        chapter_number: int
    ) -> bool:
        """
        写入解锁记录

        Returns:
            True 表示新写入；False 表示记录已存在
        """
        stmt = insert_ignore(session, ChapterUnlock).values(
            user_id=user_id,
            story_id=story_id,
            chapter_number=chapter_number,
        ).on_conflict_do_nothing(index_elements=["user_id", "story_id", "chapter_number"])
        result = await session.execute(stmt.returning(ChapterUnlock.id))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_chapters(session: AsyncSession, user_id: str, story_id: str) -> List[int]:
        """获取用户在某故事下已解锁的章节序号"""
        result = await session.execute(
            select(ChapterUnlock.chapter_number)
            .where(ChapterUnlock.user_id == user_id, ChapterUnlock.story_id == story_id)
            .order_by(ChapterUnlock.chapter_number)
        )
        return [int(n) for n in result.scalars().all()]
