"""
章节评分数据访问对象
"""

from typing import Dict, List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.db.base import insert_ignore
from backend.db.models.genre_rating import GenreRating


class RatingDAO:
    """评分 DAO"""

    @staticmethod
    async def upsert(
        session: AsyncSession,
        user_id: str,
        run_id: str,
        node_id: str,
        genre_key: str,
        rating: int
    ) -> None:
        """写入评分（同一旅程同一节点重复评分时覆盖）"""
        stmt = insert_ignore(session, GenreRating).values(
            user_id=user_id,
            run_id=run_id,
            node_id=node_id,
            genre_key=genre_key,
            rating=rating,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["run_id", "node_id"],
            set_={"rating": stmt.excluded.rating},
        )
        await session.execute(stmt)

    @staticmethod
    async def has_rating(session: AsyncSession, run_id: str, node_id: str) -> bool:
        """检查节点是否已评分"""
        result = await session.execute(
            select(GenreRating.id).where(
                GenreRating.run_id == run_id,
                GenreRating.node_id == node_id
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def average_for_nodes(session: AsyncSession, node_ids: List[str]) -> Dict[str, float]:
        """批量获取节点平均评分"""
        if not node_ids:
            return {}
        result = await session.execute(
            select(GenreRating.node_id, func.avg(GenreRating.rating))
            .where(GenreRating.node_id.in_(node_ids))
            .group_by(GenreRating.node_id)
        )
        return {node_id: round(float(avg), 2) for node_id, avg in result.all() if avg is not None}

    @staticmethod
    async def average_for_run(session: AsyncSession, run_id: str) -> Optional[float]:
        """旅程各章节评分平均值"""
        result = await session.execute(
            select(func.avg(GenreRating.rating)).where(GenreRating.run_id == run_id)
        )
        avg = result.scalar()
        return round(float(avg), 2) if avg is not None else None
