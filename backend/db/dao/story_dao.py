"""
故事图数据访问对象

节点图由外部导入/发布流程生成，核心逻辑只读；
create_* 方法供发布流程与测试构造数据使用。
"""

from typing import Optional, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

from backend.db.models.story import Story
from backend.db.models.story_version import StoryVersion
from backend.db.models.story_node import StoryNode, NodeChoice
from backend.utils.id_generator import generate_story_id, generate_version_id, generate_node_id


class StoryDAO:
    """故事图 DAO"""

    @staticmethod
    async def create_story(session: AsyncSession, title: str, slug: Optional[str] = None) -> Story:
        """创建故事"""
        story = Story(id=generate_story_id(), title=title, slug=slug)
        session.add(story)
        await session.flush()
        return story

    @staticmethod
    async def create_version(
        session: AsyncSession,
        story_id: str,
        is_published: bool = True,
        published_at: Optional[datetime] = None
    ) -> StoryVersion:
        """创建故事版本"""
        version = StoryVersion(
            id=generate_version_id(),
            story_id=story_id,
            is_published=is_published,
            published_at=published_at or (datetime.utcnow() if is_published else None),
        )
        session.add(version)
        await session.flush()
        return version

    @staticmethod
    async def create_node(
        session: AsyncSession,
        version_id: str,
        step_no: int,
        title: Optional[str] = None,
        content: Optional[str] = None,
        is_start: bool = False
    ) -> StoryNode:
        """创建故事节点"""
        node = StoryNode(
            id=generate_node_id(),
            version_id=version_id,
            step_no=step_no,
            title=title,
            content=content,
            is_start=is_start,
        )
        session.add(node)
        await session.flush()
        return node

    @staticmethod
    async def create_choice(
        session: AsyncSession,
        from_node_id: str,
        genre_key: str,
        to_node_id: str,
        label: Optional[str] = None
    ) -> NodeChoice:
        """创建节点选项"""
        choice = NodeChoice(
            from_node_id=from_node_id,
            genre_key=genre_key,
            to_node_id=to_node_id,
            label=label,
        )
        session.add(choice)
        await session.flush()
        return choice

    @staticmethod
    async def get_story(session: AsyncSession, story_id: str) -> Optional[Story]:
        """根据ID获取故事"""
        return await session.get(Story, story_id)

    @staticmethod
    async def get_latest_published_version(
        session: AsyncSession,
        story_id: str
    ) -> Optional[StoryVersion]:
        """获取最新发布的版本"""
        result = await session.execute(
            select(StoryVersion)
            .where(StoryVersion.story_id == story_id, StoryVersion.is_published.is_(True))
            .order_by(StoryVersion.published_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_start_nodes(session: AsyncSession, version_id: str) -> List[StoryNode]:
        """获取版本的起始节点（合法数据恰好一个）"""
        result = await session.execute(
            select(StoryNode).where(
                StoryNode.version_id == version_id,
                StoryNode.is_start.is_(True)
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_node(session: AsyncSession, node_id: str) -> Optional[StoryNode]:
        """根据ID获取节点"""
        return await session.get(StoryNode, node_id)

    @staticmethod
    async def get_choices(session: AsyncSession, from_node_id: str) -> List[NodeChoice]:
        """获取节点的全部选项（按题材键排序）"""
        result = await session.execute(
            select(NodeChoice)
            .where(NodeChoice.from_node_id == from_node_id)
            .order_by(NodeChoice.genre_key)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_choice(
        session: AsyncSession,
        from_node_id: str,
        genre_key: str
    ) -> Optional[NodeChoice]:
        """获取节点的指定题材选项"""
        result = await session.execute(
            select(NodeChoice).where(
                NodeChoice.from_node_id == from_node_id,
                NodeChoice.genre_key == genre_key
            )
        )
        return result.scalar_one_or_none()
