"""
故事旅程服务

管理旅程的开始/继续、当前节点展示、题材选择、评分与结束。
每一次判定都重新读取数据库，不保存进程内状态。
"""

from typing import List, Optional
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config.settings import settings
from backend.db.dao import StoryDAO, RunDAO, RatingDAO, UnlockDAO
from backend.db.models.story_node import StoryNode
from backend.db.models.story_run import StoryRun
from backend.exceptions import (
    NotFoundError, AlreadyChosenError, InvalidChoiceError, RunCompletedError,
    RunNotFinishableError, RunNotCompletedError, IntegrityFaultError
)
from backend.models import (
    NodeView, ChoiceView, CurrentNode, ChapterLocked, RunView, StartRunResult,
    RunListItem, PickedStep, Journey, RunSummary, ReadingStateView
)
from backend.services.unlock_gate import UnlockDecision
from backend.services.unlock_service import UnlockService
from backend.services.reward_service import RewardService

# 反馈文本长度上限
FEEDBACK_MAX_LENGTH = 2000


class RunService:
    """故事旅程服务"""

    # ==================== 内部工具 ====================

    @staticmethod
    async def _owned_run(session: AsyncSession, run_id: str, user_id: str) -> StoryRun:
        run = await RunDAO.get_owned(session, run_id, user_id)
        if run is None:
            raise NotFoundError("旅程不存在", resource="run", run_id=run_id)
        return run

    @staticmethod
    async def _current_node(session: AsyncSession, run: StoryRun) -> StoryNode:
        node = await StoryDAO.get_node(session, run.current_node_id)
        if node is None:
            logger.error(f"❌ Integrity fault: run {run.id} points to missing node {run.current_node_id}")
            raise NotFoundError("节点不存在", resource="node", node_id=run.current_node_id)
        return node

    @staticmethod
    async def _run_node(session: AsyncSession, run: StoryRun, node_id: str) -> StoryNode:
        """旅程所属版本中的节点"""
        node = await StoryDAO.get_node(session, node_id)
        if node is None or node.version_id != run.version_id:
            raise NotFoundError("节点不存在", resource="node", node_id=node_id)
        return node

    @staticmethod
    def _locked(run: StoryRun, decision: UnlockDecision) -> ChapterLocked:
        return ChapterLocked(
            run_id=run.id,
            story_id=run.story_id,
            chapter_number=decision.chapter_number,
            required_coins=decision.required_coins,
            available=decision.available,
        )

    @staticmethod
    async def _project(session: AsyncSession, run: StoryRun, node: StoryNode) -> CurrentNode:
        """构造当前节点展示数据（调用前必须已通过解锁判定）"""
        choices = await StoryDAO.get_choices(session, node.id)
        ratings = await RatingDAO.average_for_nodes(session, [c.to_node_id for c in choices])

        return CurrentNode(
            run_id=run.id,
            story_id=run.story_id,
            node=NodeView(
                id=node.id,
                title=node.title,
                content=node.content,
                step_no=node.step_no,
                is_start=bool(node.is_start),
            ),
            choices=[
                ChoiceView(
                    genre_key=c.genre_key,
                    label=c.label,
                    to_node_id=c.to_node_id,
                    avg_rating=ratings.get(c.to_node_id),
                )
                for c in choices
            ],
            rating_submitted=await RatingDAO.has_rating(session, run.id, node.id),
            is_completed=bool(run.is_completed),
        )

    # ==================== 旅程操作 ====================

    @staticmethod
    async def start_run(
        session: AsyncSession,
        user_id: str,
        story_id: str,
        restart: bool = False
    ) -> StartRunResult:
        """
        开始或继续旅程

        Args:
            session: 数据库会话
            user_id: 用户ID
            story_id: 故事ID
            restart: 是否忽略进行中的旅程重新开始

        Returns:
            StartRunResult
        """
        version = await StoryDAO.get_latest_published_version(session, story_id)
        if version is None:
            raise NotFoundError("故事不存在或未发布", resource="story", story_id=story_id)

        if not restart:
            active = await RunDAO.get_active(session, user_id, story_id)
            if active is not None:
                return StartRunResult(run_id=active.id, resumed=True)

        start_nodes = await StoryDAO.get_start_nodes(session, version.id)
        if len(start_nodes) != 1:
            logger.error(
                f"❌ Integrity fault: version {version.id} has {len(start_nodes)} start nodes"
            )
            raise IntegrityFaultError(version_id=version.id)

        run = await RunDAO.create(session, user_id, story_id, version.id, start_nodes[0].id)
        logger.info(f"🚀 Run {run.id} started for {user_id} on {story_id}")
        return StartRunResult(run_id=run.id, resumed=False)

    @staticmethod
    async def get_current_node(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        plan: str
    ) -> RunView:
        """
        获取当前节点

        章节未解锁时只返回锁定信号，不包含标题与正文
        """
        run = await RunService._owned_run(session, run_id, user_id)
        node = await RunService._current_node(session, run)

        decision = await UnlockService.decide_unlock(session, plan, node.step_no, user_id, run.story_id)
        if not decision.allowed:
            return RunService._locked(run, decision)

        return await RunService._project(session, run, node)

    @staticmethod
    async def choose(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        plan: str,
        genre_key: str
    ) -> RunView:
        """
        为当前章节选择题材并前进到下一章

        选择与推进在同一工作单元内完成；目标章节未解锁时不做任何修改

        Args:
            session: 数据库会话
            run_id: 旅程ID
            user_id: 用户ID
            plan: 订阅计划
            genre_key: 题材键

        Returns:
            新的当前节点，或目标章节的锁定信号
        """
        run = await RunService._owned_run(session, run_id, user_id)
        if run.is_completed:
            raise RunCompletedError(run_id=run_id)

        node = await RunService._current_node(session, run)

        if await RunDAO.get_choice_for_step(session, run.id, node.step_no) is not None:
            raise AlreadyChosenError(run_id=run_id, step_no=node.step_no)

        edge = await StoryDAO.get_choice(session, node.id, genre_key)
        if edge is None:
            raise InvalidChoiceError(genre_key=genre_key)

        destination = await StoryDAO.get_node(session, edge.to_node_id)
        if destination is None or destination.step_no <= node.step_no:
            logger.error(
                f"❌ Integrity fault: choice {node.id}/{genre_key} leads to "
                f"invalid node {edge.to_node_id}"
            )
            raise IntegrityFaultError(from_node_id=node.id, to_node_id=edge.to_node_id)

        decision = await UnlockService.decide_unlock(
            session, plan, destination.step_no, user_id, run.story_id
        )
        if not decision.allowed:
            return RunService._locked(run, decision)

        recorded = await RunDAO.record_choice(
            session, run.id, node.step_no, node.id, genre_key, destination.id
        )
        if not recorded:
            raise AlreadyChosenError(run_id=run_id, step_no=node.step_no)

        # 并发请求已推进时抛出异常，由工作单元回滚已写入的选择
        if not await RunDAO.advance(session, run.id, node.id, destination.id):
            raise AlreadyChosenError(run_id=run_id, step_no=node.step_no)

        await session.refresh(run)
        logger.info(f"➡️  Run {run.id}: step {node.step_no} -> {destination.step_no} via '{genre_key}'")
        return await RunService._project(session, run, destination)

    @staticmethod
    async def rate(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        node_id: str,
        rating: int
    ) -> None:
        """
        为旅程中到达的章节评分（可重复提交，以最后一次为准）

        Args:
            session: 数据库会话
            run_id: 旅程ID
            user_id: 用户ID
            node_id: 节点ID（必须由本旅程的选择到达）
            rating: 评分 1-5
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidChoiceError("评分必须在 1-5 之间", rating=rating)

        run = await RunService._owned_run(session, run_id, user_id)

        choice = await RunDAO.get_choice_to_node(session, run.id, node_id)
        if choice is None:
            raise InvalidChoiceError("该节点无法评分", node_id=node_id)

        await RatingDAO.upsert(session, user_id, run.id, node_id, choice.genre_key, rating)
        await RewardService.on_chapter_rated(session, user_id, run.id, node_id)

    @staticmethod
    async def finish(session: AsyncSession, run_id: str, user_id: str) -> None:
        """
        结束旅程

        只能在终章且终章已评分时结束；已完成的旅程重复调用直接返回
        """
        run = await RunService._owned_run(session, run_id, user_id)
        if run.is_completed:
            return

        node = await RunService._current_node(session, run)
        if node.step_no != settings.TOTAL_STEPS:
            raise RunNotFinishableError("只能在最后一章结束旅程", step_no=node.step_no)

        if not await RatingDAO.has_rating(session, run.id, node.id):
            raise RunNotFinishableError("请先为最后一章评分")

        if not await RunDAO.complete(session, run.id):
            return

        logger.success(f"🏁 Run {run.id} completed by {user_id}")
        await RewardService.on_run_finished(
            session, user_id, run.id, run.story_id, node.id, node.step_no
        )

    # ==================== 只读视图 ====================

    @staticmethod
    async def journey(session: AsyncSession, run_id: str, user_id: str) -> Journey:
        """旅程进度：当前章节与已选择的题材"""
        run = await RunService._owned_run(session, run_id, user_id)
        node = await RunService._current_node(session, run)
        choices = await RunDAO.list_choices(session, run.id)

        return Journey(
            total_steps=settings.TOTAL_STEPS,
            current_step=node.step_no,
            picked=[PickedStep(step_no=c.step_no, genre_key=c.genre_key) for c in choices],
            is_completed=bool(run.is_completed),
        )

    @staticmethod
    async def summary(session: AsyncSession, run_id: str, user_id: str) -> RunSummary:
        """旅程总结：最终评分为各章节评分平均值（保留两位小数）"""
        run = await RunService._owned_run(session, run_id, user_id)
        return RunSummary(
            is_completed=bool(run.is_completed),
            total_steps=settings.TOTAL_STEPS,
            final_journey_rating=await RatingDAO.average_for_run(session, run.id),
        )

    @staticmethod
    async def list_runs(session: AsyncSession, user_id: str) -> List[RunListItem]:
        """用户旅程列表（每个故事一条，优先进行中的旅程）"""
        rows = await RunDAO.list_for_user(session, user_id)
        return [
            RunListItem(
                id=run.id,
                story_id=run.story_id,
                story_title=title,
                is_completed=bool(run.is_completed),
                started_at=run.started_at,
                updated_at=run.updated_at,
            )
            for run, title in rows
        ]

    @staticmethod
    async def unlocked_chapters(session: AsyncSession, run_id: str, user_id: str) -> List[int]:
        """旅程所属故事下已解锁的章节"""
        run = await RunService._owned_run(session, run_id, user_id)
        return await UnlockDAO.list_chapters(session, user_id, run.story_id)

    # ==================== 阅读状态与反馈 ====================

    @staticmethod
    async def get_reading_state(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        node_id: str
    ) -> Optional[ReadingStateView]:
        """节点阅读状态；尚未保存时返回 None"""
        run = await RunService._owned_run(session, run_id, user_id)
        await RunService._run_node(session, run, node_id)

        state = await RunDAO.get_reading_state(session, user_id, run.id, node_id)
        return ReadingStateView.model_validate(state) if state else None

    @staticmethod
    async def save_reading_state(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        node_id: str,
        page_index: int = 0,
        bookmark_page_index: Optional[int] = None,
        font_px: Optional[int] = None
    ) -> ReadingStateView:
        """
        保存节点阅读状态（后写覆盖先写）

        Args:
            session: 数据库会话
            run_id: 旅程ID
            user_id: 用户ID
            node_id: 节点ID（必须属于旅程的故事版本）
            page_index: 当前页
            bookmark_page_index: 书签页
            font_px: 字号

        Returns:
            ReadingStateView
        """
        run = await RunService._owned_run(session, run_id, user_id)
        await RunService._run_node(session, run, node_id)

        state = await RunDAO.upsert_reading_state(
            session, user_id, run.id, node_id, page_index, bookmark_page_index, font_px
        )
        return ReadingStateView.model_validate(state)

    @staticmethod
    async def submit_feedback(
        session: AsyncSession,
        run_id: str,
        user_id: str,
        rating: Optional[int] = None,
        feedback: Optional[str] = None
    ) -> None:
        """
        提交旅程反馈（仅限已完成的旅程，重复提交覆盖）

        反馈文本超过 FEEDBACK_MAX_LENGTH 时截断
        """
        run = await RunService._owned_run(session, run_id, user_id)
        if not run.is_completed:
            raise RunNotCompletedError(run_id=run_id)

        if rating is not None and (isinstance(rating, bool) or not 1 <= rating <= 5):
            raise InvalidChoiceError("评分必须在 1-5 之间", rating=rating)

        text = feedback[:FEEDBACK_MAX_LENGTH] if feedback else None
        await RunDAO.upsert_feedback(session, run.id, user_id, run.story_id, rating, text)
        logger.info(f"📝 Feedback saved for run {run.id} by {user_id}")


# 全局旅程服务实例
run_service = RunService()
