"""
数据库 ORM 模型

导出所有 SQLAlchemy 模型类
"""

from backend.db.base import Base

# 导入所有模型（确保 Base 知道所有表）
from .user import User
from .story import Story
from .story_version import StoryVersion
from .story_node import StoryNode, NodeChoice
from .story_run import StoryRun, RunChoice
from .genre_rating import GenreRating
from .reading_state import ReadingState
from .run_feedback import RunFeedback
from .chapter_unlock import ChapterUnlock
from .coin_transaction import CoinTransaction
from .reward_rule import RewardRule

__all__ = [
    # Base
    "Base",

    # 故事图
    "Story",
    "StoryVersion",
    "StoryNode",
    "NodeChoice",

    # 旅程
    "StoryRun",
    "RunChoice",
    "GenreRating",
    "ReadingState",
    "RunFeedback",

    # 金币与解锁
    "User",
    "ChapterUnlock",
    "CoinTransaction",
    "RewardRule",
]
