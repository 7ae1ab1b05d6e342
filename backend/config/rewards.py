"""
金币奖励配置
"""

from typing import Dict, List, Tuple


class RewardConfig:
    """金币奖励全局配置"""

    # ==================== 奖励规则键 ====================
    SIGNUP = "signup"
    CHAPTER_RATE = "chapter_rate"
    CHAPTER_COMPLETE = "chapter_complete"
    WRITING_LIKE = "writing_like"

    # ==================== 默认奖励规则 ====================
    # 数据库初始化时写入 reward_rules 表，之后由管理后台维护
    DEFAULT_RULES: List[Dict] = [
        {"key": "signup", "label": "注册奖励", "coins": 50, "daily_cap": None},
        {"key": "chapter_rate", "label": "章节评分", "coins": 5, "daily_cap": 50},
        {"key": "chapter_complete", "label": "完成旅程", "coins": 20, "daily_cap": 100},
        {"key": "writing_like", "label": "作品被点赞", "coins": 1, "daily_cap": None},
        {"key": "view_milestone_100", "label": "作品浏览 100 次", "coins": 2, "daily_cap": None},
        {"key": "view_milestone_500", "label": "作品浏览 500 次", "coins": 5, "daily_cap": None},
        {"key": "view_milestone_1000", "label": "作品浏览 1000 次", "coins": 10, "daily_cap": None},
    ]

    # 浏览里程碑（浏览次数, 奖励规则键）
    VIEW_MILESTONES: List[Tuple[int, str]] = [
        (100, "view_milestone_100"),
        (500, "view_milestone_500"),
        (1000, "view_milestone_1000"),
    ]

