"""
奖励规则数据访问对象
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from backend.db.base import insert_ignore
from backend.db.models.reward_rule import RewardRule


class RewardRuleDAO:
    """奖励规则 DAO（核心逻辑只读，写入由管理后台负责）"""

    @staticmethod
    async def get_by_key(session: AsyncSession, key: str) -> Optional[RewardRule]:
        """根据规则键获取奖励规则"""
        return await session.get(RewardRule, key)

    @staticmethod
    async def seed_defaults(session: AsyncSession, rules: List[dict]) -> int:
        """
        写入默认奖励规则（已存在的规则保持不变）

        Args:
            session: 数据库会话
            rules: 默认规则列表

        Returns:
            新写入的规则数量
        """
        inserted = 0
        for rule in rules:
            stmt = insert_ignore(session, RewardRule).values(
                key=rule["key"],
                label=rule.get("label"),
                coins=rule.get("coins", 0),
                enabled=rule.get("enabled", True),
                daily_cap=rule.get("daily_cap"),
                meta=rule.get("meta", {}),
            ).on_conflict_do_nothing(index_elements=["key"])
            result = await session.execute(stmt.returning(RewardRule.key))
            if result.scalar_one_or_none() is not None:
                inserted += 1
        return inserted
