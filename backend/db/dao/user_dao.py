"""
用户数据访问对象
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from backend.db.models.user import User
from backend.utils.id_generator import generate_user_id


class UserDAO:
    """用户 DAO"""

    @staticmethod
    async def create(
        session: AsyncSession,
        email: str,
        plan: str = "free",
        full_name: Optional[str] = None,
        is_admin: bool = False
    ) -> User:
        """
        创建用户（余额从 0 开始，注册奖励通过账本发放）

        Args:
            session: 数据库会话
            email: 邮箱
            plan: 订阅计划
            full_name: 姓名
            is_admin: 是否管理员

        Returns:
            User: 新创建的用户对象
        """
        user = User(
            id=generate_user_id(),
            email=email,
            full_name=full_name,
            plan=plan,
            is_admin=is_admin,
            coins=0,
        )

        session.add(user)
        await session.flush()

        return user
