"""
金币账本数据访问对象

users.coins 是 coin_transactions 的缓存投影，
本模块是唯一允许修改 users.coins 的代码路径。
"""

from typing import List, Optional, Tuple
from sqlalchemy import select, update, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime

from backend.db.base import insert_ignore
from backend.db.models.coin_transaction import CoinTransaction
from backend.db.models.user import User
from backend.exceptions import NotFoundError, InsufficientCoinsError


class LedgerDAO:
    """金币账本 DAO"""

    @staticmethod
    async def lock_account(session: AsyncSession, user_id: str) -> Optional[User]:
        """
        锁定用户账户行（PostgreSQL 下为 SELECT ... FOR UPDATE）

        同一用户的账本写入因此串行化
        """
        result = await session.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_balance(session: AsyncSession, user_id: str) -> int:
        """获取用户余额（快照读，用户不存在时为 0）"""
        result = await session.execute(
            select(User.coins).where(User.id == user_id)
        )
        coins = result.scalar_one_or_none()
        return int(coins or 0)

    @staticmethod
    async def append(
        session: AsyncSession,
        user_id: str,
        tx_type: str,
        coins: int,
        reason: Optional[str],
        meta: Optional[dict] = None,
        dedup_key: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> Optional[Tuple[CoinTransaction, int]]:
        """
        追加一条账本记录并同步更新余额

        两次写入属于同一个工作单元；余额不足时抛出异常，
        由会话边界回滚已写入的流水。

        Args:
            session: 数据库会话
            user_id: 用户ID
            tx_type: 交易类型（earn/redeem/adjust）
            coins: 金币变动（正数增加，负数减少）
            reason: 交易原因
            meta: 附加信息
            dedup_key: 去重键（与 user_id 组成唯一索引）
            created_at: 交易时间（默认当前 UTC 时间）

        Returns:
            (交易记录, 交易后余额)；去重键冲突时返回 None

        Raises:
            NotFoundError: 用户不存在
            InsufficientCoinsError: 变动后余额为负
        """
        stmt = insert_ignore(session, CoinTransaction).values(
            user_id=user_id,
            type=tx_type,
            coins=coins,
            reason=reason,
            meta=meta or {},
            dedup_key=dedup_key,
            created_at=created_at or datetime.utcnow(),
        )
        if dedup_key is not None:
            stmt = stmt.on_conflict_do_nothing(index_elements=["user_id", "dedup_key"])

        result = await session.execute(stmt.returning(CoinTransaction.id))
        tx_id = result.scalar_one_or_none()
        if tx_id is None:
            # 去重键冲突：已经记过账
            return None

        balance_after = await LedgerDAO._apply_delta(session, user_id, coins)
        transaction = await session.get(CoinTransaction, tx_id)
        return transaction, balance_after

    @staticmethod
    async def _apply_delta(session: AsyncSession, user_id: str, delta: int) -> int:
        """条件更新余额：非负检查在 UPDATE 语句内完成"""
        result = await session.execute(
            update(User)
            .where(User.id == user_id, User.coins + delta >= 0)
            .values(coins=User.coins + delta, updated_at=datetime.utcnow())
            .returning(User.coins)
        )
        balance = result.scalar_one_or_none()
        if balance is not None:
            return int(balance)

        user = await session.get(User, user_id)
        if user is None:
            raise NotFoundError("用户不存在", resource="user", user_id=user_id)
        raise InsufficientCoinsError(
            required=abs(delta),
            available=int(user.coins or 0),
        )

    @staticmethod
    async def set_balance(session: AsyncSession, user_id: str, coins: int) -> int:
        """
        直接写入余额（仅用于与账本对账）

        Args:
            session: 数据库会话
            user_id: 用户ID
            coins: 账本合计金额

        Returns:
            写入后的余额
        """
        if coins < 0:
            raise InsufficientCoinsError("账本合计为负，无法对账", available=coins)

        result = await session.execute(
            update(User)
            .where(User.id == user_id)
            .values(coins=coins, updated_at=datetime.utcnow())
            .returning(User.coins)
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise NotFoundError("用户不存在", resource="user", user_id=user_id)
        return int(balance)

    @staticmethod
    async def get_transaction(session: AsyncSession, transaction_id: int) -> Optional[CoinTransaction]:
        """根据ID获取交易记录"""
        return await session.get(CoinTransaction, transaction_id)

    @staticmethod
    async def exists_dedup_key(session: AsyncSession, user_id: str, dedup_key: str) -> bool:
        """检查去重键是否已存在"""
        result = await session.execute(
            select(CoinTransaction.id).where(
                CoinTransaction.user_id == user_id,
                CoinTransaction.dedup_key == dedup_key
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def sum_earned_between(
        session: AsyncSession,
        user_id: str,
        reason: str,
        start: datetime,
        end: datetime
    ) -> int:
        """统计时间区间 [start, end) 内某原因的 earn 金币合计"""
        result = await session.execute(
            select(func.coalesce(func.sum(CoinTransaction.coins), 0)).where(
                and_(
                    CoinTransaction.user_id == user_id,
                    CoinTransaction.type == "earn",
                    CoinTransaction.reason == reason,
                    CoinTransaction.created_at >= start,
                    CoinTransaction.created_at < end,
                )
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def sum_ledger(session: AsyncSession, user_id: str) -> int:
        """用户账本合计（余额的权威来源）"""
        result = await session.execute(
            select(func.coalesce(func.sum(CoinTransaction.coins), 0)).where(
                CoinTransaction.user_id == user_id
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def sum_redeemed(session: AsyncSession, user_id: Optional[str] = None) -> int:
        """已消费金币（redeem 记录绝对值之和）"""
        query = select(func.coalesce(func.sum(func.abs(CoinTransaction.coins)), 0)).where(
            CoinTransaction.type == "redeem"
        )
        if user_id:
            query = query.where(CoinTransaction.user_id == user_id)
        result = await session.execute(query)
        return int(result.scalar() or 0)

    @staticmethod
    async def sum_earned(session: AsyncSession) -> int:
        """全站累计发放金币（earn 与正向 adjust）"""
        result = await session.execute(
            select(func.coalesce(func.sum(CoinTransaction.coins), 0)).where(
                CoinTransaction.type.in_(["earn", "adjust"]),
                CoinTransaction.coins > 0
            )
        )
        return int(result.scalar() or 0)

    @staticmethod
    async def sum_balances(session: AsyncSession) -> int:
        """全站可用金币"""
        result = await session.execute(select(func.coalesce(func.sum(User.coins), 0)))
        return int(result.scalar() or 0)

    @staticmethod
    async def get_transactions(
        session: AsyncSession,
        user_id: str,
        transaction_type: Optional[str] = None,
        limit: int = 200,
        offset: int = 0
    ) -> List[CoinTransaction]:
        """
        获取用户交易记录

        Args:
            session: 数据库会话
            user_id: 用户ID
            transaction_type: 交易类型筛选（可选）
            limit: 每页数量
            offset: 偏移量

        Returns:
            交易记录列表（按时间倒序）
        """
        query = select(CoinTransaction).where(CoinTransaction.user_id == user_id)

        if transaction_type:
            query = query.where(CoinTransaction.type == transaction_type)

        query = query.order_by(
            CoinTransaction.created_at.desc(), CoinTransaction.id.desc()
        ).limit(limit).offset(offset)

        result = await session.execute(query)
        return list(result.scalars().all())
