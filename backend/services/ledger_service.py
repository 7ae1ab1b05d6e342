"""
金币账本服务

处理奖励发放、管理员调整、退款、章节兑换等业务逻辑。
所有余额变动都经由 LedgerDAO.append 完成。
"""

from typing import Optional, List
from datetime import datetime, timedelta
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config.settings import settings
from backend.db.dao import LedgerDAO, RewardRuleDAO, UnlockDAO
from backend.db.models.user import User
from backend.logger_config import ledger_operation
from backend.exceptions import (
    NotFoundError, InsufficientCoinsError, AlreadyRefundedError, InvalidAmountError,
    IntegrityFaultError
)
from backend.models import (
    TransactionType, CreditOutcome, CreditResult, DedupKey,
    CoinSummary, GlobalCoinSummary, CoinTransactionResponse,
    RefundResult, ReconcileResult
)


def utc_day_bounds(now: datetime):
    """返回 now 所在 UTC 自然日的 [开始, 结束)"""
    day_start = datetime(now.year, now.month, now.day)
    return day_start, day_start + timedelta(days=1)


class LedgerService:
    """金币账本服务"""

    @staticmethod
    async def _locked_account(session: AsyncSession, user_id: str) -> User:
        account = await LedgerDAO.lock_account(session, user_id)
        if account is None:
            raise NotFoundError("用户不存在", resource="user", user_id=user_id)
        return account

    @staticmethod
    @ledger_operation("credit_if_eligible")
    async def credit_if_eligible(
        session: AsyncSession,
        user_id: str,
        rule_key: str,
        reason: str,
        meta: Optional[dict] = None,
        stable_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> CreditResult:
        """
        按奖励规则发放金币

        - 规则不存在、未启用或金币数 <= 0 时不发放
        - 每日上限按 (用户, 原因, UTC 自然日) 统计 earn 记录
        - 同一去重键重复触发时不重复发放（可安全重试）

        Args:
            session: 数据库会话
            user_id: 用户ID
            rule_key: 奖励规则键
            reason: 交易原因（通常与规则键相同）
            meta: 附加信息（如 runId、nodeId）
            stable_id: 去重稳定标识，默认由 meta 派生
            now: 当前时间（UTC，默认系统时间）

        Returns:
            CreditResult，带结果标签
        """
        rule = await RewardRuleDAO.get_by_key(session, rule_key)
        if rule is None or not rule.enabled or int(rule.coins or 0) <= 0:
            logger.debug(f"Reward rule '{rule_key}' unavailable, skip crediting {user_id}")
            return CreditResult(outcome=CreditOutcome.RULE_UNAVAILABLE)

        coins = int(rule.coins)
        now = now or datetime.utcnow()
        meta = meta or {}

        if stable_id is not None:
            key = DedupKey(user_id=user_id, reason=reason, stable_id=stable_id)
        else:
            key = DedupKey.from_meta(user_id, reason, meta)
        dedup_key = key.as_index_value()

        await LedgerService._locked_account(session, user_id)

        if await LedgerDAO.exists_dedup_key(session, user_id, dedup_key):
            return CreditResult(outcome=CreditOutcome.DUPLICATE_SKIPPED)

        if rule.daily_cap is not None and rule.daily_cap >= 0:
            day_start, day_end = utc_day_bounds(now)
            used_today = await LedgerDAO.sum_earned_between(session, user_id, reason, day_start, day_end)
            if used_today + coins > rule.daily_cap:
                logger.info(
                    f"⏸️  Daily cap reached for {user_id} on '{reason}' "
                    f"({used_today}+{coins} > {rule.daily_cap})"
                )
                return CreditResult(outcome=CreditOutcome.CAP_REACHED)

        entry = await LedgerDAO.append(
            session,
            user_id=user_id,
            tx_type=TransactionType.EARN.value,
            coins=coins,
            reason=reason,
            meta=meta,
            dedup_key=dedup_key,
            created_at=now,
        )
        if entry is None:
            return CreditResult(outcome=CreditOutcome.DUPLICATE_SKIPPED)

        transaction, balance = entry
        logger.info(f"🪙 Credited {coins} coins to {user_id} for '{reason}' (balance={balance})")
        return CreditResult(
            outcome=CreditOutcome.CREDITED,
            coins=coins,
            balance=balance,
            transaction_id=transaction.id,
        )

    @staticmethod
    @ledger_operation("adjust")
    async def adjust(
        session: AsyncSession,
        user_id: str,
        delta: int,
        reason: str = "admin_adjust",
        meta: Optional[dict] = None
    ) -> int:
        """
        管理员调整金币

        Args:
            session: 数据库会话
            user_id: 用户ID
            delta: 调整数量（非零整数，可为负）
            reason: 调整原因
            meta: 附加信息（如操作管理员）

        Returns:
            调整后的余额
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidAmountError(delta=delta)

        account = await LedgerService._locked_account(session, user_id)
        if account.coins + delta < 0:
            raise InsufficientCoinsError(required=-delta, available=account.coins)

        _, balance = await LedgerDAO.append(
            session,
            user_id=user_id,
            tx_type=TransactionType.ADJUST.value,
            coins=delta,
            reason=reason or "admin_adjust",
            meta=meta,
        )
        logger.info(f"🛠️  Adjusted {user_id} by {delta:+d} ({reason}), balance={balance}")
        return balance

    @staticmethod
    @ledger_operation("refund")
    async def refund(
        session: AsyncSession,
        transaction_id: int,
        admin_id: Optional[str] = None
    ) -> RefundResult:
        """
        退款：写入一条反向 adjust 记录

        earn +10 -> 退款 -10；redeem -100 -> 退款 +100。
        同一原交易只能退款一次。

        Args:
            session: 数据库会话
            transaction_id: 原交易ID
            admin_id: 操作管理员ID

        Returns:
            RefundResult
        """
        source = await LedgerDAO.get_transaction(session, transaction_id)
        if source is None:
            raise NotFoundError("交易不存在", resource="transaction", transaction_id=transaction_id)

        dedup_key = DedupKey(
            user_id=source.user_id,
            type=TransactionType.ADJUST,
            reason="refund",
            stable_id=str(source.id),
        ).as_index_value()

        account = await LedgerService._locked_account(session, source.user_id)
        if await LedgerDAO.exists_dedup_key(session, source.user_id, dedup_key):
            raise AlreadyRefundedError(transaction_id=transaction_id)

        delta = -int(source.coins)
        if account.coins + delta < 0:
            raise InsufficientCoinsError(required=-delta, available=account.coins)

        entry = await LedgerDAO.append(
            session,
            user_id=source.user_id,
            tx_type=TransactionType.ADJUST.value,
            coins=delta,
            reason="refund",
            meta={
                "refunded_tx_id": source.id,
                "original_type": source.type,
                "original_reason": source.reason or "",
                "by_admin": admin_id,
            },
            dedup_key=dedup_key,
        )
        if entry is None:
            raise AlreadyRefundedError(transaction_id=transaction_id)

        transaction, balance = entry
        logger.info(f"↩️  Refunded transaction {source.id} for {source.user_id}: {delta:+d}")
        return RefundResult(
            transaction_id=transaction.id,
            refunded_tx_id=source.id,
            user_id=source.user_id,
            delta=delta,
            balance=balance,
        )

    @staticmethod
    @ledger_operation("redeem_chapter")
    async def redeem_chapter(
        session: AsyncSession,
        user_id: str,
        story_id: str,
        chapter_number: int,
        cost: int,
        story_title: Optional[str] = None
    ) -> Optional[int]:
        """
        兑换章节：解锁记录与 redeem 流水在同一工作单元内写入

        Args:
            session: 数据库会话
            user_id: 用户ID
            story_id: 故事ID
            chapter_number: 章节序号
            cost: 所需金币
            story_title: 故事标题（用于流水展示）

        Returns:
            兑换后的余额；章节此前已解锁时返回 None（不扣费）

        Raises:
            InsufficientCoinsError: 余额不足，不产生任何写入
            IntegrityFaultError: 兑换流水已存在但解锁记录缺失
        """
        account = await LedgerService._locked_account(session, user_id)
        if await UnlockDAO.is_unlocked(session, user_id, story_id, chapter_number):
            return None
        if account.coins < cost:
            raise InsufficientCoinsError(required=cost, available=account.coins)

        if not await UnlockDAO.grant(session, user_id, story_id, chapter_number):
            return None

        dedup_key = DedupKey(
            user_id=user_id,
            type=TransactionType.REDEEM,
            reason="chapter_unlock",
            stable_id=f"{story_id}:{chapter_number}",
        ).as_index_value()

        entry = await LedgerDAO.append(
            session,
            user_id=user_id,
            tx_type=TransactionType.REDEEM.value,
            coins=-cost,
            reason="chapter_unlock",
            meta={
                "story_id": story_id,
                "story_title": story_title,
                "chapter_number": chapter_number,
                "note": f"Unlocked Chapter {chapter_number}",
            },
            dedup_key=dedup_key,
        )
        if entry is None:
            # 兑换流水已存在但解锁记录缺失
            logger.error(
                f"❌ Integrity fault: redeem entry exists for {user_id} chapter {chapter_number} "
                f"of {story_id} without an unlock record"
            )
            raise IntegrityFaultError(
                user_id=user_id, story_id=story_id, chapter_number=chapter_number
            )

        _, balance = entry
        logger.info(f"🔓 {user_id} redeemed chapter {chapter_number} of {story_id} for {cost} coins")
        return balance

    @staticmethod
    async def balance(session: AsyncSession, user_id: str) -> int:
        """当前余额（快照读）"""
        return await LedgerDAO.get_balance(session, user_id)

    @staticmethod
    async def summary(session: AsyncSession, user_id: str) -> CoinSummary:
        """用户金币汇总"""
        return CoinSummary(
            available=await LedgerDAO.get_balance(session, user_id),
            used=await LedgerDAO.sum_redeemed(session, user_id),
        )

    @staticmethod
    async def global_summary(session: AsyncSession) -> GlobalCoinSummary:
        """全站金币汇总"""
        return GlobalCoinSummary(
            available=await LedgerDAO.sum_balances(session),
            used=await LedgerDAO.sum_redeemed(session),
            earned=await LedgerDAO.sum_earned(session),
        )

    @staticmethod
    async def history(
        session: AsyncSession,
        user_id: str,
        transaction_type: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[CoinTransactionResponse]:
        """
        金币流水

        Args:
            session: 数据库会话
            user_id: 用户ID
            transaction_type: earn/redeem/adjust，其他值视为不筛选
            limit: 条数上限

        Returns:
            流水列表（按时间倒序）
        """
        valid_types = {t.value for t in TransactionType}
        if transaction_type not in valid_types:
            transaction_type = None

        transactions = await LedgerDAO.get_transactions(
            session, user_id, transaction_type, limit or settings.COIN_HISTORY_LIMIT
        )

        items = []
        for tx in transactions:
            meta = tx.meta or {}
            items.append(CoinTransactionResponse(
                id=tx.id,
                type=tx.type,
                coins=tx.coins,
                reason=tx.reason,
                created_at=tx.created_at,
                story_title=meta.get("story_title") or meta.get("storyTitle"),
                chapter_number=meta.get("chapter_number") or meta.get("chapterNumber"),
                note=meta.get("note"),
            ))
        return items

    @staticmethod
    @ledger_operation("reconcile")
    async def reconcile(session: AsyncSession, user_id: str) -> ReconcileResult:
        """
        与账本对账：余额以流水合计为准

        Returns:
            ReconcileResult（对账前缓存值与账本合计）
        """
        account = await LedgerService._locked_account(session, user_id)
        cached = int(account.coins or 0)
        ledger_total = await LedgerDAO.sum_ledger(session, user_id)

        if cached != ledger_total:
            logger.warning(f"⚠️  Balance drift for {user_id}: cached={cached}, ledger={ledger_total}")
            await LedgerDAO.set_balance(session, user_id, ledger_total)

        return ReconcileResult(user_id=user_id, cached=cached, ledger=ledger_total)


# 全局账本服务实例
ledger_service = LedgerService()
