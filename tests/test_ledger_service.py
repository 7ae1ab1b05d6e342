"""Tests for the coin ledger: crediting, caps, adjustments, refunds and redeems."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import delete, select, update, func

from backend.db.dao import LedgerDAO, RewardRuleDAO, UnlockDAO
from backend.db.models import ChapterUnlock, CoinTransaction, User
from backend.exceptions import (
    AlreadyRefundedError, InsufficientCoinsError, IntegrityFaultError, InvalidAmountError,
    NotFoundError
)
from backend.models import CreditOutcome
from backend.services.ledger_service import LedgerService


async def count_transactions(session, user_id):
    result = await session.execute(
        select(func.count(CoinTransaction.id)).where(CoinTransaction.user_id == user_id)
    )
    return result.scalar()


async def test_credit_is_idempotent(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        first = await LedgerService.credit_if_eligible(session, user_id, "signup", "signup", {})
    async with uow() as session:
        second = await LedgerService.credit_if_eligible(session, user_id, "signup", "signup", {})

    assert first.outcome == CreditOutcome.CREDITED
    assert first.coins == 50
    assert first.balance == 50
    assert second.outcome == CreditOutcome.DUPLICATE_SKIPPED

    async with uow() as session:
        assert await LedgerService.balance(session, user_id) == 50
        assert await count_transactions(session, user_id) == 1


async def test_meta_key_order_does_not_change_dedup(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        first = await LedgerService.credit_if_eligible(
            session, user_id, "chapter_rate", "chapter_rate", {"runId": "r1", "nodeId": "n1"}
        )
        second = await LedgerService.credit_if_eligible(
            session, user_id, "chapter_rate", "chapter_rate", {"nodeId": "n1", "runId": "r1"}
        )

    assert first.credited
    assert second.outcome == CreditOutcome.DUPLICATE_SKIPPED


async def test_missing_or_disabled_rule_is_unavailable(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        rule = await RewardRuleDAO.get_by_key(session, "writing_like")
        rule.enabled = False

    async with uow() as session:
        missing = await LedgerService.credit_if_eligible(session, user_id, "no_such_rule", "x", {})
        disabled = await LedgerService.credit_if_eligible(
            session, user_id, "writing_like", "writing_like", {"writingId": "w1"}
        )

    assert missing.outcome == CreditOutcome.RULE_UNAVAILABLE
    assert disabled.outcome == CreditOutcome.RULE_UNAVAILABLE

    async with uow() as session:
        assert await LedgerService.balance(session, user_id) == 0


async def test_credit_for_unknown_user_raises(uow):
    with pytest.raises(NotFoundError):
        async with uow() as session:
            await LedgerService.credit_if_eligible(session, "user_missing", "signup", "signup", {})


async def test_daily_cap_and_next_day_reset(uow, make_user):
    """chapter_rate pays 5 coins with a daily cap of 50."""
    user_id = await make_user()
    today = datetime(2026, 3, 14, 9, 30)

    async with uow() as session:
        outcomes = []
        for i in range(11):
            result = await LedgerService.credit_if_eligible(
                session, user_id, "chapter_rate", "chapter_rate",
                {"runId": "r1", "nodeId": f"n{i}"}, now=today + timedelta(minutes=i),
            )
            outcomes.append(result.outcome)

    assert outcomes[:10] == [CreditOutcome.CREDITED] * 10
    assert outcomes[10] == CreditOutcome.CAP_REACHED

    async with uow() as session:
        tomorrow = await LedgerService.credit_if_eligible(
            session, user_id, "chapter_rate", "chapter_rate",
            {"runId": "r1", "nodeId": "n10"}, now=datetime(2026, 3, 15, 0, 1),
        )
        assert tomorrow.outcome == CreditOutcome.CREDITED
        assert await LedgerService.balance(session, user_id) == 55


async def test_cap_only_counts_the_same_reason(uow, make_user):
    user_id = await make_user()
    now = datetime(2026, 3, 14, 12, 0)

    async with uow() as session:
        for i in range(5):
            await LedgerService.credit_if_eligible(
                session, user_id, "chapter_complete", "chapter_complete",
                {"runId": f"r{i}"}, now=now,
            )
        rate = await LedgerService.credit_if_eligible(
            session, user_id, "chapter_rate", "chapter_rate", {"runId": "r0", "nodeId": "n"}, now=now
        )

    assert rate.credited


async def test_adjust_requires_non_zero_integer(uow, make_user):
    user_id = await make_user()

    for delta in (0, 2.5, True):
        with pytest.raises(InvalidAmountError):
            async with uow() as session:
                await LedgerService.adjust(session, user_id, delta)


async def test_adjust_cannot_overdraw(uow, make_user):
    user_id = await make_user(coins=30)

    with pytest.raises(InsufficientCoinsError) as exc_info:
        async with uow() as session:
            await LedgerService.adjust(session, user_id, -31)

    assert exc_info.value.detail == {"required": 31, "available": 30}

    async with uow() as session:
        assert await LedgerService.balance(session, user_id) == 30
        assert await count_transactions(session, user_id) == 1


async def test_adjust_defaults_reason(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        balance = await LedgerService.adjust(session, user_id, 40, meta={"by_admin": "user_admin"})

    assert balance == 40
    async with uow() as session:
        history = await LedgerService.history(session, user_id)
    assert history[0].reason == "admin_adjust"
    assert history[0].type == "adjust"


async def test_non_negative_balance_enforced_by_dao(uow, make_user):
    """The conditional UPDATE rejects a debit even when callers skip their own check."""
    user_id = await make_user(coins=10)

    with pytest.raises(InsufficientCoinsError):
        async with uow() as session:
            await LedgerDAO.append(session, user_id, "redeem", -11, "chapter_unlock")

    async with uow() as session:
        assert await LedgerService.balance(session, user_id) == 10
        assert await count_transactions(session, user_id) == 1


async def test_redeem_chapter(uow, make_user, story):
    user_id = await make_user(coins=120)

    async with uow() as session:
        remaining = await LedgerService.redeem_chapter(
            session, user_id, story.id, 3, 100, story_title=story.title
        )
    async with uow() as session:
        again = await LedgerService.redeem_chapter(session, user_id, story.id, 3, 100)
        assert await UnlockDAO.is_unlocked(session, user_id, story.id, 3)
        assert await LedgerService.balance(session, user_id) == 20

    assert remaining == 20
    assert again is None


async def test_redeem_without_coins_writes_nothing(uow, make_user, story):
    user_id = await make_user(coins=99)

    with pytest.raises(InsufficientCoinsError):
        async with uow() as session:
            await LedgerService.redeem_chapter(session, user_id, story.id, 3, 100)

    async with uow() as session:
        assert not await UnlockDAO.is_unlocked(session, user_id, story.id, 3)
        assert await LedgerService.balance(session, user_id) == 99
        assert await count_transactions(session, user_id) == 1


async def test_redeem_entry_without_unlock_record_is_integrity_fault(uow, make_user, story):
    user_id = await make_user(coins=200)
    async with uow() as session:
        await LedgerService.redeem_chapter(session, user_id, story.id, 3, 100)
    async with uow() as session:
        await session.execute(delete(ChapterUnlock).where(ChapterUnlock.user_id == user_id))

    with pytest.raises(IntegrityFaultError):
        async with uow() as session:
            await LedgerService.redeem_chapter(session, user_id, story.id, 3, 100)

    async with uow() as session:
        assert not await UnlockDAO.is_unlocked(session, user_id, story.id, 3)
        assert await LedgerService.balance(session, user_id) == 100
        assert await count_transactions(session, user_id) == 2


async def test_refund_redeem_restores_coins_once(uow, make_user, story):
    user_id = await make_user(coins=100)

    async with uow() as session:
        await LedgerService.redeem_chapter(session, user_id, story.id, 4, 100)
        redeem = (await LedgerService.history(session, user_id, "redeem"))[0]

    async with uow() as session:
        refund = await LedgerService.refund(session, redeem.id, admin_id="user_admin")

    assert refund.delta == 100
    assert refund.balance == 100
    assert refund.refunded_tx_id == redeem.id

    with pytest.raises(AlreadyRefundedError):
        async with uow() as session:
            await LedgerService.refund(session, redeem.id)

    async with uow() as session:
        assert await LedgerService.balance(session, user_id) == 100
        entry = await LedgerDAO.get_transaction(session, refund.transaction_id)
        assert entry.type == "adjust"
        assert entry.reason == "refund"
        assert entry.meta == {
            "refunded_tx_id": redeem.id,
            "original_type": "redeem",
            "original_reason": "chapter_unlock",
            "by_admin": "user_admin",
        }


async def test_refund_of_spent_earnings_is_rejected(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        signup = await LedgerService.credit_if_eligible(session, user_id, "signup", "signup", {})
        await LedgerService.adjust(session, user_id, -50)

    with pytest.raises(InsufficientCoinsError):
        async with uow() as session:
            await LedgerService.refund(session, signup.transaction_id)


async def test_refund_unknown_transaction(uow):
    with pytest.raises(NotFoundError):
        async with uow() as session:
            await LedgerService.refund(session, 424242)


async def test_history_filters_and_display_fields(uow, make_user, story):
    user_id = await make_user(coins=200)

    async with uow() as session:
        await LedgerService.credit_if_eligible(session, user_id, "signup", "signup", {})
        await LedgerService.redeem_chapter(session, user_id, story.id, 3, 100, story_title=story.title)

    async with uow() as session:
        everything = await LedgerService.history(session, user_id)
        redeems = await LedgerService.history(session, user_id, "redeem")
        bogus_filter = await LedgerService.history(session, user_id, "bogus")
        limited = await LedgerService.history(session, user_id, limit=1)

    assert len(everything) == 3
    assert len(bogus_filter) == 3
    assert len(limited) == 1
    assert len(redeems) == 1
    assert redeems[0].coins == -100
    assert redeems[0].story_title == "The Lighthouse"
    assert redeems[0].chapter_number == 3
    assert redeems[0].note == "Unlocked Chapter 3"


async def test_summaries(uow, make_user, story):
    reader = await make_user(coins=150)
    other = await make_user(coins=30)

    async with uow() as session:
        await LedgerService.redeem_chapter(session, reader, story.id, 3, 100)

    async with uow() as session:
        summary = await LedgerService.summary(session, reader)
        overall = await LedgerService.global_summary(session)

    assert summary.available == 50
    assert summary.used == 100
    assert overall.available == 80
    assert overall.used == 100
    assert overall.earned == 180


async def test_reconcile_repairs_drift(uow, make_user):
    user_id = await make_user(coins=70)

    async with uow() as session:
        await session.execute(update(User).where(User.id == user_id).values(coins=5))

    async with uow() as session:
        result = await LedgerService.reconcile(session, user_id)

    assert result.drifted
    assert result.cached == 5
    assert result.ledger == 70

    async with uow() as session:
        assert await LedgerService.balance(session, user_id) == 70
        assert not (await LedgerService.reconcile(session, user_id)).drifted
