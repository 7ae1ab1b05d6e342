"""Tests for reward triggers."""

import pytest
from sqlalchemy import func, select

from backend.db.dao import LedgerDAO
from backend.db.models import CoinTransaction, GenreRating
from backend.models import CreditOutcome
from backend.services.ledger_service import LedgerService
from backend.services.reward_service import RewardService
from backend.services.run_service import RunService


@pytest.fixture
def failing_balance_update(monkeypatch):
    """Make every balance update fail after the ledger row has been inserted."""
    async def _fail(session, user_id, delta):
        raise RuntimeError("balance update failed")

    monkeypatch.setattr(LedgerDAO, "_apply_delta", staticmethod(_fail))
    return monkeypatch


async def ledger_total(session, user_id):
    result = await session.execute(
        select(func.count(CoinTransaction.id), func.coalesce(func.sum(CoinTransaction.coins), 0))
        .where(CoinTransaction.user_id == user_id)
    )
    return tuple(result.one())


async def test_signup_bonus_once(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        first = await RewardService.on_signup(session, user_id)
        second = await RewardService.on_signup(session, user_id)
        balance = await LedgerService.balance(session, user_id)

    assert first.outcome == CreditOutcome.CREDITED
    assert second.outcome == CreditOutcome.DUPLICATE_SKIPPED
    assert balance == 50


async def test_writing_likes(uow, make_user):
    author = await make_user()
    fan = await make_user()
    other_fan = await make_user()

    async with uow() as session:
        self_like = await RewardService.on_writing_liked(session, author, author, "w1")
        await RewardService.on_writing_liked(session, author, fan, "w1")
        repeat = await RewardService.on_writing_liked(session, author, fan, "w1")
        await RewardService.on_writing_liked(session, author, other_fan, "w1")
        balance = await LedgerService.balance(session, author)

    assert self_like is None
    assert repeat.outcome == CreditOutcome.DUPLICATE_SKIPPED
    assert balance == 2


async def test_view_milestones(uow, make_user):
    author = await make_user()

    async with uow() as session:
        none_yet = await RewardService.on_writing_viewed(session, author, "w1", 99)
        first = await RewardService.on_writing_viewed(session, author, "w1", 600)
    async with uow() as session:
        later = await RewardService.on_writing_viewed(session, author, "w1", 1200)
        balance = await LedgerService.balance(session, author)

    assert none_yet == []
    assert [r.outcome for r in first] == [CreditOutcome.CREDITED, CreditOutcome.CREDITED]
    assert [r.outcome for r in later] == [
        CreditOutcome.DUPLICATE_SKIPPED,
        CreditOutcome.DUPLICATE_SKIPPED,
        CreditOutcome.CREDITED,
    ]
    # 2 + 5 + 10
    assert balance == 17


async def test_run_finished_reward_meta(uow, make_user):
    user_id = await make_user()

    async with uow() as session:
        result = await RewardService.on_run_finished(session, user_id, "run_1", "story_1", "node_5", 5)
        again = await RewardService.on_run_finished(session, user_id, "run_1", "story_1", "node_5", 5)
        history = await LedgerService.history(session, user_id)

    assert result.coins == 20
    assert again.outcome == CreditOutcome.DUPLICATE_SKIPPED
    assert history[0].reason == "chapter_complete"


async def test_trigger_failure_does_not_propagate(uow):
    async with uow() as session:
        result = await RewardService.on_signup(session, "user_missing")

    assert result is None


async def test_failed_credit_leaves_ledger_and_balance_in_step(uow, make_user, failing_balance_update):
    user_id = await make_user()

    async with uow() as session:
        result = await RewardService.on_signup(session, user_id)

    async with uow() as session:
        rows, total = await ledger_total(session, user_id)
        balance = await LedgerService.balance(session, user_id)

    assert result is None
    assert rows == 0
    assert total == balance == 0

    failing_balance_update.undo()
    async with uow() as session:
        retried = await RewardService.on_signup(session, user_id)
        balance = await LedgerService.balance(session, user_id)

    assert retried.outcome == CreditOutcome.CREDITED
    assert balance == 50


async def test_failed_rating_reward_keeps_the_rating(uow, make_user, story, failing_balance_update):
    user_id = await make_user()
    async with uow() as session:
        run_id = (await RunService.start_run(session, user_id, story.id)).run_id
    async with uow() as session:
        await RunService.choose(session, run_id, user_id, "free", "romance")

    async with uow() as session:
        await RunService.rate(session, run_id, user_id, story.romance, 4)

    async with uow() as session:
        ratings = await session.execute(select(GenreRating.rating).where(GenreRating.run_id == run_id))
        rows, _ = await ledger_total(session, user_id)

    assert list(ratings.scalars().all()) == [4]
    assert rows == 0
