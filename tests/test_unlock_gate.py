"""Tests for the chapter unlock decision."""

import pytest

from backend.services.unlock_gate import (
    UnlockStatus, decide, is_paid_chapter, required_coins_for_chapter
)


@pytest.mark.parametrize("step_no", [1, 2, 3, 4, 5])
def test_paid_plans_read_every_chapter(step_no):
    """Non-free plans are never gated."""
    decision = decide("premium", step_no, already_unlocked=False, balance=0)

    assert decision.status == UnlockStatus.ALLOWED
    assert decision.allowed


@pytest.mark.parametrize("step_no", [1, 2])
def test_first_two_chapters_are_free(step_no):
    decision = decide("free", step_no, already_unlocked=False, balance=0)

    assert decision.allowed


def test_free_user_without_coins_is_locked_at_step_three():
    decision = decide("free", 3, already_unlocked=False, balance=0)

    assert decision.status == UnlockStatus.LOCKED
    assert decision.chapter_number == 3
    assert decision.required_coins == 100
    assert decision.available == 0


def test_enough_coins_is_redeemable_not_allowed():
    """Having the coins does not open the chapter; the caller must redeem."""
    decision = decide("free", 4, already_unlocked=False, balance=150)

    assert decision.status == UnlockStatus.REDEEMABLE
    assert not decision.allowed
    assert decision.required_coins == 100
    assert decision.available == 150


def test_unlocked_chapter_stays_open_for_any_balance():
    for balance in (0, 1, 99, 100, 10_000):
        assert decide("free", 5, already_unlocked=True, balance=balance).allowed


def test_custom_cost_table():
    costs = {3: 100, 4: 0, 5: 250}

    assert decide("free", 4, already_unlocked=False, balance=0, costs=costs).allowed
    locked = decide("free", 5, already_unlocked=False, balance=200, costs=costs)
    assert locked.status == UnlockStatus.LOCKED
    assert locked.required_coins == 250


def test_required_coins_lookup():
    assert required_coins_for_chapter(1) == 0
    assert required_coins_for_chapter(2) == 0
    assert required_coins_for_chapter(3) == 100
    assert required_coins_for_chapter(5) == 100
    assert required_coins_for_chapter(6) == 0


def test_is_paid_chapter():
    assert not is_paid_chapter(2)
    assert is_paid_chapter(3)
    assert not is_paid_chapter(9)
