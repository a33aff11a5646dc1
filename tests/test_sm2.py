"""Tests for sm2.py -- the review step, due predicate and due filter."""

import sys
from pathlib import Path
from datetime import date

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

import sm2
from dates import InvalidDate
from models import Flashcard, SchedulingState
from sm2 import InvalidGrade, InvalidState


def _card(card_id, next_review):
    return Flashcard(id=card_id, front=f"q{card_id}", back=f"a{card_id}",
                     next_review_date=next_review, created_at="2024-01-01")


# --- review step ---

def test_first_perfect_review():
    """A new card graded 5 moves to one repetition, one day, ease 2.6."""
    reps, ease, ivl = sm2.sm2(5, 0, 2.5, 0)
    assert reps == 1
    assert ivl == 1
    assert ease == pytest.approx(2.6)


def test_second_perfect_review():
    """Second pass schedules six days out."""
    reps, ease, ivl = sm2.sm2(5, 1, 2.6, 1)
    assert reps == 2
    assert ivl == 6
    assert ease == pytest.approx(2.7)


def test_blackout_after_long_streak():
    """Grade 0 resets the streak and drops ease by 0.8."""
    reps, ease, ivl = sm2.sm2(0, 5, 2.8, 40)
    assert (reps, ivl) == (0, 1)
    assert ease == pytest.approx(2.0)


@pytest.mark.parametrize("grade,delta", [(0, -0.8), (1, -0.54), (2, -0.32), (3, -0.14), (4, 0.0), (5, 0.1)])
def test_ease_delta_per_grade(grade, delta):
    """Ease changes by the SM-2 formula for every grade."""
    _, ease, _ = sm2.sm2(grade, 0, 2.5, 0)
    assert ease == pytest.approx(2.5 + delta)


@pytest.mark.parametrize("grade", [0, 1, 2])
def test_lapse_resets(grade):
    """Any grade below 3 gives repetitions 0 and interval 1."""
    reps, ease, ivl = sm2.sm2(grade, 7, 2.2, 90)
    assert (reps, ivl) == (0, 1)
    assert ease >= 1.3


def test_ease_floor():
    """Ease never drops below 1.3."""
    for grade in range(6):
        for ease in (1.3, 1.4, 1.7):
            _, new_ease, _ = sm2.sm2(grade, 3, ease, 10)
            assert new_ease >= 1.3
    _, new_ease, _ = sm2.sm2(0, 3, 1.3, 10)
    assert new_ease == 1.3


def test_soft_lapse_on_hesitant_pass():
    """Grade 3 after two or more passes restarts the card by default."""
    reps, ease, ivl = sm2.sm2(3, 3, 2.5, 10)
    assert (reps, ivl) == (0, 1)
    assert ease == pytest.approx(2.36)


def test_classic_variant_grows_on_hesitant_pass():
    """Without the soft lapse, grade 3 keeps growing the interval."""
    reps, ease, ivl = sm2.sm2(3, 3, 2.5, 10, soft_lapse=False)
    assert reps == 4
    assert ivl == 24  # round(10 * 2.36)
    assert ease == pytest.approx(2.36)


def test_grade_3_early_in_ladder_is_a_pass():
    """The soft lapse only applies once the card has two passes."""
    assert sm2.sm2(3, 0, 2.5, 0)[0] == 1
    assert sm2.sm2(3, 1, 2.5, 1)[0] == 2


def test_interval_uses_new_ease_and_old_interval():
    """Third pass multiplies the previous interval by the updated ease."""
    reps, ease, ivl = sm2.sm2(5, 2, 2.5, 6)
    assert reps == 3
    assert ivl == round(6 * 2.6)


def test_half_day_rounds_up():
    """12.5 days rounds to 13, not to the even 12."""
    assert sm2.sm2(4, 2, 2.5, 5) == (3, 2.5, 13)
    assert sm2.round_half_up(0.5) == 1
    assert sm2.round_half_up(2.4999) == 2


def test_interval_at_least_one():
    """A reviewing card with a zero stored interval still moves a day ahead."""
    _, _, ivl = sm2.sm2(5, 2, 2.5, 0)
    assert ivl == 1


def test_ladder_of_perfect_reviews():
    """Repeated grade 5 gives 1, 6, then ease-driven growth with rising ease."""
    reps, ease, ivl = 0, 2.5, 0
    intervals, eases = [], []
    for _ in range(4):
        reps, ease, ivl = sm2.sm2(5, reps, ease, ivl)
        intervals.append(ivl)
        eases.append(ease)
    assert intervals == [1, 6, 17, 49]
    assert eases == sorted(eases)


def test_out_of_range_grade_is_clamped():
    """Grades above 5 act as 5, below 0 as 0."""
    assert sm2.sm2(9, 0, 2.5, 0) == sm2.sm2(5, 0, 2.5, 0)
    assert sm2.sm2(-3, 4, 2.5, 20) == sm2.sm2(0, 4, 2.5, 20)


@pytest.mark.parametrize("grade", [4.5, "5", None, True])
def test_non_integer_grade_rejected(grade):
    with pytest.raises(InvalidGrade):
        sm2.sm2(grade, 0, 2.5, 0)


@pytest.mark.parametrize("reps,ease,ivl", [
    (-1, 2.5, 0),
    (1.5, 2.5, 0),
    (0, 2.5, -1),
    (0, float("nan"), 0),
    (0, float("inf"), 0),
    (0, -2.5, 0),
    (0, 1.0, 0),
    (0, "2.5", 0),
])
def test_malformed_state_rejected(reps, ease, ivl):
    """Broken persisted state fails instead of producing an interval."""
    with pytest.raises(InvalidState):
        sm2.sm2(4, reps, ease, ivl)


# --- dates ---

def test_next_review_date_is_calendar_addition():
    assert sm2.next_review_date(date(2024, 1, 31), 1) == date(2024, 2, 1)
    assert sm2.next_review_date("2024-02-28T22:00:00", 1) == date(2024, 2, 29)
    assert sm2.next_review_date(date(2024, 3, 9), 0) == date(2024, 3, 9)


def test_next_review_date_rejects_negative_interval():
    with pytest.raises(InvalidState):
        sm2.next_review_date(date(2024, 1, 1), -1)


def test_compute_review_stamps_dates():
    """The new state is dated from the review day."""
    state = SchedulingState.new(date(2024, 1, 1))
    new = sm2.compute_review(5, state, "2024-01-01T18:30:00")
    assert new.repetitions == 1
    assert new.interval == 1
    assert new.last_review_date == date(2024, 1, 1)
    assert new.next_review_date == date(2024, 1, 2)


def test_compute_review_rejects_bad_date():
    state = SchedulingState.new(date(2024, 1, 1))
    with pytest.raises(InvalidDate):
        sm2.compute_review(5, state, "01/02/2024")


def test_compute_review_respects_policy():
    state = SchedulingState(ease_factor=2.5, repetitions=3, interval=10, next_review_date="2024-01-01")
    assert sm2.compute_review(3, state, "2024-01-01").repetitions == 0
    classic = sm2.compute_review(3, state, "2024-01-01", soft_lapse=False)
    assert classic.repetitions == 4
    assert classic.next_review_date == date(2024, 1, 25)


# --- due predicate ---

def test_due_today():
    assert sm2.is_due(date(2024, 1, 1), date(2024, 1, 1))


def test_not_due_tomorrow():
    assert not sm2.is_due(date(2024, 1, 2), date(2024, 1, 1))


def test_due_yesterday():
    assert sm2.is_due(date(2023, 12, 31), date(2024, 1, 1))


def test_time_of_day_ignored():
    """Late due time on the same day still counts as due at 00:00:01."""
    assert sm2.is_due("2024-01-01T23:59:59", "2024-01-01T00:00:01")
    assert not sm2.is_due("2024-01-02T00:00:00", "2024-01-01T23:59:59")


def test_is_due_rejects_garbage():
    """Unparseable dates raise instead of defaulting to today."""
    with pytest.raises(InvalidDate):
        sm2.is_due("tomorrow-ish", date(2024, 1, 1))
    with pytest.raises(InvalidDate):
        sm2.is_due(date(2024, 1, 1), 1704067200)


def test_filter_due_keeps_order():
    cards = [_card(1, "2024-01-03"), _card(2, "2023-12-30"), _card(3, "2024-01-01"), _card(4, "2024-01-02")]
    due = sm2.filter_due(cards, "2024-01-01")
    assert [c.id for c in due] == [2, 3]


def test_filter_due_idempotent():
    cards = [_card(i, date(2024, 1, i)) for i in range(1, 8)]
    once = sm2.filter_due(cards, "2024-01-04")
    assert sm2.filter_due(once, "2024-01-04") == once
    assert len(once) == 4


def test_filter_due_empty():
    assert sm2.filter_due([], date(2024, 1, 1)) == []


def test_stage_ladder():
    assert sm2.stage(0) == sm2.STAGE_NEW
    assert sm2.stage(1) == sm2.STAGE_LEARNING_1
    assert sm2.stage(2) == sm2.STAGE_LEARNING_2
    assert sm2.stage(3) == sm2.STAGE_REVIEWING
    assert sm2.stage(12) == sm2.STAGE_REVIEWING
