"""SM-2 scheduling: the review step, next-review dates and the due filter.

Everything here is a pure function of its arguments. Callers own the
flashcard records and persist whatever these functions return.
"""

import logging
import math
from numbers import Integral, Real

import dates
from models import MIN_EASINESS, SchedulingState

logger = logging.getLogger(__name__)

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

STAGE_NEW = "new"
STAGE_LEARNING_1 = "learning-1"
STAGE_LEARNING_2 = "learning-2"
STAGE_REVIEWING = "reviewing"


class InvalidGrade(ValueError):
    """Raised for a grade that is not an integer."""


class InvalidState(ValueError):
    """Raised for scheduling state that no review could have produced."""


def _is_int(value) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def clamp_quality(quality) -> int:
    """Clamp an integer grade into 0-5."""
    if not _is_int(quality):
        raise InvalidGrade(f"quality must be an integer, got {quality!r}")
    return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


def check_state(repetitions, easiness, interval):
    if not _is_int(repetitions) or repetitions < 0:
        raise InvalidState(f"repetitions must be a non-negative integer, got {repetitions!r}")
    if not _is_int(interval) or interval < 0:
        raise InvalidState(f"interval must be a non-negative integer, got {interval!r}")
    if isinstance(easiness, bool) or not isinstance(easiness, Real) or not math.isfinite(easiness):
        raise InvalidState(f"easiness must be a finite number, got {easiness!r}")
    if easiness < MIN_EASINESS:
        raise InvalidState(f"easiness must be >= {MIN_EASINESS}, got {easiness!r}")


def round_half_up(value: float) -> int:
    """Round to the nearest whole day, halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def sm2(
    quality: int,
    repetitions: int,
    easiness: float,
    interval: int,
    soft_lapse: bool = True,
) -> tuple[int, float, int]:
    """SM-2 spaced repetition algorithm.

    Args:
        quality: 0-5 rating (0=blackout, 5=perfect), clamped into range
        repetitions: current successful repetition count
        easiness: current easiness factor (>=1.3)
        interval: current interval in days
        soft_lapse: treat a quality-3 pass after two or more passes as a lapse

    Returns:
        (new_repetitions, new_easiness, new_interval_days)

    Raises:
        InvalidGrade: quality is not an integer
        InvalidState: repetitions, easiness or interval out of domain
    """
    quality = clamp_quality(quality)
    check_state(repetitions, easiness, interval)

    new_easiness = max(
        MIN_EASINESS,
        easiness + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)),
    )

    if quality < PASSING_QUALITY:
        new_repetitions = 0
        new_interval = 1
    elif soft_lapse and quality == PASSING_QUALITY and repetitions > 1:
        # Effortful recall of a card that should be well learned: start over.
        new_repetitions = 0
        new_interval = 1
    else:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = max(1, round_half_up(interval * new_easiness))

    return new_repetitions, new_easiness, new_interval


def next_review_date(reference, interval_days: int):
    """Date ``interval_days`` calendar days after ``reference``."""
    if not _is_int(interval_days) or interval_days < 0:
        raise InvalidState(f"interval must be a non-negative integer, got {interval_days!r}")
    return dates.add_days(reference, interval_days)


def compute_review(grade: int, state: SchedulingState, reviewed_on=None, soft_lapse: bool = True) -> SchedulingState:
    """Apply one review to ``state`` and return the replacement state."""
    reviewed_on = dates.to_date(reviewed_on) if reviewed_on is not None else dates.today()
    reps, ease, ivl = sm2(grade, state.repetitions, state.ease_factor, state.interval, soft_lapse)
    return SchedulingState(
        ease_factor=ease,
        repetitions=reps,
        interval=ivl,
        next_review_date=next_review_date(reviewed_on, ivl),
        last_review_date=reviewed_on,
    )


def is_due(next_review, now=None) -> bool:
    """True when ``next_review`` falls on or before the calendar date of ``now``."""
    now = dates.to_date(now) if now is not None else dates.today()
    return dates.to_date(next_review) <= now


def filter_due(cards, now=None) -> list:
    """Cards whose ``next_review_date`` is due on ``now``, in input order."""
    now = dates.to_date(now) if now is not None else dates.today()
    cards = list(cards)
    due = []
    for card in cards:
        card_due = is_due(card.next_review_date, now)
        logger.debug(
            "Card %s: next_review=%s due=%s", getattr(card, "id", "?"), card.next_review_date, card_due
        )
        if card_due:
            due.append(card)
    logger.debug("Found %d due flashcards of %d on %s", len(due), len(cards), now)
    return due


def stage(repetitions: int) -> str:
    if repetitions <= 0:
        return STAGE_NEW
    if repetitions == 1:
        return STAGE_LEARNING_1
    if repetitions == 2:
        return STAGE_LEARNING_2
    return STAGE_REVIEWING
