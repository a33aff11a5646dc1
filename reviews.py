"""Review workflow on top of the scheduler and the flashcard store.

This is the caller side of ``sm2``: it loads a card, runs one review,
stamps the review date and writes the result back.
"""

import logging
from collections import Counter

import dates
import sm2
from db import FlashcardStore, StaleCardError
from models import DEFAULT_EASINESS, DeckStats, Flashcard, ReviewResult, SchedulingState

logger = logging.getLogger(__name__)


class CardNotFoundError(LookupError):
    pass


def review_card(
    store: FlashcardStore,
    card_id: int,
    grade: int,
    now=None,
    soft_lapse: bool = True,
) -> ReviewResult:
    """Grade one card and persist its new schedule.

    Raises CardNotFoundError for an unknown id and StaleCardError when the
    card was reviewed elsewhere after we loaded it.
    """
    card = store.get_card(card_id)
    if card is None:
        raise CardNotFoundError(f"Flashcard {card_id} not found")

    reviewed_on = dates.to_date(now) if now is not None else dates.today()
    quality = sm2.clamp_quality(grade)
    state = sm2.compute_review(quality, card.state, reviewed_on, soft_lapse)

    try:
        store.save_review(card, state)
    except StaleCardError:
        logger.warning("Lost review race for card %s (grade %s)", card_id, quality)
        raise

    logger.info(
        "Reviewed card %s: grade=%s reps=%s interval=%s next=%s",
        card_id, quality, state.repetitions, state.interval, state.next_review_date,
    )
    return ReviewResult(id=card.id, grade=quality, previous=card.state, state=state)


def due_queue(store: FlashcardStore, now=None, limit: int | None = None) -> list[Flashcard]:
    """Due cards, oldest due date first."""
    due = sm2.filter_due(store.all_cards(), now)
    due.sort(key=lambda c: (c.next_review_date, c.id))
    if limit is not None:
        due = due[:limit]
    return due


def deck_stats(store: FlashcardStore, now=None) -> DeckStats:
    now = dates.to_date(now) if now is not None else dates.today()
    cards = store.all_cards()
    stages = Counter(sm2.stage(c.repetitions) for c in cards)
    return DeckStats(
        total=len(cards),
        due=len(sm2.filter_due(cards, now)),
        new=stages[sm2.STAGE_NEW],
        learning=stages[sm2.STAGE_LEARNING_1] + stages[sm2.STAGE_LEARNING_2],
        reviewing=stages[sm2.STAGE_REVIEWING],
        reviewed_today=sum(1 for c in cards if c.last_review_date == now),
    )


def simulate(
    grades,
    start=None,
    soft_lapse: bool = True,
    initial_ease: float = DEFAULT_EASINESS,
) -> list[SchedulingState]:
    """Replay ``grades`` on a fresh card, reviewing each time it falls due."""
    state = SchedulingState.new(start, initial_ease)
    history = []
    for grade in grades:
        state = sm2.compute_review(grade, state, state.next_review_date, soft_lapse)
        history.append(state)
    return history
