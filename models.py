from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

import dates

MIN_EASINESS = 1.3
DEFAULT_EASINESS = 2.5


def _coerce_optional_date(value):
    if value is None:
        return None
    return dates.to_date(value)


class SchedulingState(BaseModel):
    """The SM-2 fields a flashcard carries between reviews."""

    model_config = ConfigDict(frozen=True)

    ease_factor: float = Field(default=DEFAULT_EASINESS, ge=MIN_EASINESS, allow_inf_nan=False)
    repetitions: int = Field(default=0, ge=0)   # consecutive passing reviews since the last lapse
    interval: int = Field(default=0, ge=0)      # days until next review
    next_review_date: date
    last_review_date: date | None = None        # None = never reviewed

    @field_validator("next_review_date", "last_review_date", mode="before")
    @classmethod
    def coerce_dates(cls, value):
        return _coerce_optional_date(value)

    @classmethod
    def new(cls, today=None, ease_factor: float = DEFAULT_EASINESS) -> SchedulingState:
        """State of a freshly created card: due on the day it was created."""
        created = dates.to_date(today) if today is not None else dates.today()
        return cls(ease_factor=ease_factor, next_review_date=created)


class Flashcard(BaseModel):
    id: int
    front: str
    back: str
    category: str | None = None
    ease_factor: float = Field(default=DEFAULT_EASINESS, ge=MIN_EASINESS, allow_inf_nan=False)
    repetitions: int = Field(default=0, ge=0)
    interval: int = Field(default=0, ge=0)
    next_review_date: date
    last_review_date: date | None = None
    created_at: date
    version: int = 0            # bumped on every saved review

    @field_validator("next_review_date", "last_review_date", "created_at", mode="before")
    @classmethod
    def coerce_dates(cls, value):
        return _coerce_optional_date(value)

    @property
    def state(self) -> SchedulingState:
        return SchedulingState(
            ease_factor=self.ease_factor,
            repetitions=self.repetitions,
            interval=self.interval,
            next_review_date=self.next_review_date,
            last_review_date=self.last_review_date,
        )

    def with_state(self, state: SchedulingState) -> Flashcard:
        """Copy of this card carrying ``state``; content fields are untouched."""
        return self.model_copy(update=state.model_dump())


class ReviewResult(BaseModel):
    id: int
    grade: int                  # after clamping into 0-5
    previous: SchedulingState
    state: SchedulingState

    @property
    def lapsed(self) -> bool:
        return self.state.repetitions == 0


class DeckStats(BaseModel):
    total: int
    due: int
    new: int                    # never passed since creation or last lapse
    learning: int               # first and second passing reviews
    reviewing: int              # three or more consecutive passes
    reviewed_today: int
