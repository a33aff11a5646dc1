import logging
import sqlite3
from pathlib import Path

import dates
from models import DEFAULT_EASINESS, Flashcard, SchedulingState

logger = logging.getLogger(__name__)

SAMPLE_CARDS = [
    ("1", "One"), ("2", "Two"), ("3", "Three"), ("4", "Four"), ("5", "Five"),
    ("6", "Six"), ("7", "Seven"), ("8", "Eight"), ("9", "Nine"), ("10", "Ten"),
]

SCHEMA = """
    CREATE TABLE IF NOT EXISTS flashcards (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        front            TEXT NOT NULL,
        back             TEXT NOT NULL,
        category         TEXT,
        ease_factor      REAL NOT NULL DEFAULT 2.5,
        repetitions      INTEGER NOT NULL DEFAULT 0,
        interval         INTEGER NOT NULL DEFAULT 0,
        next_review_date TEXT NOT NULL,
        last_review_date TEXT,
        created_at       TEXT NOT NULL,
        version          INTEGER NOT NULL DEFAULT 0
    );
    CREATE INDEX IF NOT EXISTS idx_flashcards_next_review ON flashcards (next_review_date);
"""


class StaleCardError(RuntimeError):
    """Raised when a card changed between being loaded and being saved."""


def _iso(value):
    return value.isoformat() if value is not None else None


class FlashcardStore:
    """Flashcard records in one sqlite file. Obtain one from ``init_db``."""

    def __init__(self, path: Path):
        self.path = path

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def add_card(
        self,
        front: str,
        back: str,
        category: str | None = None,
        today=None,
        ease_factor: float = DEFAULT_EASINESS,
    ) -> Flashcard:
        front, back = front.strip(), back.strip()
        if not front or not back:
            raise ValueError("Front and back are required")
        created = dates.to_date(today) if today is not None else dates.today()
        state = SchedulingState.new(created, ease_factor)
        conn = self.connect()
        try:
            cur = conn.execute(
                """INSERT INTO flashcards
                   (front, back, category, ease_factor, repetitions, interval, next_review_date, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (front, back, category, state.ease_factor, state.repetitions, state.interval,
                 _iso(state.next_review_date), _iso(created)),
            )
            conn.commit()
            card_id = cur.lastrowid
        finally:
            conn.close()
        return Flashcard(id=card_id, front=front, back=back, category=category,
                         created_at=created, **state.model_dump())

    def get_card(self, card_id: int) -> Flashcard | None:
        conn = self.connect()
        try:
            r = conn.execute("SELECT * FROM flashcards WHERE id = ?", (card_id,)).fetchone()
        finally:
            conn.close()
        if not r:
            return None
        return Flashcard(**dict(r))

    def all_cards(self) -> list[Flashcard]:
        conn = self.connect()
        try:
            rows = conn.execute("SELECT * FROM flashcards ORDER BY created_at DESC, id DESC").fetchall()
        finally:
            conn.close()
        return [Flashcard(**dict(r)) for r in rows]

    def update_card(
        self,
        card_id: int,
        front: str | None = None,
        back: str | None = None,
        category: str | None = None,
    ) -> Flashcard | None:
        """Edit card content. ``None`` leaves a field as is; ``category=""`` clears it.

        Scheduling fields are untouched. The version is bumped, so a review
        loaded before the edit can no longer be saved over it.
        """
        changes = {}
        for name, value in (("front", front), ("back", back)):
            if value is not None:
                value = value.strip()
                if not value:
                    raise ValueError(f"{name.capitalize()} cannot be empty")
                changes[name] = value
        if category is not None:
            changes["category"] = category.strip() or None
        if not changes:
            return self.get_card(card_id)

        assignments = ", ".join(f"{name}=?" for name in changes)
        conn = self.connect()
        try:
            cur = conn.execute(
                f"UPDATE flashcards SET {assignments}, version=version + 1 WHERE id=?",
                (*changes.values(), card_id),
            )
            conn.commit()
            updated = cur.rowcount
        finally:
            conn.close()
        if not updated:
            return None
        return self.get_card(card_id)

    def delete_card(self, card_id: int) -> bool:
        conn = self.connect()
        try:
            cur = conn.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    def save_review(self, card: Flashcard, state: SchedulingState) -> Flashcard:
        """Persist ``state`` onto ``card`` if nobody else saved it since it was loaded."""
        conn = self.connect()
        try:
            cur = conn.execute(
                """UPDATE flashcards
                   SET ease_factor=?, repetitions=?, interval=?, next_review_date=?,
                       last_review_date=?, version=version + 1
                   WHERE id=? AND version=?""",
                (state.ease_factor, state.repetitions, state.interval,
                 _iso(state.next_review_date), _iso(state.last_review_date),
                 card.id, card.version),
            )
            conn.commit()
            updated = cur.rowcount
        finally:
            conn.close()
        if not updated:
            raise StaleCardError(f"Flashcard {card.id} was modified or deleted since it was loaded")
        return card.with_state(state).model_copy(update={"version": card.version + 1})

    def count(self) -> int:
        conn = self.connect()
        try:
            r = conn.execute("SELECT COUNT(*) AS c FROM flashcards").fetchone()
        finally:
            conn.close()
        return r["c"]

    def seed_sample_cards(self, today=None, ease_factor: float = DEFAULT_EASINESS) -> int:
        """Add the sample deck to an empty store. Returns how many cards were added."""
        if self.count():
            return 0
        for front, back in SAMPLE_CARDS:
            self.add_card(front, back, category="numbers", today=today, ease_factor=ease_factor)
        logger.info("Seeded %d sample flashcards into %s", len(SAMPLE_CARDS), self.path)
        return len(SAMPLE_CARDS)


def init_db(path) -> FlashcardStore:
    """Create the schema at ``path`` if needed and return a store bound to it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    store = FlashcardStore(path)
    conn = store.connect()
    try:
        conn.executescript(SCHEMA)
    finally:
        conn.close()
    logger.info("Initialized flashcard store at %s", path)
    return store
