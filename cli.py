"""
Flashcard deck CLI.

Usage:
    sm2deck [--db PATH] init
    sm2deck [--db PATH] seed
    sm2deck [--db PATH] add "front" "back" [--category NAME]
    sm2deck [--db PATH] edit <card_id> [--front TEXT] [--back TEXT] [--category NAME]
    sm2deck [--db PATH] delete <card_id>
    sm2deck [--db PATH] list
    sm2deck [--db PATH] due [--limit N] [--date YYYY-MM-DD]
    sm2deck [--db PATH] review <card_id> <grade 0-5> [--date YYYY-MM-DD]
    sm2deck [--db PATH] stats [--date YYYY-MM-DD]
    sm2deck simulate 5 4 3 2 5 [--start YYYY-MM-DD] [--classic]
"""

import argparse
import logging
import sys

import dates
import reviews
import sm2
from config import settings
from db import StaleCardError, init_db


def _soft_lapse(args) -> bool:
    return settings.soft_lapse and not args.classic


def cmd_init(args):
    init_db(args.db)
    print(f"Deck ready at {args.db}")


def cmd_seed(args):
    store = init_db(args.db)
    added = store.seed_sample_cards(ease_factor=settings.initial_ease)
    if not added:
        print("Deck is not empty; nothing seeded.")
        return
    print(f"Added {added} sample card(s).")


def cmd_add(args):
    store = init_db(args.db)
    card = store.add_card(args.front, args.back, category=args.category,
                          ease_factor=settings.initial_ease)
    print(f"Added card {card.id}, due {card.next_review_date}")


def cmd_edit(args):
    store = init_db(args.db)
    card = store.update_card(args.card_id, front=args.front, back=args.back,
                             category=args.category)
    if card is None:
        raise reviews.CardNotFoundError(f"Flashcard {args.card_id} not found")
    print(f"Card {card.id}: {card.front} / {card.back}"
          + (f"  [{card.category}]" if card.category else ""))


def cmd_delete(args):
    store = init_db(args.db)
    if not store.delete_card(args.card_id):
        raise reviews.CardNotFoundError(f"Flashcard {args.card_id} not found")
    print(f"Deleted card {args.card_id}")


def cmd_list(args):
    store = init_db(args.db)
    cards = store.all_cards()
    if not cards:
        print("No cards in the deck. Add some first.")
        return
    for card in cards:
        print(f"  {card.id:>4}  {card.front[:40]:<40}  next={card.next_review_date}  "
              f"ease={card.ease_factor:.2f}  reps={card.repetitions}  ivl={card.interval}d")


def cmd_due(args):
    store = init_db(args.db)
    due = reviews.due_queue(store, args.date, limit=args.limit)
    if not due:
        print("No cards due today.")
        return
    print(f"\n{len(due)} card(s) due for review:\n")
    for i, card in enumerate(due, 1):
        print(f"  {i}. [{card.id}] {card.front[:80]}")
        print(f"     due={card.next_review_date}  ease={card.ease_factor:.2f}  "
              f"reps={card.repetitions}  stage={sm2.stage(card.repetitions)}")


def cmd_review(args):
    store = init_db(args.db)
    result = reviews.review_card(store, args.card_id, args.grade, args.date,
                                 soft_lapse=_soft_lapse(args))
    state = result.state
    verdict = "lapse, starting over" if result.lapsed else f"pass #{state.repetitions}"
    print(f"Card {result.id}: grade {result.grade} ({verdict})")
    print(f"  ease {result.previous.ease_factor:.2f} -> {state.ease_factor:.2f}, "
          f"next review in {state.interval} day(s) on {state.next_review_date}")


def cmd_stats(args):
    store = init_db(args.db)
    stats = reviews.deck_stats(store, args.date)
    print(f"Total cards:     {stats.total}")
    print(f"Due:             {stats.due}")
    print(f"New / lapsed:    {stats.new}")
    print(f"Learning:        {stats.learning}")
    print(f"Reviewing:       {stats.reviewing}")
    print(f"Reviewed today:  {stats.reviewed_today}")


def cmd_simulate(args):
    history = reviews.simulate(args.grades, start=args.start, soft_lapse=_soft_lapse(args),
                               initial_ease=settings.initial_ease)
    for i, (grade, state) in enumerate(zip(args.grades, history), 1):
        print(f"Review {i:>2}  grade={grade}  on {state.last_review_date}  "
              f"interval={state.interval:>4}d  reps={state.repetitions}  "
              f"ease={state.ease_factor:.2f}  next={state.next_review_date}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sm2deck", description="SM-2 flashcard scheduler")
    parser.add_argument("--db", default=settings.db_path, help="Path to the deck database")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create an empty deck").set_defaults(func=cmd_init)
    sub.add_parser("seed", help="Add the sample deck").set_defaults(func=cmd_seed)

    p = sub.add_parser("add", help="Add a card")
    p.add_argument("front")
    p.add_argument("back")
    p.add_argument("--category")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("edit", help="Change a card's front, back or category")
    p.add_argument("card_id", type=int)
    p.add_argument("--front")
    p.add_argument("--back")
    p.add_argument("--category", help='Use "" to clear')
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("delete", help="Remove a card")
    p.add_argument("card_id", type=int)
    p.set_defaults(func=cmd_delete)

    sub.add_parser("list", help="List every card").set_defaults(func=cmd_list)

    p = sub.add_parser("due", help="Show cards due for review")
    p.add_argument("--limit", type=int, default=settings.due_limit)
    p.add_argument("--date", type=dates.to_date, default=None)
    p.set_defaults(func=cmd_due)

    p = sub.add_parser("review", help="Grade a card")
    p.add_argument("card_id", type=int)
    p.add_argument("grade", type=int)
    p.add_argument("--date", type=dates.to_date, default=None)
    p.add_argument("--classic", action="store_true", help="Never reset a card on a grade-3 pass")
    p.set_defaults(func=cmd_review)

    p = sub.add_parser("stats", help="Deck summary")
    p.add_argument("--date", type=dates.to_date, default=None)
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("simulate", help="Replay grades on a fresh card")
    p.add_argument("grades", type=int, nargs="+")
    p.add_argument("--start", type=dates.to_date, default=None)
    p.add_argument("--classic", action="store_true", help="Never reset a card on a grade-3 pass")
    p.set_defaults(func=cmd_simulate)
    return parser


def _log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        logging.basicConfig(level=_log_level(settings.log_level),
                            format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        args.func(args)
    except (reviews.CardNotFoundError, StaleCardError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
