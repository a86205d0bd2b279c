"""CLI interface for Lingua Review.

Usage:
    python -m lingua_review review                    Start a typed-recall review session
    python -m lingua_review stats                     Show your statistics
    python -m lingua_review add "text" "translation"  Add a new review item
    python -m lingua_review due                       Show how many items are due
    python -m lingua_review evaluate "ref" "attempt"  Score an attempt without saving it
"""

import argparse
import asyncio
import logging
import time

from backend.config import settings, utcnow
from backend.errors import ReviewEngineError
from backend.srs.evaluation import evaluate, tokens_from_text
from backend.srs.review_service import NewItem, ReviewService
from backend.srs.similarity import accuracy
from backend.store import ItemKind, build_store


async def ensure_db() -> None:
    """Create tables if the SQL store is configured."""
    if settings.store_backend == "sql":
        from backend.database import create_tables

        await create_tables()


def build_service() -> ReviewService:
    return ReviewService(build_store(settings.store_backend, timeout=settings.store_timeout_seconds))


async def cmd_review(args: argparse.Namespace, service: ReviewService) -> None:
    """Run an interactive typed-recall session over due and never-reviewed items."""
    now = utcnow()
    buckets = await service.items_by_priority(args.owner, now)
    items = [item for item in buckets.urgent if item.next_review_at is None or item.is_due(now)]
    items = items[: args.max_items]

    if not items:
        print("\nNothing due for review. You're all caught up!")
        return

    print("\n  Review Session")
    print(f"  {len(items)} items\n")
    print("  Type the target-language text for each translation. Type 'q' to quit\n")

    reviewed = 0
    total_score = 0

    for i, item in enumerate(items, 1):
        label = f"  [{i}/{len(items)}]"
        if item.review_count == 0:
            label += " (NEW)"
        print(label)
        print(f"  {item.translation or item.text}")

        start_time = time.time()
        response = input("\n  Your answer: ").strip()
        time_spent = int(time.time() - start_time)

        if response.lower() == "q":
            print("\n  Session ended early.")
            break

        score = accuracy(item.text, response)
        if score == 100:
            print("  Correct!")
        else:
            print(f"  Score {score}. Expected: {item.text}")

        outcome = await service.complete_review(item.id, score, time_spent)
        reviewed += 1
        total_score += score
        print(
            f"  Next review in {outcome.schedule.interval_days} days "
            f"({outcome.schedule.priority.value})\n"
        )

    average = total_score / reviewed if reviewed else 0
    print("\n  Session Complete!")
    print(f"  Reviewed: {reviewed}  Average score: {average:.0f}\n")


async def cmd_stats(args: argparse.Namespace, service: ReviewService) -> None:
    """Show review statistics."""
    summary = await service.dashboard(args.owner)
    counts = summary.counts
    mastery = f"{summary.average_mastery:.0f}%" if summary.average_mastery is not None else "-"

    print("\n  Lingua Review Statistics")
    print(f"  {'Total items:':<22} {counts.total}")
    print(f"  {'Urgent:':<22} {counts.urgent}")
    print(f"  {'Recommended:':<22} {counts.recommended}")
    print(f"  {'Relaxed:':<22} {counts.relaxed}")
    print(f"  {'Reviewed today:':<22} {summary.completed_today}")
    print(f"  {'Weekly completion:':<22} {summary.weekly_completion_rate:.1f}%")
    print(f"  {'Streak (days):':<22} {summary.streak_days}")
    print(f"  {'Average mastery:':<22} {mastery}")
    print()


async def cmd_add(args: argparse.Namespace, service: ReviewService) -> None:
    """Add a new review item."""
    item = await service.create_item(
        NewItem(
            owner_id=args.owner,
            document_id=args.document,
            page=args.page,
            text=args.text,
            translation=args.translation,
            language=args.language,
            kind=ItemKind.PHRASE if len(args.text.split()) > 1 else ItemKind.WORD,
        )
    )
    print(f"  Added {item.kind.value} '{item.text}' (id={item.id}), ready for review.")


async def cmd_due(args: argparse.Namespace, service: ReviewService) -> None:
    """Show how many items are due."""
    reminder = await service.reminder(args.owner)
    buckets = reminder.buckets
    print(
        f"  {reminder.due_count} items due "
        f"({len(buckets.urgent)} urgent, {len(buckets.recommended)} recommended, "
        f"{len(buckets.relaxed)} relaxed)"
    )


def cmd_evaluate(args: argparse.Namespace) -> None:
    """Score an attempt against a reference (sync, no store needed)."""
    duration = args.duration
    tokens = tokens_from_text(args.attempt)
    if duration is None:
        duration = len(tokens) * settings.ideal_seconds_per_token
    result = evaluate(args.expected, args.attempt, tokens, duration)

    feedback = result.feedback
    print(f"\n  {feedback.message}")
    print(f"  {'Total:':<16} {result.total_score}")
    print(f"  {'Accuracy:':<16} {result.accuracy_score}")
    print(f"  {'Fluency:':<16} {result.fluency_score}")
    print(f"  {'Pronunciation:':<16} {result.pronunciation_score}")
    for line in feedback.positive_points:
        print(f"  + {line}")
    for line in feedback.improvements + feedback.specific_advice:
        print(f"  - {line}")
    print()


def main() -> None:
    """Entry point for the Lingua Review CLI application."""
    parser = argparse.ArgumentParser(
        prog="lingua_review",
        description="Adaptive vocabulary and phrase review",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--owner", default="local", help="Learner id (default: local)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # review
    review_parser = subparsers.add_parser("review", help="Start a review session")
    review_parser.add_argument("--max-items", type=int, default=20, help="Max items per session")

    # stats
    subparsers.add_parser("stats", help="Show your statistics")

    # add
    add_parser = subparsers.add_parser("add", help="Add a new review item")
    add_parser.add_argument("text", help="Target-language word or phrase")
    add_parser.add_argument("translation", help="Translation shown as the prompt")
    add_parser.add_argument("-l", "--language", default="en", help="Language code")
    add_parser.add_argument("-d", "--document", default="cli", help="Source document id")
    add_parser.add_argument("-p", "--page", type=int, default=0, help="Page in the source document")

    # due
    subparsers.add_parser("due", help="Show items due for review")

    # evaluate
    eval_parser = subparsers.add_parser("evaluate", help="Score an attempt against a reference")
    eval_parser.add_argument("expected", help="Reference text")
    eval_parser.add_argument("attempt", help="Recognized or typed attempt")
    eval_parser.add_argument(
        "--duration", type=float, default=None, help="Utterance length in seconds"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    try:
        # evaluate is synchronous, all others are async.
        if args.command == "evaluate":
            cmd_evaluate(args)
            return

        cmd_map = {
            "review": cmd_review,
            "stats": cmd_stats,
            "add": cmd_add,
            "due": cmd_due,
        }

        async def run() -> None:
            await ensure_db()
            await cmd_map[args.command](args, build_service())

        asyncio.run(run())
    except ReviewEngineError as exc:
        parser.exit(1, f"  Error ({exc.kind.value}): {exc.detail}\n")


if __name__ == "__main__":
    main()
