"""Message text for the bot."""
from datetime import datetime
from html import escape
from typing import List, Optional

from wordsbot.config import settings
from wordsbot.models.api_models import ReviewGrade, ReviewHistoryEntry, Stats, UserWord, WordDetail


def format_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as e.g. 'Mar 5, 2025'."""
    if not value:
        return "-"
    try:
        date = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{date:%b} {date.day}, {date.year}"


def format_word_detail(detail: WordDetail, max_definitions: Optional[int] = None) -> str:
    """Render a dictionary entry, showing at most max_definitions per meaning."""
    if max_definitions is None:
        max_definitions = settings.review.max_definitions_per_meaning

    lines = [f"<b>{escape(detail.word)}</b>"]
    if detail.phonetic:
        lines.append(f"<i>{escape(detail.phonetic)}</i>")

    for meaning in detail.meanings:
        lines.append("")
        lines.append(f"<u>{escape(meaning.part_of_speech)}</u>")
        for number, definition in enumerate(meaning.definitions[:max_definitions], start=1):
            lines.append(f"{number}. {escape(definition.definition)}")
            if definition.example:
                lines.append(f"    <i>\"{escape(definition.example)}\"</i>")

    return "\n".join(lines)


def format_stats(stats: Stats, last_sync: Optional[str] = None) -> str:
    """Render the statistics view."""
    message = (
        "📊 Your Progress\n\n"
        f"• Total Words: {stats.total_words}\n"
        f"• Due Today: {stats.due_today}\n"
        f"• Learning: {stats.learning}\n"
        f"• Reviewing: {stats.reviewing}\n"
        f"• Mastered: {stats.mastered}\n"
        f"• Total Reviews: {stats.total_reviews}\n"
    )
    if stats.current_streak:
        message += f"• Current Streak: {stats.current_streak} day{'s' if stats.current_streak > 1 else ''}\n"

    if stats.due_today > 0:
        message += (
            f"\n🎯 You have {stats.due_today} word{'s' if stats.due_today > 1 else ''} "
            "due for review today!\n"
        )
    if stats.total_words == 0:
        message += "\n👋 Welcome! Get started by adding your first word.\n"
    if last_sync:
        message += f"\nLast synced: {format_date(last_sync)}"
    return message.rstrip("\n")


def format_word_list(words: List[UserWord], status: Optional[str] = None) -> str:
    """Render the study list."""
    title = f"📖 My Words ({status})" if status else "📖 My Words"
    if not words:
        return f"{title}\n\nNo words yet. Add some words to get started!"

    lines = [title, ""]
    for word in words:
        lines.append(
            f"• <b>{escape(word.word)}</b> [{escape(word.status)}] "
            f"next review {format_date(word.next_review_date)}, "
            f"every {word.interval_days}d, ease {word.ease_factor:.2f}"
        )
    return "\n".join(lines)


def format_review_history(word: str, history: List[ReviewHistoryEntry]) -> str:
    if not history:
        return f"No reviews of <b>{escape(word)}</b> yet."
    lines = [f"🕘 Reviews of <b>{escape(word)}</b>", ""]
    for entry in history:
        lines.append(f"• {format_date(entry.reviewed_at)}: quality {entry.quality}, next in {entry.interval_days}d")
    return "\n".join(lines)


def format_grade_button(grade: ReviewGrade) -> str:
    return f"{int(grade)} - {grade.label}"


def format_grade_legend() -> str:
    return "\n".join(f"{int(grade)} - {grade.label}: {grade.description}" for grade in ReviewGrade)


def format_card_header(position: int, total: int) -> str:
    return f"Card {position} of {total}"
