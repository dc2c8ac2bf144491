"""
Flashcard normalization: turns a parsed model response of unknown shape
into a bounded, uniformly shaped list of Flashcard records.

Two per-entry policies are supported. The lenient policy (default) never
rejects an entry: missing or empty fields get positional placeholders and
non-object entries become placeholder cards. The strict policy checks
every entry of the response, including those past the cap, and fails the
whole batch with InvalidEntry on the first non-object entry or empty
question/answer. Callers that ran the lenient policy can apply
``check_strict`` afterwards to reject cards that ended up as placeholders.
"""
import json
import re
from typing import Any, Iterable, List, Optional, Sequence

import structlog

from app import config
from app.errors import InvalidEntry, InvalidShape, NoFlashcards
from app.schemas import Flashcard
from app.services.logging import log_performance
from app.services.response_parser import parse_response

logger = structlog.get_logger()

PAYLOAD_KEYS: Sequence[str] = ("flashcards", "cards")
CARDS_PER_LEVEL = 3
MAX_LEVEL = 5

LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def question_placeholder(index: int) -> str:
    return f"Question {index + 1}"


def answer_placeholder(index: int) -> str:
    return f"Answer {index + 1}"


def fallback_category(index: int) -> int:
    """Bands of three cards per level in response order, capped at the top level."""
    return min(MAX_LEVEL, index // CARDS_PER_LEVEL + 1)


def extract_payload(value: Any, payload_keys: Iterable[str] = PAYLOAD_KEYS) -> Any:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in payload_keys:
            if key in value:
                return value[key]
        return []
    return None


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (bool, list, dict)):
        return json.dumps(value).strip()
    return str(value).strip()


def coerce_category(value: Any) -> Optional[int]:
    # bool is an int subclass but never a valid level
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        match = LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def coerce_entry(entry: Any, index: int, strict: bool = False) -> Flashcard:
    if not isinstance(entry, dict):
        if strict:
            raise InvalidEntry(index, "not an object")
        logger.warning("placeholder_substituted", index=index, field="entry", type=type(entry).__name__)
        entry = {}

    question = coerce_text(entry.get("question"))
    answer = coerce_text(entry.get("answer"))
    if strict and not question:
        raise InvalidEntry(index, "empty question")
    if strict and not answer:
        raise InvalidEntry(index, "empty answer")

    if not question:
        logger.info("placeholder_substituted", index=index, field="question")
        question = question_placeholder(index)
    if not answer:
        logger.info("placeholder_substituted", index=index, field="answer")
        answer = answer_placeholder(index)

    category = coerce_category(entry.get("category"))
    if category is None:
        category = fallback_category(index)

    return Flashcard(question=question, answer=answer, category=category)


def normalize_flashcards(
    value: Any,
    strict: bool = False,
    payload_keys: Iterable[str] = PAYLOAD_KEYS,
    max_cards: int = config.MAX_FLASHCARDS,
) -> List[Flashcard]:
    """Coerce a parsed model response into at most ``max_cards`` flashcards.

    Raises InvalidShape when no list payload can be found, NoFlashcards when
    the list is empty, and InvalidEntry (strict policy only) for a bad entry.
    """
    payload = extract_payload(value, payload_keys)
    if not isinstance(payload, list):
        raise InvalidShape(type(payload if isinstance(value, dict) else value).__name__)

    # Strict policy validates the whole response; lenient only coerces what is kept
    entries = payload if strict else payload[:max_cards]
    cards = [coerce_entry(entry, index, strict=strict) for index, entry in enumerate(entries)]
    if len(payload) > max_cards:
        logger.info("flashcards_truncated", received=len(payload), kept=max_cards)
        cards = cards[:max_cards]
    if not cards:
        raise NoFlashcards()

    logger.info("flashcards_normalized", count=len(cards), strict=strict)
    return cards


def check_strict(cards: List[Flashcard]) -> List[Flashcard]:
    """Reject a lenient result if any card still carries its placeholder text."""
    for index, card in enumerate(cards):
        if card.question == question_placeholder(index):
            raise InvalidEntry(index, "empty question")
        if card.answer == answer_placeholder(index):
            raise InvalidEntry(index, "empty answer")
    return cards


@log_performance("build_flashcards")
def build_flashcards(completion: str, strict: bool = False) -> List[Flashcard]:
    """Full pipeline from raw completion text to a validated flashcard set."""
    return normalize_flashcards(parse_response(completion), strict=strict)
