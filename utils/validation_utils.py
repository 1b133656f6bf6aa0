"""
utils/validation_utils.py

Purpose: Input normalization

- Start keyword detection
- Answer sanitization
- Amount parsing
"""

import re
from typing import Optional


def sanitize_answer(text: Optional[str]) -> str:
    """
    Normalizes raw message text into an answer.

    Args:
        text: Raw inbound text (may be None)

    Returns:
        Stripped text, empty string when nothing usable was sent
    """
    if not text:
        return ""
    return text.strip()


def matches_start_keyword(text: Optional[str], keyword: str) -> bool:
    """
    Case-insensitive containment check for the conversation trigger.

    Example:
        matches_start_keyword("Quiero una FACTURA", "factura") -> True
    """
    if not text or not keyword:
        return False
    return keyword.lower() in text.lower()


_AMOUNT_NOISE = re.compile(r"[\s$,]|MXN|mxn")


def parse_amount(value: str) -> float:
    """
    Parses an amount typed by a user into a float.

    Accepts currency symbols, thousands separators and an MXN suffix:
    "$1,008.62 MXN" -> 1008.62

    Raises:
        ValueError: If the text is not a finite non-negative number
    """
    cleaned = _AMOUNT_NOISE.sub("", value or "")
    if not cleaned:
        raise ValueError(f"Empty amount: {value!r}")

    amount = float(cleaned)
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise ValueError(f"Amount is not finite: {value!r}")
    if amount < 0:
        raise ValueError(f"Amount is negative: {value!r}")

    return amount
