"""Meaningful-token counting for OCR text.

Counts characters that carry real textual or numeric signal:

- Latin and Cyrillic letters
- Digits
- Dot/comma between digits (e.g., "3.14", "1,000")
- Plus/minus before a digit (e.g., "+5", "-10", "−5")
- Degree symbol after a digit (e.g., "45°")
- Currency symbols before/after a digit (e.g., "$100", "50€")

Anything else (stray punctuation, whitespace, symbols) is treated as noise.
"""

import regex

_LETTER = regex.compile(r'[\p{Script=Latin}\p{Script=Cyrillic}]')
_CURRENCY = regex.compile(r'\p{Sc}')

DECIMAL_SEPARATORS = frozenset('.,')
SIGNS = frozenset('+-−')
DEGREE = '°'


def _is_digit(ch: str) -> bool:
    return ch.isdecimal()


def count_tokens(text: str) -> int:
    """Count meaningful characters in text.

    Args:
        text: Recognized text

    Returns:
        Number of characters classified as tokens
    """
    count = 0
    last = len(text) - 1

    for i, ch in enumerate(text):
        prev_digit = i > 0 and _is_digit(text[i - 1])
        next_digit = i < last and _is_digit(text[i + 1])

        if _is_digit(ch) or _LETTER.match(ch):
            count += 1
        elif ch in DECIMAL_SEPARATORS:
            if prev_digit and next_digit:
                count += 1
        elif ch in SIGNS:
            if next_digit:
                count += 1
        elif ch == DEGREE:
            if prev_digit:
                count += 1
        elif _CURRENCY.match(ch):
            if prev_digit or next_digit:
                count += 1

    return count
