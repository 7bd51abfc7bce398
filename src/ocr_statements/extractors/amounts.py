"""
Amount parsing for OCR statement lines.

OCR regularly reads a decimal point as a colon, so every pattern here accepts
``:`` where ``.`` is expected. Supported token shapes:
- 1,234.56 / $1,234.56 / -12.50 / (12.50)
- 12:34 (misread 12.34)
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..schemas.transactions import MatchShape

logger = logging.getLogger(__name__)

_AMOUNT_BODY = r"\(?-?\$?[\d,]+[.:]\d{2}(?!\d)\)?"

# Any amount token on a line
AMOUNT_PATTERN = re.compile(_AMOUNT_BODY)

# Transaction amount followed by running balance at the end of the line
DUAL_AMOUNT_PATTERN = re.compile(rf"({_AMOUNT_BODY})\s+({_AMOUNT_BODY})$")

# Line text that marks an unsigned amount as money going out
SIGN_HINT_PATTERN = re.compile(r"debit|withdrawal|purchase", re.IGNORECASE)


def _clean_token(token: str) -> str:
    """Strip currency symbols, separators and whitespace; fix ``:`` misreads."""
    return re.sub(r"[$,\s]", "", token).replace(":", ".")


def parse_amount(token: str, line_text: str = "") -> Decimal:
    """
    Parse one noisy amount token to a signed Decimal.

    Sign rules, first match wins:
    1. Parenthesized → negative
    2. Explicit leading ``-`` → negative
    3. ``line_text`` mentions debit/withdrawal/purchase → negative
    4. Otherwise positive (direction is inferred later)

    Unparseable input yields ``Decimal("0")``; callers treat zero as a
    confidence-lowering signal rather than an error.
    """
    if not isinstance(token, str):
        return Decimal("0")

    cleaned = _clean_token(token)

    parenthesized = cleaned.startswith("(") and cleaned.endswith(")")
    cleaned = cleaned.strip("()")

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        logger.debug(f"Unparseable amount token: {token!r}")
        return Decimal("0")

    if not value.is_finite():
        return Decimal("0")

    if parenthesized:
        return -abs(value)

    if value < 0:
        return value

    if SIGN_HINT_PATTERN.search(line_text or ""):
        return -abs(value)

    return value


def has_sign_hint(token: str, line_text: str = "") -> bool:
    """Whether the sign of ``token`` came from the token or line, not the default."""
    cleaned = _clean_token(token)
    if cleaned.startswith("(") and cleaned.endswith(")"):
        return True
    if cleaned.startswith("-"):
        return True
    return bool(SIGN_HINT_PATTERN.search(line_text or ""))


def normalize_token(token: str) -> str:
    """Token text with ``:`` misreads repaired, for traceability."""
    return token.replace(":", ".")


@dataclass
class AmountMatch:
    """Amount picked from one line, plus what was discarded."""

    amount: Decimal
    amount_token: str
    shape: MatchShape
    description: str  # Line text with every amount token removed
    tokens: list[str] = field(default_factory=list)
    balance_token: Optional[str] = None
    explicit_sign: bool = False

    @property
    def balance(self) -> Optional[Decimal]:
        if self.balance_token is None:
            return None
        return parse_amount(self.balance_token)


def find_amount_tokens(text: str) -> list[str]:
    """All amount tokens on a line, in order."""
    return [m.group(0) for m in AMOUNT_PATTERN.finditer(text)]


def has_dual_trailing_amounts(text: str) -> bool:
    """Line ends with an amount followed by a balance."""
    return DUAL_AMOUNT_PATTERN.search(text) is not None


def resolve_amounts(text: str, line_text: Optional[str] = None) -> Optional[AmountMatch]:
    """
    Pick the transaction amount among the amount tokens on a line.

    Strategy:
    1. Two trailing tokens: first is the amount, second is the balance
    2. More tokens without a clean trailing pair: second-to-last token
       (the true trailing token is usually a balance)
    3. Exactly one token: that token

    Args:
        text: Text to search (usually the line with its date token removed)
        line_text: Full line used for sign hints (defaults to ``text``)

    Returns:
        AmountMatch, or None when the line has no amount token
    """
    if line_text is None:
        line_text = text

    matches = list(AMOUNT_PATTERN.finditer(text))
    if not matches:
        return None

    tokens = [m.group(0) for m in matches]
    balance_token = None

    dual = DUAL_AMOUNT_PATTERN.search(text)
    if dual:
        amount_token = dual.group(1)
        balance_token = dual.group(2)
        shape = MatchShape.DUAL
        logger.debug(
            f"Found dual amounts: amount={normalize_token(amount_token)}, "
            f"balance={normalize_token(balance_token)}"
        )
    elif len(tokens) > 1:
        amount_token = tokens[-2]
        shape = MatchShape.AMBIGUOUS
    else:
        amount_token = tokens[0]
        shape = MatchShape.SINGLE

    # Remove every matched token from the description, back to front
    description = text
    for match in reversed(matches):
        description = description[: match.start()] + " " + description[match.end() :]
    description = " ".join(description.split())

    return AmountMatch(
        amount=parse_amount(amount_token, line_text),
        amount_token=amount_token,
        shape=shape,
        description=description,
        tokens=tokens,
        balance_token=balance_token,
        explicit_sign=has_sign_hint(amount_token, line_text),
    )
