"""
Line classification for statement text.

Each normalized line is classified given whether a draft transaction is open.
Priority order:
1. SKIP: boilerplate (balances, headers, totals), or a dated summary row
2. TRANSACTION_START: leading date token and at least one amount token
3. CONTINUATION: extra description text for the open draft
4. CLOSE: anything else; finalizes the open draft, if any

Supported leading date tokens:
- 3/14, 03/14 (year from statement or current year)
- 3/14/25, 03/14/2025
- 2025-03-14
"""

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from .amounts import find_amount_tokens, has_dual_trailing_amounts

# Leading date patterns (ordered by specificity)
DATE_PATTERNS = [
    # ISO format: 2025-03-14
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})\b"), "iso"),
    # Month/day/year: 3/14/2025, 03/14/25
    (re.compile(r"^(0?[1-9]|1[0-2])/(0?[1-9]|[12]\d|3[01])/(\d{4}|\d{2})\b"), "mdy"),
    # Month/day, year omitted: 3/14
    (re.compile(r"^(0?[1-9]|1[0-2])/(0?[1-9]|[12]\d|3[01])\b"), "md"),
]

# Header, footer and summary lines
SKIP_PATTERNS = [
    re.compile(r"\bending balance\b", re.IGNORECASE),
    re.compile(r"\bbeginning balance\b", re.IGNORECASE),
    re.compile(r"\byear-to-date summary\b", re.IGNORECASE),
    re.compile(r"\bannual percentage\b", re.IGNORECASE),
    re.compile(r"\bstatement period\b", re.IGNORECASE),
    re.compile(r"\baccount number\b", re.IGNORECASE),
    re.compile(r"\bpage \d+ of \d+\b", re.IGNORECASE),
    re.compile(r"^date\s+transaction description\s+amount\s+balance", re.IGNORECASE),
    re.compile(r"^\s*total dividend of\b", re.IGNORECASE),
    re.compile(r"^a payment of", re.IGNORECASE),
]

# Keywords that mark a dated line as a summary row, anywhere in the line
SUMMARY_KEYWORDS = ["ending balance", "beginning balance", "statement total"]

# Continuation shapes seen on real statements
CONTINUATION_PATTERNS = [
    re.compile(r"^[A-Z]{2}\s"),  # State abbreviation
    re.compile(r"US$"),  # Country suffix
    re.compile(r"^FROM"),  # Transfer reference
    re.compile(r"\.com"),  # Website
]

# A line that starts like a date but did not parse as one
DATE_FRAGMENT_PATTERN = re.compile(r"^\d+/\d+")


class LineKind(str, Enum):
    """Classification of one statement line."""

    SKIP = "SKIP"
    TRANSACTION_START = "TRANSACTION_START"
    CONTINUATION = "CONTINUATION"
    CLOSE = "CLOSE"


@dataclass(frozen=True)
class DateToken:
    """A leading date token and its YYYY-MM-DD rendering."""

    token: str
    iso: str
    kind: str


def parse_leading_date(line: str, default_year: Optional[int] = None) -> Optional[DateToken]:
    """
    Parse the date token at the start of a line.

    The ISO rendering is not calendar-checked here; an impossible date such
    as 2/30 is kept and penalized during scoring.
    """
    for pattern, kind in DATE_PATTERNS:
        match = pattern.match(line)
        if not match:
            continue

        if kind == "iso":
            year, month, day = match.group(1), match.group(2), match.group(3)
        else:
            month, day = match.group(1), match.group(2)
            if kind == "mdy":
                year = match.group(3)
                if len(year) == 2:
                    year = f"20{year}"
            else:
                year = str(default_year or date.today().year)

        return DateToken(
            token=match.group(0),
            iso=f"{int(year):04d}-{int(month):02d}-{int(day):02d}",
            kind=kind,
        )

    return None


def is_known_continuation(line: str) -> bool:
    """Check if a line matches a common continuation shape."""
    return any(pattern.search(line) for pattern in CONTINUATION_PATTERNS)


class LineClassifier:
    """
    Classifies statement lines for the transaction accumulator.

    Stateless apart from the statement year used for dates without one.
    """

    def __init__(self, default_year: Optional[int] = None):
        self.default_year = default_year

    def leading_date(self, line: str) -> Optional[DateToken]:
        return parse_leading_date(line, self.default_year)

    def is_skip(self, line: str) -> bool:
        """Boilerplate line, or a dated line carrying a summary keyword."""
        if any(pattern.search(line) for pattern in SKIP_PATTERNS):
            return True

        if self.leading_date(line):
            lower = line.lower()
            if any(keyword in lower for keyword in SUMMARY_KEYWORDS):
                return True

        return False

    def classify(self, line: str, has_open_draft: bool) -> LineKind:
        """Classify one normalized line."""
        if self.is_skip(line):
            return LineKind.SKIP

        date_token = self.leading_date(line)
        if date_token:
            rest = line[len(date_token.token) :]
            if find_amount_tokens(rest):
                return LineKind.TRANSACTION_START
            return LineKind.CLOSE

        if (
            has_open_draft
            and not has_dual_trailing_amounts(line)
            and not DATE_FRAGMENT_PATTERN.match(line)
        ):
            return LineKind.CONTINUATION

        return LineKind.CLOSE
