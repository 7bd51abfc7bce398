"""
Merchant heuristics for statement descriptions.

Merchant extraction is an ordered list of independent rules; the first rule
that yields a non-empty name wins. The extracted name is the key under which
learned patterns are stored.
"""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MerchantRule:
    """One merchant extraction heuristic."""

    name: str
    pattern: re.Pattern

    def extract(self, description: str) -> Optional[str]:
        match = self.pattern.search(description)
        if not match:
            return None
        merchant = match.group(1).strip()
        return merchant or None


MERCHANT_RULES = [
    # ALL CAPS words at the start: "ACME CO 1234"
    MerchantRule("leading_caps", re.compile(r"^([A-Z][A-Z\s'&-]+)")),
    # Words before numbers (often store or category codes)
    MerchantRule("before_number", re.compile(r"^([^0-9]+)(?=\s+\d)")),
    # Words before a two-letter location token: "Blue Bottle CA Oakland"
    MerchantRule("before_location", re.compile(r"^(.+?)(?=\s+[A-Z]{2}\s)")),
]

# Leading transaction-type labels that are not part of the merchant
TYPE_PREFIXES = [
    "DEBIT CARD WITHDRAWAL",
    "CREDIT CARD PAYMENT",
    "SELF SERVICE TRANSFER",
    "EFT",
    "ACH",
    "DIVIDEND",
    "VENMO",
]

# Description words that mark an unsigned amount as money coming in
INCOME_HINT_PATTERN = re.compile(
    r"\b(?:deposit|payroll|salary|dividend|interest|refund|from)\b",
    re.IGNORECASE,
)

# Merchants shorter than this are too generic to deduplicate
MIN_DEDUPE_LENGTH = 4


def extract_merchant(description: Optional[str]) -> Optional[str]:
    """Extract a merchant name from a description, or None."""
    if not description:
        return None

    for rule in MERCHANT_RULES:
        merchant = rule.extract(description)
        if merchant:
            return merchant

    return None


def strip_type_prefix(description: str) -> str:
    """Remove one recognized leading type label such as ``ACH``."""
    upper = description.upper()
    for prefix in TYPE_PREFIXES:
        if upper.startswith(prefix + " "):
            return description[len(prefix) :].strip()
    return description


def dedupe_merchant(description: str) -> str:
    """
    Remove later verbatim repeats of the merchant name.

    OCR of two-column statements often repeats the merchant, e.g.
    ``GOOGLE *Youtube 5815 CA Mountain View GOOGLE *Youtube US``. The first
    occurrence is kept. Runs to a fixed point, so applying it twice is the
    same as applying it once.
    """
    while True:
        merchant = extract_merchant(description)
        if not merchant or len(merchant) < MIN_DEDUPE_LENGTH:
            return description

        pattern = re.compile(rf"(?<!\w){re.escape(merchant)}(?!\w)", re.IGNORECASE)
        matches = list(pattern.finditer(description))
        if len(matches) <= 1:
            return description

        cleaned = description
        for match in reversed(matches[1:]):
            cleaned = cleaned[: match.start()] + " " + cleaned[match.end() :]
        cleaned = " ".join(cleaned.split())

        if cleaned == description:
            return description
        description = cleaned


def has_income_hint(description: str) -> bool:
    """Description reads like money coming in (payroll, deposit, ...)."""
    return INCOME_HINT_PATTERN.search(description) is not None
