"""Expense categorization rules.

Rules are data: an ordered tuple of :class:`CategoryRule` evaluated by
:class:`~statement_import.categorize.CategoryRuleEngine`, first match wins. A
category may appear in more than one rule (e.g. one rule for named vendors and
one amount-gated rule for generic wording). Keywords are stored uppercased and
compared against an uppercased description.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .models import Confidence

DEFAULT_CATEGORY = "other-business"

EXPENSE_CATEGORIES: tuple[str, ...] = (
    "office-supplies",
    "food-delivery",
    "groceries",
    "marketing-advertising",
    "software-subscriptions",
    "travel-client-meetings",
    "transport",
    "utilities",
    "equipment",
    "professional-services",
    "banking-fees",
    DEFAULT_CATEGORY,
)


@dataclass(frozen=True, slots=True)
class AmountRange:
    min: Decimal | None = None
    max: Decimal | None = None

    def contains(self, amount: Decimal | float | int) -> bool:
        if self.min is not None and amount < self.min:
            return False
        if self.max is not None and amount > self.max:
            return False
        return True


@dataclass(frozen=True, slots=True)
class CategoryRule:
    """One classification rule.

    A description matches when any ``contains`` keyword is a substring; when
    none is, any ``starts_with``/``ends_with`` keyword anchoring the string
    also counts. When ``amount_range`` is set and an amount is supplied, an
    amount outside the range voids the match.
    """

    category: str
    contains: tuple[str, ...] = ()
    starts_with: tuple[str, ...] = ()
    ends_with: tuple[str, ...] = ()
    amount_range: AmountRange | None = None

    def matches(self, description: str, amount: Decimal | float | int | None = None) -> bool:
        upper = description.upper()
        hit = any(k in upper for k in self.contains)
        if not hit:
            hit = any(upper.startswith(k) for k in self.starts_with) or any(
                upper.endswith(k) for k in self.ends_with
            )
        if hit and self.amount_range is not None and amount is not None:
            hit = self.amount_range.contains(amount)
        return hit


def _kw(*words: str) -> tuple[str, ...]:
    return tuple(w.upper() for w in words)


DEFAULT_RULES: tuple[CategoryRule, ...] = (
    # Freelance marketplaces are booked as outsourced office spend.
    CategoryRule(
        "office-supplies",
        contains=_kw("UPWORK", "FIVERR", "KANCELARIJA", "OFFICE", "SUPPLIES", "PRINTER", "PAPIR"),
    ),
    CategoryRule("food-delivery", contains=_kw("WOLT", "GLOVO", "MISTER", "DONESI", "FOOD")),
    # MARKET and RODA are anchored: bare, they hit MARKETING and PRODAJA.
    CategoryRule(
        "groceries",
        contains=_kw(
            "HLEB", "LIDL", "SUPERMARKET", "HIPERMARKET", "MINIMARKET", "MAXI", "PEKARA",
            "TEMPO", "UNIVEREXPORT", "RODA CENTAR", "IDEA", "MERCATOR",
        ),
        starts_with=_kw("ZLATAN", "MARKET ", "RODA "),
        ends_with=_kw(" MARKET"),
    ),
    CategoryRule(
        "marketing-advertising",
        contains=_kw(
            "MARKETING", "REKLAMA", "FACEBOOK", "INSTAGRAM", "LINKEDIN", "GOOGLE ADS", "META ADS"
        ),
        ends_with=_kw(" ADS"),
    ),
    CategoryRule(
        "software-subscriptions",
        contains=_kw(
            "GOOGLE", "MIDJOURNEY", "NAMECHEAP", "PAYPAL", "ADOBE", "SPOTIFY", "NETFLIX",
            "OPENAI", "GITHUB", "JETBRAINS", "FIGMA",
        ),
        starts_with=_kw("GOOGLE", "ADOBE"),
    ),
    CategoryRule(
        "travel-client-meetings",
        contains=_kw("HOTEL", "BOOKING", "AIRBNB", "TRAVEL", "PUTOVANJE", "ODMOR", "AIR SERBIA"),
    ),
    CategoryRule(
        "transport",
        contains=_kw(
            "GAZPROM", "GORIVO", "OMV", "PETROL", "PREVOZ", "AUTOBUS", "BUSPLUS", "TAXI",
            "PUTEVI", "PUTARINA",
        ),
    ),
    CategoryRule(
        "utilities",
        contains=_kw(
            "EPS", "INFOSTAN", "MTS", "TELEKOM", "VODOVOD", "STRUJA", "VODA", "SRBIJAGAS"
        ),
    ),
    CategoryRule(
        "equipment",
        contains=_kw("GIGATRON", "TEHNOMANIJA", "WINWIN", "LAPTOP", "MONITOR", "RACUNAR"),
    ),
    CategoryRule(
        "professional-services",
        contains=_kw(
            "KNJIGOVOD", "ADVOKAT", "CONSULTING", "KONSULTING", "ACCOUNTING", "NOTAR", "LEGAL"
        ),
    ),
    # Small fees charged by the bank itself.
    CategoryRule(
        "banking-fees",
        contains=_kw("PROVIZIJA", "NAKN", "ODRZAVANJE RACUNA", "TROŠKOVI", "TROSKOVI"),
        amount_range=AmountRange(max=Decimal("5000")),
    ),
    # Large periodic service payments.
    CategoryRule(
        "professional-services",
        contains=_kw("USLUGA", "MESEČNO", "MESECNO", "GODIŠNJE", "GODISNJE"),
        amount_range=AmountRange(min=Decimal("1000")),
    ),
)


# ---------------------------------------------------------------------------
# Confidence heuristics
# ---------------------------------------------------------------------------

HIGH_CONFIDENCE_KEYWORDS: tuple[str, ...] = _kw(
    "MAXI", "LIDL", "WOLT", "GLOVO", "EPS", "MTS", "TELEKOM", "UPWORK", "FIVERR", "GOOGLE",
    "ADOBE", "GITHUB", "OPENAI", "NETFLIX", "SPOTIFY", "BOOKING", "AIRBNB", "GIGATRON",
)

LOW_CONFIDENCE_WORDS: tuple[str, ...] = _kw("BUSINESS", "MISC", "OTHER", "GENERAL", "USLUGA")
_LOW_CONFIDENCE_RE = re.compile(r"\b(?:" + "|".join(LOW_CONFIDENCE_WORDS) + r")\b")

LARGE_AMOUNT = Decimal("10000")
SMALL_AMOUNT = Decimal("5000")
LARGE_AMOUNT_CATEGORIES = frozenset({"equipment", "professional-services"})
SMALL_AMOUNT_CATEGORIES = frozenset({"office-supplies"})

_UPGRADE: dict[str, Confidence] = {"low": "medium", "medium": "high", "high": "high"}


def keyword_confidence(description: str) -> Confidence:
    """Rate a rule match by how specific the description's wording is.

    Generic catch-all words win over vendor names.
    """

    upper = description.upper()
    if _LOW_CONFIDENCE_RE.search(upper):
        return "low"
    if any(k in upper for k in HIGH_CONFIDENCE_KEYWORDS):
        return "high"
    return "medium"


def boost_for_amount(
    category: str, confidence: Confidence, amount: Decimal | float | int | None
) -> Confidence:
    """Upgrade confidence one step when the amount fits the category's profile."""

    if amount is None:
        return confidence
    if (category in LARGE_AMOUNT_CATEGORIES and amount > LARGE_AMOUNT) or (
        category in SMALL_AMOUNT_CATEGORIES and amount < SMALL_AMOUNT
    ):
        return _UPGRADE[confidence]
    return confidence


def first_match(
    rules: Iterable[CategoryRule], description: str, amount: Decimal | float | int | None = None
) -> CategoryRule | None:
    for rule in rules:
        if rule.matches(description, amount):
            return rule
    return None


__all__ = [
    "DEFAULT_CATEGORY",
    "EXPENSE_CATEGORIES",
    "AmountRange",
    "CategoryRule",
    "DEFAULT_RULES",
    "HIGH_CONFIDENCE_KEYWORDS",
    "LOW_CONFIDENCE_WORDS",
    "keyword_confidence",
    "boost_for_amount",
    "first_match",
]
