"""Rule-based expense categorization with learned overrides.

Public API:
    - :class:`CategoryRuleEngine`

``classify`` consults the correction learner first, then the ordered rule
table, then falls back to ``other-business``. ``suggest`` is the plain
rule-table path without the learner or amount boosts.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .learning import CorrectionLearner
from .logging_setup import get_logger
from .models import CategorySuggestion
from .rules import (
    DEFAULT_CATEGORY,
    DEFAULT_RULES,
    CategoryRule,
    boost_for_amount,
    first_match,
    keyword_confidence,
)

_logger = get_logger("statement_import.categorize")

_FALLBACK = CategorySuggestion(category=DEFAULT_CATEGORY, confidence="low", source="default")

type Amount = Decimal | float | int | None


class CategoryRuleEngine:
    def __init__(
        self,
        rules: Sequence[CategoryRule] = DEFAULT_RULES,
        learner: CorrectionLearner | None = None,
    ) -> None:
        self.rules: tuple[CategoryRule, ...] = tuple(rules)
        self.learner = learner

    def classify(self, description: str, amount: Amount = None) -> CategorySuggestion:
        """Return the best category for ``description``.

        Learned corrections always win with ``high`` confidence. Rule hits are
        rated by :func:`keyword_confidence` and then boosted when the amount
        fits the category.
        """

        if not description or not description.strip():
            return _FALLBACK

        if self.learner is not None:
            learned = self.learner.lookup(description)
            if learned is not None:
                _logger.debug("learned category %s for %r", learned, description)
                return CategorySuggestion(category=learned, confidence="high", source="learned")

        rule = first_match(self.rules, description, amount)
        if rule is None:
            return _FALLBACK

        confidence = boost_for_amount(rule.category, keyword_confidence(description), amount)
        return CategorySuggestion(category=rule.category, confidence=confidence, source="rule")

    def suggest(self, description: str, amount: Amount = None) -> CategorySuggestion:
        if not description or not description.strip():
            return _FALLBACK
        rule = first_match(self.rules, description, amount)
        if rule is None:
            return _FALLBACK
        return CategorySuggestion(
            category=rule.category, confidence=keyword_confidence(description), source="rule"
        )

    def learn(self, description: str, category: str) -> None:
        if self.learner is None:
            raise RuntimeError("CategoryRuleEngine has no learner configured")
        self.learner.learn(description, category)

    def categories(self) -> list[str]:
        """Distinct categories in rule order, followed by the fallback."""

        seen: list[str] = []
        for rule in self.rules:
            if rule.category not in seen:
                seen.append(rule.category)
        if DEFAULT_CATEGORY not in seen:
            seen.append(DEFAULT_CATEGORY)
        return seen


__all__ = ["CategoryRuleEngine"]
