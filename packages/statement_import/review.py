"""Interactive review of suggested expense categories.

Rows are grouped by normalized description so a vendor that appears many
times in a statement is reviewed once. For each group the operator accepts the
suggested category or picks another; a changed category is applied to every
row in the group and taught to the engine's learner, so later imports get it
right without review.
"""

from __future__ import annotations

import builtins
import dataclasses
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .categorize import CategoryRuleEngine
from .learning import normalize_description
from .logging_setup import get_logger
from .models import ParsedTransaction
from .term_ui import select_category

_logger = get_logger("statement_import.review")

type Selector = Callable[[Sequence[str], str], str]


@dataclass(slots=True)
class ReviewResult:
    transactions: list[ParsedTransaction] = field(default_factory=list)
    reviewed_groups: int = 0
    corrected_groups: int = 0


def _default_selector(categories: Sequence[str], default: str) -> str:
    return select_category(
        categories, default=default, hint="Tab completes; an empty answer keeps the suggestion"
    )


def _group_by_description(items: Sequence[ParsedTransaction]) -> dict[str, list[int]]:
    groups: dict[str, list[int]] = defaultdict(list)
    for i, tx in enumerate(items):
        groups[normalize_description(tx.description) or f"__row_{i}"].append(i)
    return groups


def _fmt_amount(value: Decimal, currency: str) -> str:
    return f"{value:,.2f} {currency}"


def _render_group(
    group: Sequence[ParsedTransaction], *, exemplars: int, print_fn: Callable[..., None]
) -> None:
    head = group[0]
    total = sum((tx.amount for tx in group), Decimal("0"))
    total_str = _fmt_amount(total, head.currency)
    print_fn(f"{head.description}  ({len(group)} row(s), total {total_str})")
    for tx in group[:exemplars]:
        print_fn(f"  {tx.date.isoformat()}\t{_fmt_amount(tx.amount, tx.currency)}")
    extra = len(group) - min(len(group), exemplars)
    if extra > 0:
        print_fn(f"  +{extra} more")
    print_fn(f"Suggested: {head.category} ({head.confidence or 'n/a'} confidence)")


def review_expense_categories(
    transactions: Iterable[ParsedTransaction],
    *,
    engine: CategoryRuleEngine,
    selector: Selector | None = None,
    only_uncertain: bool = False,
    exemplars: int = 3,
    print_fn: Callable[..., None] = builtins.print,
) -> ReviewResult:
    """Walk the operator through the suggested categories.

    Parameters
    ----------
    engine:
        Supplies the category vocabulary and, through its learner, remembers
        corrections. Without a learner, corrections only affect the result.
    selector:
        Injection point for tests; receives ``(categories, default)`` and
        returns the chosen category. Defaults to the prompt_toolkit selector.
    only_uncertain:
        Skip groups whose suggestion already has ``high`` confidence.
    """

    items = list(transactions)
    result = ReviewResult(transactions=list(items))
    if not items:
        print_fn("No transactions to review.")
        return result

    choose = selector or _default_selector
    categories = engine.categories()

    for positions in _group_by_description(items).values():
        group = [items[i] for i in positions]
        head = group[0]
        if only_uncertain and head.confidence == "high":
            continue

        _render_group(group, exemplars=exemplars, print_fn=print_fn)
        chosen = choose(categories, head.category).strip() or head.category
        result.reviewed_groups += 1
        print_fn("")

        if chosen == head.category:
            continue

        result.corrected_groups += 1
        for i in positions:
            result.transactions[i] = dataclasses.replace(
                items[i], category=chosen, confidence="high"
            )
        if engine.learner is not None:
            engine.learn(head.description, chosen)
        else:
            _logger.info(
                "no learner configured; correction for %r not remembered", head.description
            )
        if chosen not in categories:
            categories = [*categories, chosen]

    return result


__all__ = ["ReviewResult", "review_expense_categories"]
