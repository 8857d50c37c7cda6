"""Counterparty (client) extraction for income rows.

Heuristics run in order on an uppercased, sanitized copy of the description
and the first match wins:

1. employer/platform markers (``OIP``, ``UPWORK``) name the payer and mark
   recurring "full-time" income;
2. a table of known payers (substring match);
3. transfer markers (``BEZGOTOVINSKI PRENOS ...``, ``UPLATA ...``) whose
   trailing text names the payer;
4. otherwise an unknown client, "full-time" when a salary marker
   (``SALARY``, ``PLATA``) is present and "one-time" when not.

``PLATA`` is a substring of ``UPLATA``, so salary markers only decide the
fallback category.
"""

from __future__ import annotations

import re

from .models import UNKNOWN_CLIENT, ClientInfo
from .validation import sanitize_client_name, sanitize_input

# Marker -> canonical client label.
FULL_TIME_MARKERS: tuple[tuple[str, str], ...] = (
    ("OIP", "OIP - Full-time Job"),
    ("UPWORK", "Upwork"),
)
SALARY_MARKERS: tuple[str, ...] = ("SALARY", "PLATA")

# (substring markers, canonical name)
KNOWN_CLIENTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("KRISTINA SAVIC", "KRISTINA"), "Kristina Savic"),
    (("GORAN",), "Goran"),
    (("MOHAMAD", "MOHAMMAD"), "Mohamad"),
)

TRANSFER_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "BEZGOTOVINSKI PRENOS",
        re.compile(r"BEZGOTOVINSKI PRENOS\s+(.+?)(?:\s+\d|$)", re.IGNORECASE),
    ),
    ("UPLATA", re.compile(r"UPLATA\s+(.+?)(?:\s+REF|\s+\d|$)", re.IGNORECASE)),
)

INCOME_KEYWORDS: tuple[str, ...] = (
    "UPLATA",
    "PRENOS",
    "TRANSFER",
    "SALARY",
    "PAYMENT",
    "UPWORK",
    "FREELANCE",
    "CLIENT",
    "INVOICE",
    "OIP",
)

_REF_TOKEN_RE = re.compile(r"REF\s*\d+", re.IGNORECASE)
_DIGITS_RE = re.compile(r"\d+")
_WS_RE = re.compile(r"\s+")


def _name_from_pattern(description: str, pattern: re.Pattern[str]) -> str:
    match = pattern.search(description)
    if not match or not match.group(1):
        return UNKNOWN_CLIENT
    name = _REF_TOKEN_RE.sub("", match.group(1).strip())
    name = _DIGITS_RE.sub("", name)
    name = _WS_RE.sub(" ", name).strip()
    if len(name) <= 2:
        return UNKNOWN_CLIENT
    return sanitize_client_name(name)


def extract_client(description: str) -> ClientInfo:
    """Infer who paid and whether the income looks like salary."""

    desc = sanitize_input(description.upper())

    for marker, label in FULL_TIME_MARKERS:
        if marker in desc:
            return ClientInfo(client=label, category="full-time")

    for markers, name in KNOWN_CLIENTS:
        if any(m in desc for m in markers):
            return ClientInfo(client=sanitize_client_name(name), category="one-time")

    for marker, pattern in TRANSFER_PATTERNS:
        if marker in desc:
            return ClientInfo(client=_name_from_pattern(description, pattern), category="one-time")

    if any(marker in desc for marker in SALARY_MARKERS):
        return ClientInfo(client=UNKNOWN_CLIENT, category="full-time")
    return ClientInfo(client=UNKNOWN_CLIENT, category="one-time")


def is_positive_income(description: str) -> bool:
    """Return True when the description carries an income keyword."""

    upper = description.upper()
    return any(keyword in upper for keyword in INCOME_KEYWORDS)


__all__ = [
    "FULL_TIME_MARKERS",
    "SALARY_MARKERS",
    "KNOWN_CLIENTS",
    "INCOME_KEYWORDS",
    "extract_client",
    "is_positive_income",
]
