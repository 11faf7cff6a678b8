"""Association name matching — reconciles free-text association names.

Caretakers and site visits reference associations by the name somebody typed,
not by id. Three tiers are tried in order and the first hit wins:

  1. exact       — case-insensitive equality after trimming
  2. substring   — either name contains the other
  3. normalized  — leading/trailing "association" token stripped, whitespace
                   collapsed, then equality or containment

Examples:
    "Farmers Coop"                vs "farmers coop"   → exact
    "Rice Growers Association"    vs "Rice Growers"   → substring
    "Association of Rice Growers" vs "Rice Growers"   → substring
    "Association Rice  Growers"   vs "rice growers association" → normalized
    ""                            vs "Rice Growers"   → no match

No tier depends on argument order, so matches(a, b) == matches(b, a).

Called by: services/caretaker_service.py, services/ranking_service.py,
           services/association_reconciliation.py
Depends on: nothing (pure)
"""

import re

from loguru import logger

EXACT = "exact"
SUBSTRING = "substring"
NORMALIZED = "normalized"

_LEADING_TOKEN = re.compile(r"^association\b\s*", re.IGNORECASE)
_TRAILING_TOKEN = re.compile(r"\s*\bassociation$", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def normalize_association_name(name: str | None) -> str:
    """Casefold, strip the "association" affix and collapse whitespace.

    Examples:
        "Association of Rice Growers" → "of rice growers"
        "Farmers  Association"        → "farmers"
        "Association"                 → ""
    """
    if not name:
        return ""
    n = _WHITESPACE.sub(" ", name.strip()).casefold()
    n = _LEADING_TOKEN.sub("", n)
    n = _TRAILING_TOKEN.sub("", n)
    return n.strip()


def _contains_either(a: str, b: str) -> bool:
    return a in b or b in a


def match_tier(candidate: str | None, target: str | None) -> str | None:
    """Return the first tier under which the two names match, else None."""
    a = (candidate or "").strip().casefold()
    b = (target or "").strip().casefold()
    if not a or not b:
        return None

    if a == b:
        return EXACT
    if _contains_either(a, b):
        return SUBSTRING

    na = normalize_association_name(a)
    nb = normalize_association_name(b)
    if na == nb:
        return NORMALIZED
    # A bare "Association" strips to "" and would otherwise contain-match everything
    if na and nb and _contains_either(na, nb):
        return NORMALIZED
    return None


def matches(candidate: str | None, target: str | None) -> bool:
    """True when the names refer to the same association under any tier."""
    tier = match_tier(candidate, target)
    if tier:
        logger.debug("Association name match", candidate=candidate, target=target, tier=tier)
    return tier is not None
