"""
Caretaker selection — grouping and filtering caretakers by association name.

Caretakers carry a typed association label rather than an association id,
so every association-scoped view goes through the name matcher.

Business Rules:
- Label comes from slpAssociation, then associationName ("No Association"
  counts as unset); a caretaker with neither is "Unassigned"
- "Unassigned" caretakers never appear under an association heading
- Filtering with no target association (or with show_all) returns everyone
- Under several headings, a caretaker is listed only under the first it matches

Called by: routers/rankings.py
Depends on: services/name_matcher.py, schemas/records.py
"""

from collections.abc import Iterable

from loguru import logger

from ..schemas.records import UNASSIGNED, Caretaker
from .name_matcher import match_tier


def caretaker_association_label(caretaker: Caretaker) -> str:
    return caretaker.association_label


def caretaker_full_name(caretaker: Caretaker) -> str:
    return caretaker.full_name


def group_caretakers_by_label(caretakers: Iterable[Caretaker]) -> dict[str, list[Caretaker]]:
    """Group by the literal association label, headings sorted A-Z."""
    grouped: dict[str, list[Caretaker]] = {}
    for c in caretakers:
        grouped.setdefault(c.association_label, []).append(c)
    return {k: grouped[k] for k in sorted(grouped, key=str.casefold)}


def group_caretakers_under_associations(
    caretakers: Iterable[Caretaker],
    association_names: Iterable[str],
) -> dict[str, list[Caretaker]]:
    """Place each caretaker under the first canonical association it matches."""
    headings = [n for n in association_names if n and n.strip()]
    grouped: dict[str, list[Caretaker]] = {name: [] for name in headings}
    grouped[UNASSIGNED] = []

    for c in caretakers:
        label = c.association_label
        heading = UNASSIGNED
        if label != UNASSIGNED:
            heading = next((h for h in headings if match_tier(label, h)), UNASSIGNED)
        grouped[heading].append(c)

    logger.debug(
        "Grouped caretakers",
        headings=len(headings),
        unassigned=len(grouped[UNASSIGNED]),
    )
    return grouped


def match_caretakers(
    caretakers: Iterable[Caretaker],
    association_name: str | None,
    show_all: bool = False,
) -> list[tuple[Caretaker, str | None]]:
    """Caretakers offered for a site visit, each with the tier that matched."""
    caretakers = list(caretakers)
    target = (association_name or "").strip()
    if show_all or not target:
        return [(c, None) for c in caretakers]

    matched: list[tuple[Caretaker, str | None]] = []
    for c in caretakers:
        label = c.association_label
        if label == UNASSIGNED:
            continue
        tier = match_tier(label, target)
        if tier:
            matched.append((c, tier))

    logger.info(
        "Filtered caretakers by association",
        association=target,
        total=len(caretakers),
        matched=len(matched),
    )
    return matched


def filter_caretakers_for_association(
    caretakers: Iterable[Caretaker],
    association_name: str | None,
    show_all: bool = False,
) -> list[Caretaker]:
    return [c for c, _ in match_caretakers(caretakers, association_name, show_all)]
