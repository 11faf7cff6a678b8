"""
Association reconciliation — map free-text association names to canonical ids.

Site visits and caretakers reference associations by typed name. This is the
one-time migration step that resolves those names to the Association ids
held on Projects, so joins can move to ids and the fuzzy matcher can leave
the hot path.

Resolution of one name against a candidate set:
  - an exact (case-insensitive, trimmed) name wins outright → matched
  - otherwise exactly one fuzzy candidate → matched
  - several fuzzy candidates → ambiguous (needs a human)
  - none → unmatched

Site visits are resolved against their own project's associations only;
caretakers have no project, so they are resolved against every association.

Called by: routers/rankings.py, cli.py
Depends on: services/name_matcher.py, schemas/records.py, schemas/rankings.py
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from ..schemas.rankings import AssociationResolution, ReconcileResponse
from ..schemas.records import UNASSIGNED, Association, Caretaker, Project, SiteVisit
from .name_matcher import EXACT, match_tier

MATCHED = "matched"
AMBIGUOUS = "ambiguous"
UNMATCHED = "unmatched"


@dataclass
class Resolution:
    status: str = UNMATCHED
    association: Association | None = None
    tier: str | None = None
    candidates: list[Association] = field(default_factory=list)


def _distinct_by_id(associations: Iterable[Association]) -> list[Association]:
    seen: set[str] = set()
    out: list[Association] = []
    for a in associations:
        key = a.id or a.name
        if key in seen:
            continue
        seen.add(key)
        out.append(a)
    return out


def resolve_association(name: str | None, associations: Sequence[Association]) -> Resolution:
    if not name or not name.strip() or name.strip() == UNASSIGNED:
        return Resolution()

    fuzzy: list[tuple[Association, str]] = []
    for association in associations:
        tier = match_tier(name, association.name)
        if tier == EXACT:
            return Resolution(status=MATCHED, association=association, tier=EXACT, candidates=[association])
        if tier:
            fuzzy.append((association, tier))

    if len(fuzzy) == 1:
        association, tier = fuzzy[0]
        return Resolution(status=MATCHED, association=association, tier=tier, candidates=[association])
    if fuzzy:
        return Resolution(status=AMBIGUOUS, candidates=[a for a, _ in fuzzy])
    return Resolution()


def _to_row(
    source_id: str,
    source_type: str,
    name: str,
    resolution: Resolution,
    project_id: str | None = None,
) -> AssociationResolution:
    chosen = resolution.association
    return AssociationResolution(
        source_id=source_id,
        source_type=source_type,
        project_id=project_id,
        name=name,
        status=resolution.status,
        association_id=chosen.id if chosen else None,
        association_name=chosen.name if chosen else None,
        tier=resolution.tier,
        candidates=[a.name for a in resolution.candidates] if resolution.status == AMBIGUOUS else [],
    )


def plan_site_visit_migration(
    visits: Iterable[SiteVisit],
    projects: Iterable[Project],
) -> list[AssociationResolution]:
    """Resolve each visit's association name within its own project."""
    by_project = {p.id: p.associations for p in projects}
    rows = []
    for v in visits:
        resolution = resolve_association(v.association_name, by_project.get(v.project_id, []))
        rows.append(_to_row(v.id, "site_visit", v.association_name, resolution, project_id=v.project_id))
    return rows


def plan_caretaker_migration(
    caretakers: Iterable[Caretaker],
    projects: Iterable[Project],
) -> list[AssociationResolution]:
    """Resolve each caretaker's association label against every association."""
    every = _distinct_by_id(a for p in projects for a in p.associations)
    rows = []
    for c in caretakers:
        label = c.association_label
        rows.append(_to_row(c.id, "caretaker", label, resolve_association(label, every)))
    return rows


def _count(rows: Sequence[AssociationResolution]) -> dict[str, int]:
    counts = Counter(r.status for r in rows)
    return {status: counts.get(status, 0) for status in (MATCHED, AMBIGUOUS, UNMATCHED)}


def build_reconciliation_report(
    projects: Iterable[Project],
    site_visits: Iterable[SiteVisit] = (),
    caretakers: Iterable[Caretaker] = (),
) -> ReconcileResponse:
    projects = list(projects)
    visit_rows = plan_site_visit_migration(site_visits, projects)
    caretaker_rows = plan_caretaker_migration(caretakers, projects)
    counts = {"site_visits": _count(visit_rows), "caretakers": _count(caretaker_rows)}
    logger.info("Association reconciliation planned", **counts)
    return ReconcileResponse(site_visits=visit_rows, caretakers=caretaker_rows, counts=counts)
