"""
Project Ranking — score, eligibility and ordering of project/association pairs.

Pipeline per call (total recompute, nothing stored):
  site visits → aggregate per pair → score → eligibility → stable sort

Sorting is by the unrounded score, highest first. Python's sort is stable,
so pairs with equal scores keep the order in which aggregation first saw
them; row position is read as rank by users, so never swap in an unstable
ordering. Filtering is a view over the ranked list and never re-sorts.

Enrichment from the project record (name, enterprise type, association id,
member count, months active) is presentation only and does not affect
scoring.

Called by: routers/rankings.py
Depends on: services/visit_aggregator.py, services/ranking_score.py,
            services/eligibility.py, services/name_matcher.py, cache/
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime

from loguru import logger

from ..cache.decorators import cached_snapshot
from ..config import Settings, get_settings
from ..schemas.rankings import ProjectRanking, RankingSummary, VisitNumberSummary
from ..schemas.records import Association, Project, SiteVisit
from ..utils import round_half_up, truncate
from .eligibility import evaluate
from .name_matcher import EXACT, match_tier
from .ranking_score import EXCELLENT, FAIR, GOOD, POOR, score_group, status_for_score
from .visit_aggregator import VisitDateError, VisitGroup, aggregate, as_calendar_date, parse_visit_date

RANKINGS_CACHE_PREFIX = "rankings"

FILTER_ALL = "all"
FILTER_RENEWAL = "renewal"
FILTER_PIG_ADDITION = "pig_addition"


# ── Enrichment ────────────────────────────────────────────────────────


def find_association(project: Project | None, association_name: str) -> Association | None:
    """Exact (case-insensitive) association first, else the first fuzzy match."""
    if project is None or not project.associations:
        return None
    fuzzy = None
    for association in project.associations:
        tier = match_tier(association.name, association_name)
        if tier == EXACT:
            return association
        if tier and fuzzy is None:
            fuzzy = association
    return fuzzy


def months_active(project: Project | None, as_of: date) -> int:
    """Whole 30-day months since the project start, at least 1."""
    if project is None or not project.start_date:
        return 1
    try:
        started = parse_visit_date(project.start_date)
    except VisitDateError:
        return 1
    return max(1, (as_of - started).days // 30)


def build_ranking(
    group: VisitGroup,
    project: Project | None,
    as_of: date,
    settings: Settings | None = None,
) -> ProjectRanking:
    s = settings or get_settings()
    breakdown = score_group(group, s)
    eligibility = evaluate(group, breakdown.total, s)
    association = find_association(project, group.association_name)
    last = group.last_visit

    if last is not None:
        project_name = last.project_name or (project.project_name if project else "")
        location = last.location or (association.location if association else "")
    else:
        project_name = project.project_name if project else ""
        location = association.location if association else ""

    return ProjectRanking(
        id=f"{group.project_id}-{group.association_name}",
        project_id=group.project_id,
        project_name=project_name,
        association_name=group.association_name,
        association_id=association.id if association and association.id else None,
        location=location,
        visit_count=group.total_visits,
        completed_visits=group.completed_visits,
        completion_rate=group.completion_rate,
        last_visit_date=group.last_visit_date.isoformat() if group.last_visit_date else "Never",
        last_visit_status=group.last_visit_status or "none",
        days_since_last_visit=group.days_since_last_visit,
        status=status_for_score(breakdown.total, s),
        renewal_eligibility=eligibility.renewal_eligibility,
        pig_addition_eligibility=eligibility.pig_addition_eligibility,
        renewal_blockers=eligibility.renewal_blockers,
        pig_addition_blockers=eligibility.pig_addition_blockers,
        score=breakdown.total,
        score_breakdown=breakdown.to_dict(),
        last_visit_purpose=truncate(last.visit_purpose if last else None, 100, "No visits yet"),
        findings_summary=truncate(last.findings if last else None, 150, "No findings recorded"),
        progress_percentage=round_half_up(
            group.completed_visits / max(group.total_visits, s.tracked_visit_count) * 100
        ),
        enterprise_type=project.enterprise_type if project else "Unknown",
        member_count=association.no_active_members if association else 0,
        months_active=months_active(project, as_of),
        invalid_visit_dates=group.invalid_dates,
    )


# ── Ranking ───────────────────────────────────────────────────────────


def rank(
    groups: Iterable[VisitGroup],
    projects: Iterable[Project] = (),
    as_of: date | datetime | None = None,
    settings: Settings | None = None,
) -> list[ProjectRanking]:
    """Build a ranking per group and sort by score, highest first (stable)."""
    s = settings or get_settings()
    today = as_calendar_date(as_of) if as_of is not None else date.today()
    by_id: dict[str, Project] = {}
    for p in projects:
        by_id.setdefault(p.id, p)

    rankings = [build_ranking(g, by_id.get(g.project_id), today, s) for g in groups]
    return sorted(rankings, key=lambda r: r.score, reverse=True)


def filter_rankings(
    rankings: Sequence[ProjectRanking],
    mode: str = FILTER_ALL,
    search: str | None = None,
) -> list[ProjectRanking]:
    """Eligibility / free-text view over an already ranked list (order kept)."""
    if mode not in (FILTER_ALL, FILTER_RENEWAL, FILTER_PIG_ADDITION):
        raise ValueError(f"Unknown ranking filter: {mode}")
    term = (search or "").strip().casefold()

    def keep(r: ProjectRanking) -> bool:
        if mode == FILTER_RENEWAL and not r.renewal_eligibility:
            return False
        if mode == FILTER_PIG_ADDITION and not r.pig_addition_eligibility:
            return False
        if term:
            haystack = (r.project_name, r.association_name, r.location)
            return any(term in (field or "").casefold() for field in haystack)
        return True

    return [r for r in rankings if keep(r)]


def summarize(rankings: Sequence[ProjectRanking]) -> RankingSummary:
    by_status = {EXCELLENT: 0, GOOD: 0, FAIR: 0, POOR: 0}
    for r in rankings:
        by_status[r.status] = by_status.get(r.status, 0) + 1
    return RankingSummary(
        total=len(rankings),
        eligible_for_renewal=sum(1 for r in rankings if r.renewal_eligibility),
        eligible_for_pig_addition=sum(1 for r in rankings if r.pig_addition_eligibility),
        by_status=by_status,
    )


def summarize_visit_numbers(visits: Iterable[SiteVisit], settings: Settings | None = None) -> list[VisitNumberSummary]:
    """Totals per tracked visit number (1st..4th visit)."""
    s = settings or get_settings()
    rows = {n: VisitNumberSummary(visit_number=n) for n in range(1, s.tracked_visit_count + 1)}
    for v in visits:
        row = rows.get(v.visit_number)
        if row is None:
            continue
        row.total += 1
        if v.status == "completed":
            row.completed += 1
    return list(rows.values())


@cached_snapshot(prefix=RANKINGS_CACHE_PREFIX, key_params=["visits", "projects", "as_of", "settings"])
def _compute(
    visits: list[SiteVisit],
    projects: list[Project],
    as_of: date,
    settings: Settings,
) -> list[ProjectRanking]:
    groups = aggregate(visits, as_of, settings)
    rankings = rank(groups.values(), projects, as_of, settings)
    logger.info(
        "Computed project rankings",
        visits=len(visits),
        pairs=len(rankings),
        as_of=as_of.isoformat(),
    )
    return rankings


def compute_project_rankings(
    visits: Iterable[SiteVisit],
    projects: Iterable[Project] = (),
    as_of: date | datetime | None = None,
    settings: Settings | None = None,
    use_cache: bool = True,
) -> list[ProjectRanking]:
    """Rank every (project, association) pair seen in the visit snapshot.

    `as_of` is the reference day for recency; it defaults to today but should
    be passed explicitly wherever reproducibility matters. The memo store
    keeps its own instances; callers always get copies they may modify.
    """
    today = as_calendar_date(as_of) if as_of is not None else date.today()
    rankings = _compute(
        visits=list(visits),
        projects=list(projects),
        as_of=today,
        settings=settings or get_settings(),
        use_cache=use_cache,
    )
    return [r.model_copy(deep=True) for r in rankings]
