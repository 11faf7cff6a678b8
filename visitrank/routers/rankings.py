"""Ranking API — Project/Association rankings, caretaker selection, reconciliation."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from ..cache.memo_store import cache_stats, invalidate_prefix
from ..config import Settings
from ..dependencies import get_app_settings, get_reference_date
from ..schemas.rankings import (
    CaretakerGroupRequest,
    CaretakerGroupResponse,
    CaretakerMatch,
    CaretakerMatchRequest,
    CaretakerMatchResponse,
    RankingListResponse,
    RankingRequest,
    ReconcileRequest,
    ReconcileResponse,
)

router = APIRouter(tags=["rankings"])


@router.post("/api/rankings", response_model=RankingListResponse)
def list_project_rankings(
    body: RankingRequest,
    as_of: date = Depends(get_reference_date),
    settings: Settings = Depends(get_app_settings),
):
    from ..services.ranking_service import (
        compute_project_rankings,
        filter_rankings,
        summarize,
        summarize_visit_numbers,
    )

    day = body.as_of or as_of
    rankings = compute_project_rankings(body.site_visits, body.projects, as_of=day, settings=settings)
    try:
        visible = filter_rankings(rankings, body.filter, body.search)
    except ValueError as e:
        raise HTTPException(400, str(e))

    return RankingListResponse(
        as_of=day,
        total=len(visible),
        rankings=visible,
        summary=summarize(rankings),
        visit_numbers=summarize_visit_numbers(body.site_visits, settings),
    )


@router.post("/api/rankings/cache/clear")
def clear_ranking_cache():
    from ..services.ranking_service import RANKINGS_CACHE_PREFIX

    cleared = invalidate_prefix(RANKINGS_CACHE_PREFIX)
    return {"ok": True, "cleared": cleared, **cache_stats()}


@router.post("/api/caretakers/groups", response_model=CaretakerGroupResponse)
def group_caretakers(body: CaretakerGroupRequest):
    from ..services.caretaker_service import group_caretakers_by_label, group_caretakers_under_associations

    if body.association_names is None:
        groups = group_caretakers_by_label(body.caretakers)
    else:
        groups = group_caretakers_under_associations(body.caretakers, body.association_names)
    return CaretakerGroupResponse(groups=groups)


@router.post("/api/caretakers/match", response_model=CaretakerMatchResponse)
def match_caretakers_for_visit(body: CaretakerMatchRequest):
    from ..services.caretaker_service import match_caretakers

    rows = match_caretakers(body.caretakers, body.association_name, body.show_all)
    return CaretakerMatchResponse(
        association_name=body.association_name,
        total=len(rows),
        matches=[CaretakerMatch(caretaker=c, association_label=c.association_label, tier=tier) for c, tier in rows],
    )


@router.post("/api/associations/reconcile", response_model=ReconcileResponse)
def reconcile_associations(body: ReconcileRequest):
    from ..services.association_reconciliation import build_reconciliation_report

    return build_reconciliation_report(body.projects, body.site_visits, body.caretakers)
