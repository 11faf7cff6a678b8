"""
schemas/rankings.py — Ranking, caretaker and reconciliation request/response models

ProjectRanking is a derived view recomputed on every call; it is never
stored. `score` stays unrounded inside the service and is rounded half up
only when the model is serialized for a response.

Called by: services/ranking_service.py, routers/rankings.py
Depends on: pydantic, schemas/records.py
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_serializer

from ..utils import round_half_up
from .records import Caretaker, Project, SiteVisit

RankingStatus = Literal["excellent", "good", "fair", "poor"]
RankingFilter = Literal["all", "renewal", "pig_addition"]


# ── Rankings ────────────────────────────────────────────────────────────


class ProjectRanking(BaseModel):
    id: str
    project_id: str
    project_name: str = ""
    association_name: str
    association_id: str | None = None
    location: str = ""
    visit_count: int = 0
    completed_visits: int = 0
    completion_rate: float = 0
    last_visit_date: str = "Never"
    last_visit_status: str = "none"
    days_since_last_visit: int = 365
    status: RankingStatus = "poor"
    renewal_eligibility: bool = False
    pig_addition_eligibility: bool = False
    renewal_blockers: list[str] = Field(default_factory=list)
    pig_addition_blockers: list[str] = Field(default_factory=list)
    score: float = 0
    score_breakdown: dict = Field(default_factory=dict)
    last_visit_purpose: str = "No visits yet"
    findings_summary: str = "No findings recorded"
    progress_percentage: int = 0
    enterprise_type: str = "Unknown"
    member_count: int = 0
    months_active: int = 1
    invalid_visit_dates: int = 0

    @field_serializer("score")
    def display_score(self, v: float) -> int:
        return round_half_up(v)

    @field_serializer("completion_rate")
    def display_rate(self, v: float) -> float:
        return round(v, 1)


class RankingSummary(BaseModel):
    total: int = 0
    eligible_for_renewal: int = 0
    eligible_for_pig_addition: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)


class VisitNumberSummary(BaseModel):
    visit_number: int
    total: int = 0
    completed: int = 0


class RankingRequest(BaseModel):
    site_visits: list[SiteVisit] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    as_of: date | None = None
    filter: RankingFilter = "all"
    search: str | None = None


class RankingListResponse(BaseModel):
    as_of: date
    total: int = 0
    rankings: list[ProjectRanking] = Field(default_factory=list)
    summary: RankingSummary = Field(default_factory=RankingSummary)
    visit_numbers: list[VisitNumberSummary] = Field(default_factory=list)


# ── Caretakers ──────────────────────────────────────────────────────────


class CaretakerGroupRequest(BaseModel):
    caretakers: list[Caretaker] = Field(default_factory=list)
    association_names: list[str] | None = None


class CaretakerGroupResponse(BaseModel):
    groups: dict[str, list[Caretaker]] = Field(default_factory=dict)


class CaretakerMatchRequest(BaseModel):
    caretakers: list[Caretaker] = Field(default_factory=list)
    association_name: str | None = None
    show_all: bool = False


class CaretakerMatch(BaseModel):
    caretaker: Caretaker
    association_label: str
    tier: str | None = None


class CaretakerMatchResponse(BaseModel):
    association_name: str | None = None
    total: int = 0
    matches: list[CaretakerMatch] = Field(default_factory=list)


# ── Association reconciliation ──────────────────────────────────────────


class ReconcileRequest(BaseModel):
    projects: list[Project] = Field(default_factory=list)
    site_visits: list[SiteVisit] = Field(default_factory=list)
    caretakers: list[Caretaker] = Field(default_factory=list)


class AssociationResolution(BaseModel):
    source_id: str
    source_type: Literal["site_visit", "caretaker"]
    project_id: str | None = None
    name: str
    status: Literal["matched", "ambiguous", "unmatched"]
    association_id: str | None = None
    association_name: str | None = None
    tier: str | None = None
    candidates: list[str] = Field(default_factory=list)


class ReconcileResponse(BaseModel):
    site_visits: list[AssociationResolution] = Field(default_factory=list)
    caretakers: list[AssociationResolution] = Field(default_factory=list)
    counts: dict[str, dict[str, int]] = Field(default_factory=dict)
