"""Site Visit Performance Score — 0-100 per (project, association) pair.

Score = Completion×0.40 + Recency×0.30 + Volume×0.20 + Findings×0.10

  - Completion: completion rate of all visits (already 0-100)
  - Recency:    100 - 2 per day since the last visit, floor 0 after 50 days
  - Volume:     25 per visit, capped at 4 visits
  - Findings:   100 when the last visit's findings run past 50 characters

Each sub-score is clamped to 0-100 before weighting, so the total is too.
No rounding here: status bands are applied to the unrounded total and the
integer shown to users is produced at the response boundary.

Status bands (closed lower bounds, highest first):
  excellent ≥ 80, good ≥ 60, fair ≥ 40, poor below

Weights and constants are policy and live in Settings.

Called by: services/ranking_service.py
Depends on: services/visit_aggregator.py (VisitGroup), config.py
"""

from dataclasses import dataclass

from ..config import Settings, get_settings
from ..utils import clamp
from .visit_aggregator import VisitGroup

EXCELLENT = "excellent"
GOOD = "good"
FAIR = "fair"
POOR = "poor"


@dataclass
class ScoreBreakdown:
    completion: float = 0
    recency: float = 0
    volume: float = 0
    findings_quality: float = 0
    total: float = 0

    def to_dict(self) -> dict:
        return {
            "components": {
                "completion": round(self.completion, 2),
                "recency": round(self.recency, 2),
                "volume": round(self.volume, 2),
                "findings_quality": round(self.findings_quality, 2),
            },
            "total": round(self.total, 4),
        }


def recency_score(days_since_last_visit: int, settings: Settings | None = None) -> float:
    s = settings or get_settings()
    return clamp(100 - days_since_last_visit * s.recency_decay_per_day)


def volume_score(total_visits: int, settings: Settings | None = None) -> float:
    s = settings or get_settings()
    return clamp(total_visits * s.volume_points_per_visit)


def findings_score(findings: str | None, settings: Settings | None = None) -> float:
    s = settings or get_settings()
    return 100.0 if findings and len(findings) > s.findings_min_length else 0.0


def score_group(group: VisitGroup, settings: Settings | None = None) -> ScoreBreakdown:
    """Weighted sum of the four sub-scores for one aggregated pair."""
    s = settings or get_settings()
    completion = clamp(group.completion_rate)
    recency = recency_score(group.days_since_last_visit, s)
    volume = volume_score(group.total_visits, s)
    findings = findings_score(group.last_visit.findings if group.last_visit else None, s)

    total = (
        completion * s.weight_completion
        + recency * s.weight_recency
        + volume * s.weight_volume
        + findings * s.weight_findings
    )
    return ScoreBreakdown(
        completion=completion,
        recency=recency,
        volume=volume,
        findings_quality=findings,
        total=clamp(total),
    )


def score(group: VisitGroup, settings: Settings | None = None) -> float:
    return score_group(group, settings).total


def status_for_score(value: float, settings: Settings | None = None) -> str:
    s = settings or get_settings()
    if value >= s.status_excellent_min:
        return EXCELLENT
    if value >= s.status_good_min:
        return GOOD
    if value >= s.status_fair_min:
        return FAIR
    return POOR
