"""Eligibility gates — membership renewal and pig addition per pair.

Both decisions are plain conjunctions; every rule must hold.

Renewal:
  - at least 2 completed visits
  - last visit no more than 90 days ago
  - completion rate of at least 70%
  - most recent visit is completed

Pig addition (smaller footprint, decided more often, so tighter on recency
and looser on volume):
  - score of at least 65
  - at least 1 completed visit
  - most recent visit is completed
  - last visit no more than 60 days ago

Missing data fails the rule, it never raises. Changing a threshold is a
policy change: update Settings defaults and DESIGN.md together.

Called by: services/ranking_service.py
Depends on: services/visit_aggregator.py (VisitGroup), config.py
"""

from dataclasses import dataclass, field

from ..config import Settings, get_settings
from .visit_aggregator import VisitGroup


@dataclass
class Eligibility:
    renewal_eligibility: bool = False
    pig_addition_eligibility: bool = False
    renewal_blockers: list[str] = field(default_factory=list)
    pig_addition_blockers: list[str] = field(default_factory=list)


def _failed(rules: dict[str, bool]) -> list[str]:
    return [name for name, ok in rules.items() if not ok]


def evaluate(group: VisitGroup, score: float, settings: Settings | None = None) -> Eligibility:
    s = settings or get_settings()
    last_completed = group.last_visit_completed
    days = group.days_since_last_visit

    renewal_rules = {
        "min_completed_visits": group.completed_visits >= s.renewal_min_completed,
        "recent_visit": group.last_visit is not None and days <= s.renewal_max_days,
        "min_completion_rate": group.completion_rate >= s.renewal_min_completion_rate,
        "last_visit_completed": last_completed,
    }
    pig_rules = {
        "min_score": score >= s.pig_addition_min_score,
        "min_completed_visits": group.completed_visits >= s.pig_addition_min_completed,
        "last_visit_completed": last_completed,
        "recent_visit": group.last_visit is not None and days <= s.pig_addition_max_days,
    }

    renewal_blockers = _failed(renewal_rules)
    pig_blockers = _failed(pig_rules)
    return Eligibility(
        renewal_eligibility=not renewal_blockers,
        pig_addition_eligibility=not pig_blockers,
        renewal_blockers=renewal_blockers,
        pig_addition_blockers=pig_blockers,
    )
