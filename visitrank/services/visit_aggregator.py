"""
Visit Aggregation — groups site visits per (project_id, association_name).

The grouping key is the literal pair as stored on the visit; association
names on visits are treated as canonical at write time (fuzzy resolution is
only done on the caretaker side).

Per group:
  - total / completed visit counts and completion rate (0-100)
  - visits ordered most recent first; the head is the "last visit"
  - days since the last visit, relative to an explicit `as_of` date

Ordering of visits sharing the most recent date: higher visit_number first,
then input order. Visits whose date cannot be parsed sort after every dated
visit and count as infinitely stale; one bad record never aborts the batch.

Called by: services/ranking_service.py
Depends on: schemas/records.py, config.py
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from loguru import logger

from ..config import Settings, get_settings
from ..schemas.records import SiteVisit

COMPLETED = "completed"

GroupKey = tuple[str, str]


class VisitDateError(ValueError):
    """A visit_date that cannot be read as a calendar date."""


def parse_visit_date(value: date | datetime | str | None) -> date:
    """Read a visit date. Accepts date, datetime, 'YYYY-MM-DD' or an ISO timestamp.

    Raises VisitDateError for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise VisitDateError(f"missing visit date: {value!r}")
    raw = value.strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as e:
        raise VisitDateError(f"unparseable visit date: {raw!r}") from e


def as_calendar_date(as_of: date | datetime) -> date:
    return as_of.date() if isinstance(as_of, datetime) else as_of


@dataclass
class VisitGroup:
    project_id: str
    association_name: str
    visits: list[SiteVisit] = field(default_factory=list)
    total_visits: int = 0
    completed_visits: int = 0
    completion_rate: float = 0.0
    last_visit: SiteVisit | None = None
    last_visit_date: date | None = None
    days_since_last_visit: int = 365
    invalid_dates: int = 0

    @property
    def key(self) -> GroupKey:
        return (self.project_id, self.association_name)

    @property
    def last_visit_status(self) -> str | None:
        return self.last_visit.status if self.last_visit else None

    @property
    def last_visit_completed(self) -> bool:
        return self.last_visit_status == COMPLETED


def _order_most_recent_first(visits: list[SiteVisit]) -> list[tuple[SiteVisit, date | None]]:
    dated: list[tuple[date, int, int, SiteVisit]] = []
    undated: list[tuple[SiteVisit, None]] = []

    for position, visit in enumerate(visits):
        try:
            visit_day = parse_visit_date(visit.visit_date)
        except VisitDateError as e:
            logger.warning(
                "Visit treated as stale", visit_id=visit.id, project_id=visit.project_id, reason=str(e)
            )
            undated.append((visit, None))
            continue
        dated.append((visit_day, visit.visit_number, position, visit))

    # Newest date, then highest visit number, then input order
    dated.sort(key=lambda row: (-row[0].toordinal(), -row[1], row[2]))
    return [(row[3], row[0]) for row in dated] + undated


def summarize_group(
    project_id: str,
    association_name: str,
    visits: list[SiteVisit],
    as_of: date | datetime,
    settings: Settings | None = None,
) -> VisitGroup:
    """Derive the statistics of one pair from its visits."""
    s = settings or get_settings()
    today = as_calendar_date(as_of)

    rows = _order_most_recent_first(visits)
    ordered = [visit for visit, _ in rows]
    invalid = sum(1 for _, visit_day in rows if visit_day is None)
    total = len(ordered)
    completed = sum(1 for v in ordered if v.status == COMPLETED)
    completion_rate = (completed / total) * 100 if total > 0 else 0.0

    last_visit, last_date = rows[0] if rows else (None, None)
    days = (today - last_date).days if last_date else s.stale_days_sentinel

    return VisitGroup(
        project_id=project_id,
        association_name=association_name,
        visits=ordered,
        total_visits=total,
        completed_visits=completed,
        completion_rate=completion_rate,
        last_visit=last_visit,
        last_visit_date=last_date,
        days_since_last_visit=days,
        invalid_dates=invalid,
    )


def group_visits(visits: Iterable[SiteVisit]) -> dict[GroupKey, list[SiteVisit]]:
    """Bucket visits by literal (project_id, association_name), first-seen order."""
    buckets: dict[GroupKey, list[SiteVisit]] = {}
    for visit in visits:
        buckets.setdefault((visit.project_id, visit.association_name), []).append(visit)
    return buckets


def aggregate(
    visits: Iterable[SiteVisit],
    as_of: date | datetime,
    settings: Settings | None = None,
) -> dict[GroupKey, VisitGroup]:
    """Group visits and compute per-pair statistics.

    Projects with no visits never appear; they are unranked, not an error.
    """
    groups = {
        key: summarize_group(key[0], key[1], bucket, as_of, settings)
        for key, bucket in group_visits(visits).items()
    }
    invalid = sum(g.invalid_dates for g in groups.values())
    logger.debug("Aggregated site visits", groups=len(groups), invalid_dates=invalid)
    return groups
