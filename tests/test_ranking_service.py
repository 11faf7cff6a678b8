"""
test_ranking_service.py — Tests for visitrank/services/ranking_service.py

Covers:
- compute_project_rankings(): end-to-end pipeline, ordering, idempotence
- enrichment from Project / Association records
- filter_rankings(): eligibility modes and free-text search
- summarize() / summarize_visit_numbers()
- memoization on the snapshot content

Called by: pytest
Depends on: visitrank/services/ranking_service.py, conftest.py
"""

from datetime import date

import pytest

from visitrank.cache.memo_store import cache_stats
from visitrank.config import Settings
from visitrank.schemas.records import Association, Project
from visitrank.services.ranking_service import (
    FILTER_ALL,
    FILTER_PIG_ADDITION,
    FILTER_RENEWAL,
    compute_project_rankings,
    filter_rankings,
    find_association,
    months_active,
    summarize,
    summarize_visit_numbers,
)

LONG_FINDINGS = "Feed supply issues resolved. New supplier contracted. Pig growth on track."


def _scenario(make_visit):
    return [
        make_visit(10, "completed", findings="f" * 80, visit_number=3),
        make_visit(40, "completed", visit_number=2),
        make_visit(95, "scheduled", visit_number=1),
    ]


# ── 1. End-to-end ────────────────────────────────────────────────────


class TestEndToEnd:
    def test_three_visit_scenario(self, make_visit, as_of):
        [r] = compute_project_rankings(_scenario(make_visit), as_of=as_of)
        assert r.project_id == "P1"
        assert r.association_name == "Farmers Association 1"
        assert r.visit_count == 3
        assert r.completed_visits == 2
        assert r.completion_rate == pytest.approx(66.6667, abs=1e-3)
        assert r.days_since_last_visit == 10
        assert r.score == pytest.approx(75.6667, abs=1e-3)
        assert r.status == "good"
        assert r.renewal_eligibility is False
        assert r.renewal_blockers == ["min_completion_rate"]
        # the most recent visit is completed, so every pig addition rule holds
        assert r.pig_addition_eligibility is True

    def test_scheduled_most_recent_visit_fails_both_gates(self, make_visit, as_of):
        visits = [
            make_visit(10, "scheduled", findings="f" * 80, visit_number=3),
            make_visit(40, "completed", visit_number=2),
            make_visit(95, "completed", visit_number=1),
        ]
        [r] = compute_project_rankings(visits, as_of=as_of)
        assert r.score == pytest.approx(75.6667, abs=1e-3)
        assert r.status == "good"
        assert r.renewal_eligibility is False
        assert r.pig_addition_eligibility is False
        assert r.pig_addition_blockers == ["last_visit_completed"]
        assert r.last_visit_status == "scheduled"

    def test_serialized_score_is_rounded_half_up(self, make_visit, as_of):
        [r] = compute_project_rankings(_scenario(make_visit), as_of=as_of)
        data = r.model_dump()
        assert data["score"] == 76
        assert data["completion_rate"] == 66.7
        assert r.score != 76

    def test_no_visits_no_rankings(self, test_project, as_of):
        assert compute_project_rankings([], [test_project], as_of=as_of) == []

    def test_projects_without_visits_are_unranked(self, make_visit, test_project, as_of):
        other = Project(id="P2", project_name="Poultry")
        rankings = compute_project_rankings([make_visit()], [test_project, other], as_of=as_of)
        assert [r.project_id for r in rankings] == ["P1"]


# ── 2. Ordering ──────────────────────────────────────────────────────


class TestOrdering:
    def test_sorted_by_score_descending(self, make_visit, as_of):
        visits = [
            make_visit(80, "scheduled", project_id="P3"),
            make_visit(1, "completed", project_id="P1", findings=LONG_FINDINGS),
            make_visit(20, "completed", project_id="P2"),
        ]
        rankings = compute_project_rankings(visits, as_of=as_of)
        assert [r.project_id for r in rankings] == ["P1", "P2", "P3"]
        scores = [r.score for r in rankings]
        assert scores == sorted(scores, reverse=True)

    def test_equal_scores_keep_first_seen_order(self, make_visit, as_of):
        visits = [
            make_visit(5, project_id="P9"),
            make_visit(5, project_id="P1"),
            make_visit(5, project_id="P5"),
        ]
        rankings = compute_project_rankings(visits, as_of=as_of)
        assert [r.project_id for r in rankings] == ["P9", "P1", "P5"]

    def test_sorts_on_unrounded_score(self, make_visit, as_of):
        # 57.0 vs 57.15: equal once displayed, P2 still ranks first
        slow_decay = Settings(recency_decay_per_day=0.5)
        visits = []
        for project_id, latest in (("P1", 20), ("P2", 19)):
            visits.append(make_visit(latest, "completed", project_id=project_id))
            visits.extend(make_visit(30 + n, "scheduled", project_id=project_id) for n in range(3))
        rankings = compute_project_rankings(visits, as_of=as_of, settings=slow_decay)
        assert [r.project_id for r in rankings] == ["P2", "P1"]
        assert rankings[0].model_dump()["score"] == rankings[1].model_dump()["score"] == 57

    def test_idempotent(self, make_visit, as_of):
        visits = _scenario(make_visit) + [make_visit(3, project_id="P2")]
        first = compute_project_rankings(visits, as_of=as_of, use_cache=False)
        second = compute_project_rankings(visits, as_of=as_of, use_cache=False)
        assert [r.model_dump() for r in first] == [r.model_dump() for r in second]


# ── 3. Enrichment ────────────────────────────────────────────────────


class TestEnrichment:
    def test_project_and_association_fields(self, make_visit, test_project, as_of):
        [r] = compute_project_rankings(_scenario(make_visit), [test_project], as_of=as_of)
        assert r.id == "P1-Farmers Association 1"
        assert r.project_name == "Swine Fattening Enterprise"
        assert r.association_id == "A1"
        assert r.location == "Barangay Uno"
        assert r.member_count == 25
        assert r.enterprise_type == "Livestock"
        assert r.months_active == 9
        assert r.progress_percentage == 50
        assert r.last_visit_date == "2026-10-09"

    def test_visit_fields_win_over_project(self, make_visit, test_project, as_of):
        visit = make_visit(project_name="Renamed Project", location="Sitio Tres")
        [r] = compute_project_rankings([visit], [test_project], as_of=as_of)
        assert r.project_name == "Renamed Project"
        assert r.location == "Sitio Tres"

    def test_summaries_and_fallbacks(self, make_visit, as_of):
        [r] = compute_project_rankings([make_visit(findings="")], as_of=as_of)
        assert r.findings_summary == "No findings recorded"
        assert r.last_visit_purpose == "No visits yet"
        assert r.enterprise_type == "Unknown"
        assert r.association_id is None
        assert r.months_active == 1

    def test_findings_summary_truncated(self, make_visit, as_of):
        [r] = compute_project_rankings([make_visit(findings="x" * 400)], as_of=as_of)
        assert len(r.findings_summary) == 150

    def test_enrichment_does_not_change_score(self, make_visit, test_project, as_of):
        visits = _scenario(make_visit)
        bare = compute_project_rankings(visits, as_of=as_of, use_cache=False)[0]
        rich = compute_project_rankings(visits, [test_project], as_of=as_of, use_cache=False)[0]
        assert bare.score == rich.score
        assert bare.status == rich.status

    def test_invalid_dates_reported(self, make_visit, as_of):
        visits = [make_visit(visit_date="n/a"), make_visit(4)]
        [r] = compute_project_rankings(visits, as_of=as_of)
        assert r.invalid_visit_dates == 1
        assert r.days_since_last_visit == 4

    def test_find_association_prefers_exact(self):
        project = Project(
            id="P1",
            associations=[
                Association(id="A1", name="Rice Growers Association"),
                Association(id="A2", name="rice growers"),
            ],
        )
        assert find_association(project, "Rice Growers").id == "A2"
        assert find_association(project, "Association of Rice Growers").id == "A1"
        assert find_association(project, "Poultry") is None
        assert find_association(None, "Rice Growers") is None

    def test_months_active_bad_start_date(self, as_of):
        assert months_active(Project(start_date="someday"), as_of) == 1
        assert months_active(Project(start_date="2026-10-01"), as_of) == 1


# ── 4. Filtering ─────────────────────────────────────────────────────


class TestFilterRankings:
    @pytest.fixture()
    def rankings(self, make_visit, as_of):
        visits = [
            make_visit(5, "completed", project_id="P1", findings=LONG_FINDINGS, location="Barangay Uno"),
            make_visit(20, "completed", project_id="P1"),
            make_visit(70, "completed", project_id="P2", association_name="Rice Growers"),
            make_visit(75, "completed", project_id="P2", association_name="Rice Growers"),
            make_visit(300, "scheduled", project_id="P3", association_name="Poultry Farmers"),
        ]
        return compute_project_rankings(visits, as_of=as_of)

    def test_all_returns_everything_in_order(self, rankings):
        assert filter_rankings(rankings, FILTER_ALL) == rankings

    def test_renewal_view(self, rankings):
        assert [r.project_id for r in filter_rankings(rankings, FILTER_RENEWAL)] == ["P1", "P2"]

    def test_pig_addition_view(self, rankings):
        assert [r.project_id for r in filter_rankings(rankings, FILTER_PIG_ADDITION)] == ["P1"]

    def test_search_is_case_insensitive(self, rankings):
        assert [r.project_id for r in filter_rankings(rankings, search="rice")] == ["P2"]
        assert [r.project_id for r in filter_rankings(rankings, search="BARANGAY")] == ["P1"]

    def test_blank_search_ignored(self, rankings):
        assert len(filter_rankings(rankings, search="   ")) == 3

    def test_unknown_mode_raises(self, rankings):
        with pytest.raises(ValueError):
            filter_rankings(rankings, "everything")


# ── 5. Summaries ─────────────────────────────────────────────────────


class TestSummaries:
    def test_summarize_counts(self, make_visit, as_of):
        visits = _scenario(make_visit) + [make_visit(200, "cancelled", project_id="P2")]
        summary = summarize(compute_project_rankings(visits, as_of=as_of))
        assert summary.total == 2
        assert summary.eligible_for_renewal == 0
        assert summary.eligible_for_pig_addition == 1
        assert summary.by_status == {"excellent": 0, "good": 1, "fair": 0, "poor": 1}

    def test_visit_number_totals(self, make_visit):
        visits = _scenario(make_visit) + [make_visit(visit_number=3, status="scheduled")]
        rows = summarize_visit_numbers(visits)
        assert [(r.visit_number, r.total, r.completed) for r in rows] == [
            (1, 1, 0),
            (2, 1, 1),
            (3, 2, 1),
            (4, 0, 0),
        ]


# ── 6. Memoization ───────────────────────────────────────────────────


class TestMemoization:
    def test_same_snapshot_hits_cache(self, make_visit, as_of):
        visits = _scenario(make_visit)
        compute_project_rankings(visits, as_of=as_of)
        compute_project_rankings(visits, as_of=as_of)
        stats = cache_stats()
        assert stats["misses"] == 1
        assert stats["hits"] == 1
        assert stats["entries"] == 1

    def test_different_day_is_a_new_entry(self, make_visit, as_of):
        visits = _scenario(make_visit)
        compute_project_rankings(visits, as_of=as_of)
        later = compute_project_rankings(visits, as_of=date(2026, 10, 29))
        assert later[0].days_since_last_visit == 20
        assert cache_stats()["entries"] == 2

    def test_policy_change_is_a_new_entry(self, make_visit, as_of):
        visits = _scenario(make_visit)
        compute_project_rankings(visits, as_of=as_of)
        strict = Settings(pig_addition_min_score=90)
        [r] = compute_project_rankings(visits, as_of=as_of, settings=strict)
        assert r.pig_addition_eligibility is False
        assert cache_stats()["entries"] == 2

    def test_bypass(self, make_visit, as_of):
        compute_project_rankings(_scenario(make_visit), as_of=as_of, use_cache=False)
        assert cache_stats()["entries"] == 0

    def test_returned_list_is_a_copy(self, make_visit, as_of):
        visits = _scenario(make_visit)
        first = compute_project_rankings(visits, as_of=as_of)
        first.clear()
        assert len(compute_project_rankings(visits, as_of=as_of)) == 1

    def test_changing_a_result_does_not_change_the_next_call(self, make_visit, as_of):
        visits = _scenario(make_visit)
        first = compute_project_rankings(visits, as_of=as_of)
        first[0].score = 0.0
        first[0].renewal_blockers.append("edited")

        second = compute_project_rankings(visits, as_of=as_of)
        assert cache_stats()["hits"] == 1
        assert second[0].score == pytest.approx(75.6667, abs=1e-3)
        assert second[0].renewal_blockers == ["min_completion_rate"]

        second[0].status = "poor"
        assert compute_project_rankings(visits, as_of=as_of)[0].status == "good"

    def test_cache_disabled_by_injected_settings(self, make_visit, as_of):
        off = Settings(ranking_cache_enabled=False)
        visits = _scenario(make_visit)
        compute_project_rankings(visits, as_of=as_of, settings=off)
        compute_project_rankings(visits, as_of=as_of, settings=off)
        assert cache_stats() == {"entries": 0, "hits": 0, "misses": 0, "evictions": 0}

    def test_entry_limit_from_injected_settings(self, make_visit, as_of):
        one_entry = Settings(ranking_cache_max_entries=1)
        visits = _scenario(make_visit)
        compute_project_rankings(visits, as_of=as_of, settings=one_entry)
        compute_project_rankings(visits, as_of=date(2026, 10, 20), settings=one_entry)
        stats = cache_stats()
        assert stats["entries"] == 1
        assert stats["evictions"] == 1
