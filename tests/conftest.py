"""
conftest.py — Shared Test Fixtures for visitrank

Provides a FastAPI TestClient, a fixed reference day, and factory fixtures
for the console records (SiteVisit, Project, Caretaker).

Business Rules:
- Every test uses the same explicit reference day (no wall-clock recency)
- The ranking memo store is emptied around every test
- Settings are the defaults; tests that change policy build their own Settings

Called by: all test files via pytest autodiscovery
Depends on: visitrank.main, visitrank.schemas.records, visitrank.cache.memo_store
"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from loguru import logger

from visitrank.cache.memo_store import clear_cache
from visitrank.schemas.records import Association, Caretaker, Project, SiteVisit

AS_OF = date(2026, 10, 19)

LONG_FINDINGS = (
    "Feed supply issues resolved. New supplier contracted. Pig growth rates "
    "exceeding expectations."
)


@pytest.fixture(autouse=True)
def _fresh_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture()
def as_of() -> date:
    return AS_OF


@pytest.fixture()
def make_visit():
    """Factory: SiteVisit dated `days_ago` before the reference day."""
    counter = {"n": 0}

    def _make(
        days_ago: int | None = 10,
        status: str = "completed",
        project_id: str = "P1",
        association_name: str = "Farmers Association 1",
        findings: str = "",
        visit_number: int = 1,
        **kwargs,
    ) -> SiteVisit:
        counter["n"] += 1
        if "visit_date" not in kwargs:
            kwargs["visit_date"] = (AS_OF - timedelta(days=days_ago)).isoformat() if days_ago is not None else None
        return SiteVisit(
            id=kwargs.pop("id", f"V{counter['n']}"),
            project_id=project_id,
            association_name=association_name,
            status=status,
            findings=findings,
            visit_number=visit_number,
            **kwargs,
        )

    return _make


@pytest.fixture()
def test_project() -> Project:
    """A project with two associations."""
    return Project(
        id="P1",
        project_name="Swine Fattening Enterprise",
        enterprise_type="Livestock",
        start_date="2026-01-01",
        associations=[
            Association(id="A1", name="Farmers Association 1", location="Barangay Uno", no_active_members=25),
            Association(id="A2", name="Rice Growers", location="Barangay Dos", no_active_members=12),
        ],
    )


@pytest.fixture()
def caretakers() -> list[Caretaker]:
    return [
        Caretaker(id="C1", name="Ana Cruz", slpAssociation="Farmers Association 1"),
        Caretaker(id="C2", firstName="Ben", lastName="Reyes", associationName="farmers association 1"),
        Caretaker(id="C3", name="Carla Santos", slpAssociation="Association of Rice Growers"),
        Caretaker(id="C4", name="Dan Lim", slpAssociation="No Association"),
        Caretaker(id="C5", name="Eva Tan"),
    ]


@pytest.fixture()
def client() -> TestClient:
    from visitrank.main import app

    with TestClient(app) as c:
        yield c
    # lifespan bound a sink to the captured stdout
    logger.remove()
