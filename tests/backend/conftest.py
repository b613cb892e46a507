from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, Optional

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from backend.app.models import CandidateRecord, JobRecord
from backend.app.persistence import SqlitePersistence

COMPANY_ID = "acme"


def db_url(path: Path) -> str:
    return f"sqlite:///{path.as_posix()}"


def make_job(job_id: str, title: str, *, company_id: str = COMPANY_ID, age_days: int = 0) -> JobRecord:
    return JobRecord(
        id=job_id,
        company_id=company_id,
        title=title,
        created_at_utc=datetime(2026, 1, 10) - timedelta(days=age_days),
    )


def make_candidate(
    candidate_id: str,
    name: str,
    *,
    email: Optional[str] = None,
    job_id: Optional[str] = None,
    company_id: str = COMPANY_ID,
    order: int = 0,
) -> CandidateRecord:
    return CandidateRecord(
        id=candidate_id,
        company_id=company_id,
        name=name,
        email=email or f"{name.split()[0].lower()}@x.com",
        job_id=job_id,
        created_at_utc=datetime(2026, 1, 1) + timedelta(minutes=order),
    )


@pytest.fixture()
def persistence(tmp_path: Path) -> SqlitePersistence:
    return SqlitePersistence(db_url(tmp_path / "board.sqlite3"))


@pytest.fixture()
def seeded(persistence: SqlitePersistence) -> SqlitePersistence:
    persistence.insert_job(make_job("J1", "Backend Engineer", age_days=2))
    persistence.insert_job(make_job("J2", "Designer"))
    persistence.insert_candidate(make_candidate("1", "A Person", email="a@x.com", job_id="J1", order=1))
    persistence.insert_candidate(make_candidate("2", "B Person", email="b@x.com", job_id="J2", order=2))
    persistence.insert_stage_record("2", "interview")
    return persistence


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, seeded: SqlitePersistence) -> Iterator[TestClient]:
    monkeypatch.setenv("DATABASE_URL", seeded.database_url)
    monkeypatch.setenv("DRAG_ACTIVATION_DISTANCE_PX", "5")
    app = create_app()
    # one event loop for the whole client so persist tasks outlive a request
    with TestClient(app) as test_client:
        yield test_client
