from __future__ import annotations

from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from backend.app.models import (
    BoardData,
    CandidateRecord,
    JobRecord,
    StageAssignmentRecord,
    StageId,
    utc_now,
)


class DataAccessError(Exception):
    pass


class PersistenceError(Exception):
    pass


def _normalize_database_url(database_url: str) -> str:
    value = database_url.strip()
    if value.startswith("sqlite:///"):
        sqlite_path = value[len("sqlite:///") :].split("?", 1)[0]
        if sqlite_path and sqlite_path != ":memory:":
            path = Path(sqlite_path)
            if path.parent:
                path.parent.mkdir(parents=True, exist_ok=True)
        return value
    if "://" in value:
        return value
    path = Path(value)
    if path.parent:
        path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{str(path).replace(chr(92), '/')}"


class SqlitePersistence:
    """
    Board data access over SQLAlchemy. Works with SQLite and PostgreSQL URLs.

    Only two operations belong to the board itself: ``fetch_board_data`` and
    ``set_candidate_stage``. The insert helpers stand in for the record CRUD
    forms that live outside the board and are used by seeding and tests.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = _normalize_database_url(database_url)
        self._lock = Lock()
        self.engine: Engine = create_engine(
            self.database_url,
            future=True,
            pool_pre_ping=True,
        )
        self.metadata = MetaData()
        self.jobs = Table(
            "jobs",
            self.metadata,
            Column("id", String(120), primary_key=True),
            Column("company_id", String(120), nullable=False, index=True),
            Column("title", String(200), nullable=False),
            Column("created_at_utc", DateTime, nullable=False),
        )
        self.candidates = Table(
            "candidates",
            self.metadata,
            Column("id", String(120), primary_key=True),
            Column("company_id", String(120), nullable=False, index=True),
            Column("name", String(200), nullable=False),
            Column("email", String(255), nullable=False),
            Column("phone", String(40), nullable=True),
            Column("linkedin_url", String(500), nullable=True),
            Column("notes", Text, nullable=True),
            Column("job_id", String(120), nullable=True),
            Column("created_at_utc", DateTime, nullable=False),
        )
        self.candidate_stages = Table(
            "candidate_stages",
            self.metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("candidate_id", String(120), nullable=False, index=True),
            Column("stage", String(50), nullable=False),
            Column("updated_at_utc", DateTime, nullable=False),
        )
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.metadata.create_all(self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(select(1))
            return True
        except SQLAlchemyError:
            return False

    def fetch_board_data(self, company_id: str) -> BoardData:
        try:
            with self._lock:
                with self.engine.connect() as conn:
                    job_rows = conn.execute(
                        select(self.jobs)
                        .where(self.jobs.c.company_id == company_id)
                        .order_by(self.jobs.c.created_at_utc.desc())
                    ).all()
                    candidate_rows = conn.execute(
                        select(self.candidates)
                        .where(self.candidates.c.company_id == company_id)
                        .order_by(self.candidates.c.created_at_utc.asc(), self.candidates.c.id)
                    ).all()
                    candidate_ids = [row.id for row in candidate_rows]
                    stage_rows = []
                    if candidate_ids:
                        stage_rows = conn.execute(
                            select(
                                self.candidate_stages.c.candidate_id,
                                self.candidate_stages.c.stage,
                            )
                            .where(self.candidate_stages.c.candidate_id.in_(candidate_ids))
                            .order_by(self.candidate_stages.c.id.asc())
                        ).all()
        except SQLAlchemyError as exc:
            raise DataAccessError(f"failed to load board for company {company_id}") from exc

        return BoardData(
            jobs=[
                JobRecord(
                    id=row.id,
                    company_id=row.company_id,
                    title=row.title,
                    created_at_utc=row.created_at_utc or datetime.utcnow(),
                )
                for row in job_rows
            ],
            candidates=[
                CandidateRecord(
                    id=row.id,
                    company_id=row.company_id,
                    name=row.name,
                    email=row.email,
                    phone=row.phone,
                    linkedin_url=row.linkedin_url,
                    notes=row.notes,
                    job_id=row.job_id,
                    created_at_utc=row.created_at_utc or datetime.utcnow(),
                )
                for row in candidate_rows
            ],
            stages=[
                StageAssignmentRecord(candidate_id=row.candidate_id, stage=row.stage)
                for row in stage_rows
            ],
        )

    def set_candidate_stage(self, candidate_id: str, stage: StageId) -> None:
        now = utc_now()
        try:
            with self._lock:
                with self.engine.begin() as conn:
                    existing = conn.execute(
                        select(self.candidate_stages.c.id).where(
                            self.candidate_stages.c.candidate_id == candidate_id
                        )
                    ).first()
                    if existing:
                        conn.execute(
                            self.candidate_stages.update()
                            .where(self.candidate_stages.c.candidate_id == candidate_id)
                            .values(stage=stage.value, updated_at_utc=now)
                        )
                    else:
                        conn.execute(
                            self.candidate_stages.insert().values(
                                candidate_id=candidate_id,
                                stage=stage.value,
                                updated_at_utc=now,
                            )
                        )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"failed to store stage {stage.value} for candidate {candidate_id}"
            ) from exc

    def get_candidate_stage(self, candidate_id: str) -> Optional[str]:
        with self._lock:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(self.candidate_stages.c.stage)
                    .where(self.candidate_stages.c.candidate_id == candidate_id)
                    .order_by(self.candidate_stages.c.id.desc())
                    .limit(1)
                ).first()
        return row[0] if row else None

    def insert_job(self, record: JobRecord) -> None:
        with self._lock:
            with self.engine.begin() as conn:
                conn.execute(self.jobs.insert().values(**record.model_dump()))

    def insert_candidate(self, record: CandidateRecord) -> None:
        with self._lock:
            with self.engine.begin() as conn:
                conn.execute(self.candidates.insert().values(**record.model_dump()))

    def insert_stage_record(self, candidate_id: str, stage: str) -> None:
        with self._lock:
            with self.engine.begin() as conn:
                conn.execute(
                    self.candidate_stages.insert().values(
                        candidate_id=candidate_id,
                        stage=stage,
                        updated_at_utc=utc_now(),
                    )
                )
