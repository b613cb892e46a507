from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta

from backend.app.models import CandidateRecord, JobRecord, StageId
from backend.app.persistence import SqlitePersistence
from backend.app.settings import load_settings

DEMO_JOBS = [
    ("Backend Engineer", "job_backend"),
    ("Product Designer", "job_design"),
]

DEMO_CANDIDATES = [
    ("Anna Andersson", "anna@example.com", "job_backend", StageId.applied),
    ("Bilal Khan", "bilal@example.com", "job_backend", StageId.screening),
    ("Chen Wei", "chen@example.com", "job_design", StageId.interview),
    ("Dara Okafor", "dara@example.com", "job_design", StageId.offer),
    ("Elena Rossi", "elena@example.com", None, None),
]


def seed(persistence: SqlitePersistence, company_id: str) -> int:
    base = datetime.utcnow() - timedelta(days=len(DEMO_JOBS))
    for index, (title, suffix) in enumerate(DEMO_JOBS):
        persistence.insert_job(
            JobRecord(
                id=f"{company_id}_{suffix}",
                company_id=company_id,
                title=title,
                created_at_utc=base + timedelta(days=index),
            )
        )
    for index, (name, email, job_suffix, stage) in enumerate(DEMO_CANDIDATES):
        candidate_id = f"{company_id}_cand_{index + 1}"
        persistence.insert_candidate(
            CandidateRecord(
                id=candidate_id,
                company_id=company_id,
                name=name,
                email=email,
                phone=f"+46 70 000 00{index:02d}",
                notes="seeded demo candidate",
                job_id=f"{company_id}_{job_suffix}" if job_suffix else None,
                created_at_utc=base + timedelta(hours=index),
            )
        )
        if stage is not None:
            persistence.insert_stage_record(candidate_id, stage.value)
    return len(DEMO_CANDIDATES)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo company for the pipeline board.")
    parser.add_argument("--company-id", default="demo")
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args()

    database_url = args.database_url or load_settings().database_url
    persistence = SqlitePersistence(database_url)
    count = seed(persistence, args.company_id)
    print(f"Seeded {count} candidates for company {args.company_id} into {database_url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
