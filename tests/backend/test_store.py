from __future__ import annotations

import pytest

from backend.app.models import BoardData, CandidateRecord, StageAssignmentRecord, StageId, utc_now
from backend.app.persistence import DataAccessError, SqlitePersistence
from backend.app.store import BoardDataStore, StoreNotFoundError, build_cards


class FailingFetchPersistence:
    def __init__(self) -> None:
        self.calls = 0

    def fetch_board_data(self, company_id: str) -> BoardData:
        self.calls += 1
        raise DataAccessError(f"failed to load board for company {company_id}")


def candidate(candidate_id: str, job_id=None) -> CandidateRecord:
    return CandidateRecord(
        id=candidate_id,
        company_id="acme",
        name=f"Candidate {candidate_id}",
        email=f"c{candidate_id}@x.com",
        job_id=job_id,
        created_at_utc=utc_now(),
    )


def test_build_cards_merges_stage_and_job_title() -> None:
    data = BoardData(
        candidates=[candidate("1", "J1"), candidate("2", "missing"), candidate("3")],
        jobs=[],
        stages=[
            StageAssignmentRecord(candidate_id="1", stage="screening"),
            StageAssignmentRecord(candidate_id="1", stage="offer"),
        ],
    )
    cards = {card.id: card for card in build_cards(data)}
    assert cards["1"].current_stage == StageId.offer
    assert cards["2"].current_stage == StageId.applied
    assert cards["2"].job_title is None
    assert cards["3"].job_id is None


def test_unknown_stage_record_falls_back_to_applied(caplog) -> None:
    data = BoardData(
        candidates=[candidate("1")],
        stages=[StageAssignmentRecord(candidate_id="1", stage="archived")],
    )
    with caplog.at_level("WARNING", logger="pipeline_board"):
        cards = build_cards(data)
    assert cards[0].current_stage == StageId.applied
    assert "unknown_stage_record" in caplog.text


@pytest.mark.asyncio
async def test_load_enriches_candidates(seeded: SqlitePersistence) -> None:
    store = BoardDataStore(seeded)
    result = await store.load("acme")

    assert [card.id for card in result["candidates"]] == ["1", "2"]
    assert [job.id for job in result["jobs"]] == ["J2", "J1"]
    assert store.get_card("1").current_stage == StageId.applied
    assert store.get_card("1").job_title == "Backend Engineer"
    assert store.get_card("2").current_stage == StageId.interview
    assert store.revision == 1


@pytest.mark.asyncio
async def test_load_does_not_write_stage_records(seeded: SqlitePersistence) -> None:
    store = BoardDataStore(seeded)
    await store.load("acme")
    assert seeded.get_candidate_stage("1") is None


@pytest.mark.asyncio
async def test_load_scopes_to_company(seeded: SqlitePersistence) -> None:
    store = BoardDataStore(seeded)
    result = await store.load("other-company")
    assert result == {"candidates": [], "jobs": []}


@pytest.mark.asyncio
async def test_load_failure_propagates_without_retry() -> None:
    persistence = FailingFetchPersistence()
    store = BoardDataStore(persistence)
    with pytest.raises(DataAccessError):
        await store.load("acme")
    assert persistence.calls == 1
    assert store.cards == {}


@pytest.mark.asyncio
async def test_stage_of_item_and_set_stage_notifies(seeded: SqlitePersistence) -> None:
    store = BoardDataStore(seeded)
    await store.load("acme")
    updates: list[dict] = []
    store.subscribe("card_updated", lambda **kwargs: updates.append(kwargs))

    assert store.stage_of_item("offer") == StageId.offer
    assert store.stage_of_item("2") == StageId.interview
    assert store.stage_of_item("nope") is None

    store.set_stage("1", StageId.hired)
    assert store.stage_of_item("1") == StageId.hired
    assert updates == [
        {
            "candidate_id": "1",
            "from_stage": StageId.applied,
            "to_stage": StageId.hired,
            "revision": 2,
        }
    ]
    with pytest.raises(StoreNotFoundError):
        store.get_card("nope")


@pytest.mark.asyncio
async def test_broken_subscriber_does_not_break_mutation(seeded: SqlitePersistence, caplog) -> None:
    store = BoardDataStore(seeded)
    await store.load("acme")

    def broken(**kwargs) -> None:
        raise RuntimeError("subscriber exploded")

    store.subscribe("card_updated", broken)
    store.set_stage("1", StageId.screening)
    assert store.get_card("1").current_stage == StageId.screening
    assert "subscriber_failed" in caplog.text
