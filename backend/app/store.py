from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Callable, Optional

from backend.app.models import (
    BoardData,
    CandidateCard,
    JobOption,
    JobRecord,
    StageId,
)
from backend.app.observability import logger
from backend.app.stages import DEFAULT_STAGE, StageNotFoundError, is_stage_id, stage_by_id

if TYPE_CHECKING:
    from backend.app.persistence import SqlitePersistence


class StoreNotFoundError(Exception):
    pass


def resolve_current_stage(raw_stage: Optional[str]) -> StageId:
    if raw_stage is None:
        return DEFAULT_STAGE
    try:
        return stage_by_id(raw_stage).id
    except StageNotFoundError:
        logger.warning("unknown_stage_record stage=%s fallback=%s", raw_stage, DEFAULT_STAGE.value)
        return DEFAULT_STAGE


def build_cards(data: BoardData) -> list[CandidateCard]:
    job_titles = {job.id: job.title for job in data.jobs}
    # later rows win: the last assignment is the current stage
    latest_stage: dict[str, str] = {}
    for record in data.stages:
        latest_stage[record.candidate_id] = record.stage
    return [
        CandidateCard(
            id=candidate.id,
            name=candidate.name,
            email=candidate.email,
            phone=candidate.phone,
            linkedin_url=candidate.linkedin_url,
            notes=candidate.notes,
            job_id=candidate.job_id,
            job_title=job_titles.get(candidate.job_id) if candidate.job_id else None,
            current_stage=resolve_current_stage(latest_stage.get(candidate.id)),
        )
        for candidate in data.candidates
    ]


class BoardDataStore:
    """In-memory board state for one company, rebuilt on every load."""

    def __init__(self, persistence: "SqlitePersistence") -> None:
        self.persistence = persistence
        self.company_id: Optional[str] = None
        self.cards: dict[str, CandidateCard] = {}
        self.jobs: list[JobRecord] = []
        self.revision = 0
        self.subscribers: dict[str, list[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable) -> None:
        self.subscribers.setdefault(event_type, []).append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        for callback in self.subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception:
                logger.exception("subscriber_failed event=%s", event_type)

    async def load(self, company_id: str) -> dict[str, list]:
        data = await asyncio.to_thread(self.persistence.fetch_board_data, company_id)
        cards = build_cards(data)
        self.company_id = company_id
        self.cards = {card.id: card for card in cards}
        self.jobs = list(data.jobs)
        self.revision += 1
        logger.info(
            "board_loaded company_id=%s candidates=%s jobs=%s",
            company_id,
            len(cards),
            len(self.jobs),
        )
        self._emit("board_loaded", company_id=company_id, revision=self.revision)
        return {"candidates": cards, "jobs": self.jobs}

    def all_cards(self) -> list[CandidateCard]:
        return list(self.cards.values())

    def job_options(self) -> list[JobOption]:
        return [JobOption(id=job.id, title=job.title) for job in self.jobs]

    def get_card(self, candidate_id: str) -> CandidateCard:
        card = self.cards.get(candidate_id)
        if not card:
            raise StoreNotFoundError(f"candidate not found: {candidate_id}")
        return card

    def stage_of_item(self, item_id: str) -> Optional[StageId]:
        if is_stage_id(item_id):
            return StageId(item_id)
        card = self.cards.get(item_id)
        return card.current_stage if card else None

    def set_stage(self, candidate_id: str, stage: StageId) -> CandidateCard:
        card = self.get_card(candidate_id)
        previous = card.current_stage
        card.current_stage = stage
        self.revision += 1
        self._emit(
            "card_updated",
            candidate_id=candidate_id,
            from_stage=previous,
            to_stage=stage,
            revision=self.revision,
        )
        return card

    def report_failure(self, candidate_id: str, stage: StageId, error: Exception) -> None:
        self._emit("stage_change_failed", candidate_id=candidate_id, stage=stage, error=error)
