from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Iterable, Optional

from backend.app.collision import DropTarget
from backend.app.drag import DEFAULT_ACTIVATION_DISTANCE_PX, DragInteractionController
from backend.app.filters import ALL_JOBS, apply_filters, is_filtered
from backend.app.models import (
    BoardColumn,
    BoardStatus,
    BoardView,
    CandidateCard,
    StageChangeIntent,
    StageId,
)
from backend.app.observability import MetricsRegistry, logger
from backend.app.optimistic import OptimisticMutationEngine
from backend.app.persistence import DataAccessError
from backend.app.stages import all_stages
from backend.app.store import BoardDataStore

if TYPE_CHECKING:
    from backend.app.persistence import SqlitePersistence

NO_CANDIDATES_MESSAGE = "No candidates yet. Add candidates from the dashboard."
NO_MATCHES_MESSAGE = "No candidates match your current filters."


def partition_by_stage(cards: Iterable[CandidateCard]) -> dict[StageId, list[CandidateCard]]:
    columns: dict[StageId, list[CandidateCard]] = {stage.id: [] for stage in all_stages()}
    for card in cards:
        columns[card.current_stage].append(card)
    return columns


def candidate_summary(visible: int, filtered: bool) -> str:
    noun = "candidate" if visible == 1 else "candidates"
    suffix = " (filtered)" if filtered else ""
    return f"{visible} {noun}{suffix}"


class BoardController:
    def __init__(
        self,
        company_id: str,
        persistence: "SqlitePersistence",
        *,
        activation_distance: float = DEFAULT_ACTIVATION_DISTANCE_PX,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.company_id = company_id
        self.store = BoardDataStore(persistence)
        self.engine = OptimisticMutationEngine(self.store, persistence, metrics=metrics)
        self.drag = DragInteractionController(
            self.store.stage_of_item,
            activation_distance=activation_distance,
        )
        self.drag.subscribe("stage_change", self._on_stage_change)
        self.status = BoardStatus.loading
        self.error: Optional[str] = None
        self.job_filter = ALL_JOBS
        self.search_text = ""
        self.last_task: Optional[asyncio.Task] = None

    async def load(self) -> BoardView:
        self.status = BoardStatus.loading
        self.error = None
        try:
            await self.store.load(self.company_id)
        except DataAccessError as exc:
            logger.error("board_load_failed company_id=%s error=%s", self.company_id, exc)
            self.store.cards = {}
            self.store.jobs = []
            self.status = BoardStatus.error
            self.error = str(exc)
        else:
            self.status = BoardStatus.ready
        return self.render()

    def set_job_filter(self, job_id: Optional[str]) -> None:
        self.job_filter = job_id or ALL_JOBS

    def set_search_text(self, text: Optional[str]) -> None:
        self.search_text = text or ""

    def set_drop_targets(self, targets: Iterable[DropTarget]) -> None:
        self.drag.set_drop_targets(targets)

    def visible_cards(self) -> list[CandidateCard]:
        return apply_filters(self.store.all_cards(), self.job_filter, self.search_text)

    def move_candidate(self, candidate_id: str, to_stage: StageId) -> Optional[asyncio.Task]:
        card = self.store.get_card(candidate_id)
        if card.current_stage == to_stage:
            return None
        return self._dispatch(
            StageChangeIntent(
                candidate_id=candidate_id,
                from_stage=card.current_stage,
                to_stage=to_stage,
            )
        )

    async def settle(self) -> list[bool]:
        return await self.engine.settle()

    def _on_stage_change(self, intent: StageChangeIntent) -> None:
        self._dispatch(intent)

    def _dispatch(self, intent: StageChangeIntent) -> asyncio.Task:
        self.last_task = self.engine.apply_stage_change(
            intent.candidate_id, intent.from_stage, intent.to_stage
        )
        return self.last_task

    def highlighted_stage(self) -> Optional[StageId]:
        if not self.drag.is_dragging or not self.drag.hover_target_id:
            return None
        over_stage = self.store.stage_of_item(self.drag.hover_target_id)
        active = self.store.cards.get(self.drag.active_candidate_id or "")
        if over_stage is None or (active and active.current_stage == over_stage):
            return None
        return over_stage

    def render(self) -> BoardView:
        view = BoardView(
            company_id=self.company_id,
            status=self.status,
            error=self.error,
            job_filter=self.job_filter,
            search_text=self.search_text,
            revision=self.store.revision,
        )
        if self.status != BoardStatus.ready:
            return view

        # snapshot: later optimistic writes must not leak into a rendered view
        visible = [card.model_copy() for card in self.visible_cards()]
        filtered = is_filtered(self.job_filter, self.search_text)
        highlighted = self.highlighted_stage()
        partitions = partition_by_stage(visible)
        view.columns = [
            BoardColumn(
                stage=stage,
                cards=partitions[stage.id],
                count=len(partitions[stage.id]),
                highlighted=stage.id == highlighted,
                show_drop_placeholder=not partitions[stage.id],
            )
            for stage in all_stages()
        ]
        view.jobs = self.store.job_options()
        view.visible_count = len(visible)
        view.total_count = len(self.store.cards)
        view.filtered = filtered
        view.summary = candidate_summary(len(visible), filtered)
        if not visible:
            view.empty_message = NO_CANDIDATES_MESSAGE if not self.store.cards else NO_MATCHES_MESSAGE
        view.highlighted_stage = highlighted
        if self.drag.is_dragging and self.drag.active_candidate_id:
            active = self.store.cards.get(self.drag.active_candidate_id)
            view.drag_overlay = active.model_copy() if active else None
        return view
