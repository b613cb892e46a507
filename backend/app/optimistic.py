from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Generic, Optional, TypeVar

from backend.app.models import StageId
from backend.app.observability import MetricsRegistry, logger
from backend.app.persistence import PersistenceError

if TYPE_CHECKING:
    from backend.app.persistence import SqlitePersistence
    from backend.app.store import BoardDataStore

T = TypeVar("T")

_UNSET = object()


@dataclass
class OptimisticChange(Generic[T]):
    """
    Snapshot a value, write the new one right away, then run the remote
    effect. If the effect raises one of ``errors`` the snapshot is written
    back, unless ``may_restore`` says a newer change owns the value now.
    """

    read: Callable[[], T]
    write: Callable[[T], None]
    effect: Callable[[T], Awaitable[None]]
    restore_to: object = _UNSET
    may_restore: Callable[[], bool] = lambda: True
    errors: tuple[type[BaseException], ...] = (Exception,)
    previous: Optional[T] = field(default=None, init=False)
    value: Optional[T] = field(default=None, init=False)
    error: Optional[BaseException] = field(default=None, init=False)
    restored: bool = field(default=False, init=False)

    def apply(self, value: T) -> T:
        self.previous = self.read() if self.restore_to is _UNSET else self.restore_to
        self.value = value
        self.write(value)
        return self.previous

    async def settle(self) -> bool:
        try:
            await self.effect(self.value)
        except self.errors as exc:
            self.error = exc
            if self.may_restore():
                self.write(self.previous)
                self.restored = True
            return False
        return True


class OptimisticMutationEngine:
    def __init__(
        self,
        store: "BoardDataStore",
        persistence: "SqlitePersistence",
        *,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.store = store
        self.persistence = persistence
        self.metrics = metrics
        self._sequence: dict[str, int] = {}
        self._pending: set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def apply_stage_change(
        self, candidate_id: str, from_stage: StageId, to_stage: StageId
    ) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        sequence = self._sequence.get(candidate_id, 0) + 1
        self._sequence[candidate_id] = sequence

        change: OptimisticChange[StageId] = OptimisticChange(
            read=lambda: self.store.get_card(candidate_id).current_stage,
            write=lambda stage: self.store.set_stage(candidate_id, stage),
            effect=lambda stage: asyncio.to_thread(
                self.persistence.set_candidate_stage, candidate_id, stage
            ),
            restore_to=from_stage,
            may_restore=lambda: self._sequence.get(candidate_id) == sequence,
            errors=(PersistenceError,),
        )
        change.apply(to_stage)
        logger.info(
            "stage_change_applied candidate_id=%s from=%s to=%s",
            candidate_id,
            from_stage.value,
            to_stage.value,
        )

        task = loop.create_task(self._settle(candidate_id, change))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _settle(self, candidate_id: str, change: OptimisticChange[StageId]) -> bool:
        if await change.settle():
            logger.info(
                "stage_change_persisted candidate_id=%s stage=%s",
                candidate_id,
                change.value.value,
            )
            self._record("persisted")
            return True

        if change.restored:
            logger.warning(
                "stage_change_rolled_back candidate_id=%s stage=%s restored=%s error=%s",
                candidate_id,
                change.value.value,
                change.previous.value,
                change.error,
            )
            self._record("rolled_back")
        else:
            logger.warning(
                "stage_change_rollback_skipped candidate_id=%s stage=%s error=%s",
                candidate_id,
                change.value.value,
                change.error,
            )
            self._record("rollback_skipped")
        self.store.report_failure(candidate_id, change.value, change.error)
        return False

    async def settle(self) -> list[bool]:
        if not self._pending:
            return []
        return list(await asyncio.gather(*list(self._pending)))

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.record_stage_change(outcome)
