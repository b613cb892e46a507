"""
Pointer gesture state machine for the board.

Raw pointer events come in, drag lifecycle events go out:

    drag_start   candidate_id, from_stage
    drag_over    candidate_id, target_id
    drag_cancel  candidate_id
    drag_end     candidate_id, target_id, to_stage
    stage_change intent

A drag only starts once the pointer has travelled further than the
activation distance, so plain clicks on a card never move it.
"""
from __future__ import annotations

from typing import Callable, Iterable, Optional

from backend.app.collision import DropTarget, Point, Rect, closest_corners
from backend.app.models import DragState, StageChangeIntent, StageId
from backend.app.observability import logger

DEFAULT_ACTIVATION_DISTANCE_PX = 5.0

StageResolver = Callable[[str], Optional[StageId]]


class DragInteractionController:
    def __init__(
        self,
        resolve_stage: StageResolver,
        *,
        activation_distance: float = DEFAULT_ACTIVATION_DISTANCE_PX,
    ) -> None:
        self.resolve_stage = resolve_stage
        self.activation_distance = activation_distance
        self.subscribers: dict[str, list[Callable]] = {}
        self.state = DragState.idle
        self.drop_targets: list[DropTarget] = []
        self.active_candidate_id: Optional[str] = None
        self.from_stage: Optional[StageId] = None
        self.hover_target_id: Optional[str] = None
        self._pending_candidate_id: Optional[str] = None
        self._origin: Optional[Point] = None
        self._card_rect: Optional[Rect] = None

    def subscribe(self, event_type: str, callback: Callable) -> None:
        self.subscribers.setdefault(event_type, []).append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        for callback in self.subscribers.get(event_type, []):
            callback(**kwargs)

    def set_drop_targets(self, targets: Iterable[DropTarget]) -> None:
        self.drop_targets = list(targets)

    @property
    def is_dragging(self) -> bool:
        return self.state == DragState.dragging

    def pointer_down(self, candidate_id: str, point: Point, card_rect: Rect) -> None:
        if self.state != DragState.idle:
            # a second pointer while dragging aborts the first gesture
            self.cancel()
        self._pending_candidate_id = candidate_id
        self._origin = point
        self._card_rect = card_rect

    def pointer_move(self, point: Point) -> Optional[str]:
        if self._origin is None:
            return None
        if self.state == DragState.idle:
            if self._origin.distance_to(point) <= self.activation_distance:
                return None
            self._activate()
        self._update_hover(point)
        return self.hover_target_id

    def pointer_up(self) -> Optional[StageChangeIntent]:
        if self.state != DragState.dragging:
            self._reset()
            return None

        candidate_id = self.active_candidate_id
        from_stage = self.from_stage
        target_id = self.hover_target_id
        self._reset()

        to_stage = self.resolve_stage(target_id) if target_id else None
        self._emit("drag_end", candidate_id=candidate_id, target_id=target_id, to_stage=to_stage)
        if to_stage is None or from_stage is None or to_stage == from_stage:
            logger.debug(
                "drag_noop candidate_id=%s target_id=%s stage=%s",
                candidate_id,
                target_id,
                from_stage.value if from_stage else None,
            )
            return None

        intent = StageChangeIntent(
            candidate_id=candidate_id,
            from_stage=from_stage,
            to_stage=to_stage,
        )
        self._emit("stage_change", intent=intent)
        return intent

    def cancel(self) -> None:
        was_dragging = self.state == DragState.dragging
        candidate_id = self.active_candidate_id
        self._reset()
        if was_dragging:
            logger.info("drag_cancelled candidate_id=%s", candidate_id)
            self._emit("drag_cancel", candidate_id=candidate_id)

    def _activate(self) -> None:
        candidate_id = self._pending_candidate_id
        self.state = DragState.dragging
        self.active_candidate_id = candidate_id
        self.from_stage = self.resolve_stage(candidate_id) if candidate_id else None
        self.hover_target_id = None
        self._emit("drag_start", candidate_id=candidate_id, from_stage=self.from_stage)

    def _update_hover(self, point: Point) -> None:
        dragged = self._card_rect.translated(
            point.x - self._origin.x,
            point.y - self._origin.y,
        )
        target_id = closest_corners(dragged, self.drop_targets)
        if target_id != self.hover_target_id:
            self.hover_target_id = target_id
            self._emit("drag_over", candidate_id=self.active_candidate_id, target_id=target_id)

    def _reset(self) -> None:
        self.state = DragState.idle
        self.active_candidate_id = None
        self.from_stage = None
        self.hover_target_id = None
        self._pending_candidate_id = None
        self._origin = None
        self._card_rect = None
