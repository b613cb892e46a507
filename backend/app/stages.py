from __future__ import annotations

from typing import Union

from backend.app.models import Stage, StageId


class StageNotFoundError(Exception):
    pass


STAGES: tuple[Stage, ...] = (
    Stage(id=StageId.applied, label="Applied", color="#6c757d", background="#f8f9fa"),
    Stage(id=StageId.screening, label="Screening", color="#0d6efd", background="#e8f0fe"),
    Stage(id=StageId.interview, label="Interview", color="#fd7e14", background="#fff3e0"),
    Stage(id=StageId.offer, label="Offer", color="#6f42c1", background="#f3e8ff"),
    Stage(id=StageId.hired, label="Hired", color="#198754", background="#e8f5e9"),
    Stage(id=StageId.rejected, label="Rejected", color="#dc3545", background="#fde8ea"),
)

DEFAULT_STAGE = STAGES[0].id

_STAGE_MAP = {stage.id.value: stage for stage in STAGES}


def all_stages() -> tuple[Stage, ...]:
    return STAGES


def stage_by_id(stage_id: Union[StageId, str]) -> Stage:
    key = stage_id.value if isinstance(stage_id, StageId) else stage_id
    stage = _STAGE_MAP.get(key) if isinstance(key, str) else None
    if stage is None:
        raise StageNotFoundError(f"stage not found: {stage_id}")
    return stage


def is_stage_id(value: object) -> bool:
    if isinstance(value, StageId):
        return True
    return isinstance(value, str) and value in _STAGE_MAP
