from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.utcnow()


class StageId(str, Enum):
    applied = "applied"
    screening = "screening"
    interview = "interview"
    offer = "offer"
    hired = "hired"
    rejected = "rejected"


class Stage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: StageId
    label: str
    color: str
    background: str


class JobRecord(BaseModel):
    id: str
    company_id: str
    title: str
    created_at_utc: datetime


class CandidateRecord(BaseModel):
    id: str
    company_id: str
    name: str
    email: str
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None
    job_id: Optional[str] = None
    created_at_utc: datetime


class StageAssignmentRecord(BaseModel):
    candidate_id: str
    stage: str


class BoardData(BaseModel):
    candidates: list[CandidateRecord] = Field(default_factory=list)
    jobs: list[JobRecord] = Field(default_factory=list)
    stages: list[StageAssignmentRecord] = Field(default_factory=list)


class CandidateCard(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None
    job_id: Optional[str] = None
    job_title: Optional[str] = None
    current_stage: StageId = StageId.applied


class JobOption(BaseModel):
    id: str
    title: str


class StageChangeIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate_id: str
    from_stage: StageId
    to_stage: StageId


class DragState(str, Enum):
    idle = "idle"
    dragging = "dragging"


class BoardStatus(str, Enum):
    loading = "loading"
    ready = "ready"
    error = "error"


class BoardColumn(BaseModel):
    stage: Stage
    cards: list[CandidateCard]
    count: int
    highlighted: bool = False
    show_drop_placeholder: bool = False


class BoardView(BaseModel):
    company_id: str
    status: BoardStatus
    error: Optional[str] = None
    columns: list[BoardColumn] = Field(default_factory=list)
    jobs: list[JobOption] = Field(default_factory=list)
    job_filter: str = "all"
    search_text: str = ""
    visible_count: int = 0
    total_count: int = 0
    filtered: bool = False
    summary: str = ""
    empty_message: Optional[str] = None
    drag_overlay: Optional[CandidateCard] = None
    highlighted_stage: Optional[StageId] = None
    revision: int = 0


class RectPayload(BaseModel):
    left: float
    top: float
    width: float = Field(ge=0)
    height: float = Field(ge=0)


class DropTargetPayload(BaseModel):
    id: str = Field(min_length=1, max_length=120)
    rect: RectPayload


class LayoutUpdateRequest(BaseModel):
    targets: list[DropTargetPayload] = Field(default_factory=list)


class LayoutUpdateResponse(BaseModel):
    company_id: str
    target_count: int


class FilterUpdateRequest(BaseModel):
    job_id: Optional[str] = Field(default=None, max_length=120)
    search: Optional[str] = Field(default=None, max_length=200)


class PointerEventType(str, Enum):
    down = "down"
    move = "move"
    up = "up"
    cancel = "cancel"


class PointerEventRequest(BaseModel):
    type: PointerEventType
    x: float = 0.0
    y: float = 0.0
    candidate_id: Optional[str] = None
    card_rect: Optional[RectPayload] = None


class PointerEventResponse(BaseModel):
    drag_state: DragState
    hover_target_id: Optional[str]
    intent: Optional[StageChangeIntent] = None
    board: BoardView


class StageMoveRequest(BaseModel):
    to_stage: StageId


class StageMoveResponse(BaseModel):
    candidate_id: str
    from_stage: StageId
    stage: StageId
    changed: bool
    persisted: bool
