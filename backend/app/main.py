from __future__ import annotations

import asyncio

from fastapi import APIRouter, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from backend.app.board import BoardController
from backend.app.collision import DropTarget, Point, Rect
from backend.app.models import (
    BoardStatus,
    BoardView,
    FilterUpdateRequest,
    LayoutUpdateRequest,
    LayoutUpdateResponse,
    PointerEventRequest,
    PointerEventResponse,
    PointerEventType,
    RectPayload,
    Stage,
    StageMoveRequest,
    StageMoveResponse,
)
from backend.app.observability import MetricsRegistry, configure_logging, observe_request
from backend.app.persistence import SqlitePersistence
from backend.app.settings import Settings, load_settings
from backend.app.stages import all_stages
from backend.app.store import StoreNotFoundError


def create_app() -> FastAPI:
    app = FastAPI(title="Hiring Pipeline Board API", version="0.1.0")
    settings = load_settings()
    configure_logging(settings.log_level)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.persistence = SqlitePersistence(settings.database_url)
    app.state.metrics = MetricsRegistry()
    app.state.boards = {}
    app.state.board_locks = {}

    @app.middleware("http")
    async def observability_middleware(request: Request, call_next):
        return await observe_request(request, call_next, metrics=app.state.metrics)

    app.include_router(build_router())
    return app


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_persistence(request: Request) -> SqlitePersistence:
    return request.app.state.persistence


def get_metrics(request: Request) -> MetricsRegistry:
    return request.app.state.metrics


def new_board(request: Request, company_id: str) -> BoardController:
    board = BoardController(
        company_id,
        get_persistence(request),
        activation_distance=get_settings(request).drag_activation_distance_px,
        metrics=get_metrics(request),
    )
    request.app.state.boards[company_id] = board
    return board


def board_lock(request: Request, company_id: str) -> asyncio.Lock:
    return request.app.state.board_locks.setdefault(company_id, asyncio.Lock())


async def get_board(request: Request, company_id: str) -> BoardController:
    async with board_lock(request, company_id):
        board = request.app.state.boards.get(company_id)
        if board is None:
            board = new_board(request, company_id)
            await board.load()
    return board


def require_ready(board: BoardController) -> None:
    if board.status != BoardStatus.ready:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"board not ready: {board.status.value}",
        )


def to_rect(payload: RectPayload) -> Rect:
    return Rect(left=payload.left, top=payload.top, width=payload.width, height=payload.height)


def build_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @router.get("/health/ready")
    def readiness(request: Request) -> dict[str, str]:
        if not get_persistence(request).ping():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="database unavailable",
            )
        return {"status": "ready"}

    @router.get("/metrics", response_class=PlainTextResponse)
    def metrics(request: Request) -> Response:
        registry = get_metrics(request)
        return PlainTextResponse(registry.to_prometheus())

    @router.get("/stages", response_model=list[Stage])
    def stages() -> list[Stage]:
        return list(all_stages())

    @router.post("/boards/{company_id}/load", response_model=BoardView)
    async def load_board(company_id: str, request: Request) -> BoardView:
        async with board_lock(request, company_id):
            previous = request.app.state.boards.get(company_id)
            board = new_board(request, company_id)
            if previous is not None:
                board.set_job_filter(previous.job_filter)
                board.set_search_text(previous.search_text)
                board.set_drop_targets(previous.drag.drop_targets)
            return await board.load()

    @router.get("/boards/{company_id}", response_model=BoardView)
    async def render_board(company_id: str, request: Request) -> BoardView:
        board = await get_board(request, company_id)
        return board.render()

    @router.put("/boards/{company_id}/filters", response_model=BoardView)
    async def update_filters(
        company_id: str,
        payload: FilterUpdateRequest,
        request: Request,
    ) -> BoardView:
        board = await get_board(request, company_id)
        if payload.job_id is not None:
            board.set_job_filter(payload.job_id)
        if payload.search is not None:
            board.set_search_text(payload.search)
        return board.render()

    @router.put("/boards/{company_id}/layout", response_model=LayoutUpdateResponse)
    async def update_layout(
        company_id: str,
        payload: LayoutUpdateRequest,
        request: Request,
    ) -> LayoutUpdateResponse:
        board = await get_board(request, company_id)
        board.set_drop_targets(
            DropTarget(id=target.id, rect=to_rect(target.rect)) for target in payload.targets
        )
        return LayoutUpdateResponse(company_id=company_id, target_count=len(payload.targets))

    @router.post("/boards/{company_id}/pointer", response_model=PointerEventResponse)
    async def pointer_event(
        company_id: str,
        payload: PointerEventRequest,
        request: Request,
    ) -> PointerEventResponse:
        board = await get_board(request, company_id)
        require_ready(board)
        point = Point(payload.x, payload.y)
        intent = None
        if payload.type == PointerEventType.down:
            if not payload.candidate_id or payload.card_rect is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="pointer down requires candidate_id and card_rect",
                )
            if payload.candidate_id not in board.store.cards:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail=f"candidate not found: {payload.candidate_id}",
                )
            board.drag.pointer_down(payload.candidate_id, point, to_rect(payload.card_rect))
        elif payload.type == PointerEventType.move:
            board.drag.pointer_move(point)
        elif payload.type == PointerEventType.up:
            intent = board.drag.pointer_up()
            if intent is not None:
                await board.settle()
        else:
            board.drag.cancel()
        return PointerEventResponse(
            drag_state=board.drag.state,
            hover_target_id=board.drag.hover_target_id,
            intent=intent,
            board=board.render(),
        )

    @router.post(
        "/boards/{company_id}/candidates/{candidate_id}/stage",
        response_model=StageMoveResponse,
    )
    async def move_candidate(
        company_id: str,
        candidate_id: str,
        payload: StageMoveRequest,
        request: Request,
    ) -> StageMoveResponse:
        board = await get_board(request, company_id)
        require_ready(board)
        try:
            from_stage = board.store.get_card(candidate_id).current_stage
            task = board.move_candidate(candidate_id, payload.to_stage)
        except StoreNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        persisted = True
        if task is not None:
            persisted = await task
        return StageMoveResponse(
            candidate_id=candidate_id,
            from_stage=from_stage,
            stage=board.store.get_card(candidate_id).current_stage,
            changed=task is not None,
            persisted=persisted,
        )

    return router


app = create_app()
