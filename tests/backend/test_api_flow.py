from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app, get_board
from backend.app.models import StageId
from backend.app.persistence import SqlitePersistence


def build_layout() -> dict:
    stages = ["applied", "screening", "interview", "offer", "hired", "rejected"]
    return {
        "targets": [
            {"id": stage, "rect": {"left": index * 232, "top": 0, "width": 220, "height": 600}}
            for index, stage in enumerate(stages)
        ]
    }


def column_ids(board: dict) -> dict[str, list[str]]:
    return {
        column["stage"]["id"]: [card["id"] for card in column["cards"]]
        for column in board["columns"]
    }


def test_stages_catalog(client: TestClient) -> None:
    response = client.get("/stages")
    assert response.status_code == 200
    assert [stage["id"] for stage in response.json()] == [
        "applied",
        "screening",
        "interview",
        "offer",
        "hired",
        "rejected",
    ]


def test_board_render_and_filters(client: TestClient) -> None:
    board = client.get("/boards/acme")
    assert board.status_code == 200
    data = board.json()
    assert data["status"] == "ready"
    assert column_ids(data)["applied"] == ["1"]
    assert column_ids(data)["interview"] == ["2"]
    assert data["summary"] == "2 candidates"

    filtered = client.put("/boards/acme/filters", json={"job_id": "J1"})
    assert filtered.status_code == 200
    assert filtered.json()["visible_count"] == 1
    assert filtered.json()["filtered"] is True

    searched = client.put("/boards/acme/filters", json={"job_id": "all", "search": "B@X"})
    assert searched.json()["visible_count"] == 1
    assert column_ids(searched.json())["interview"] == ["2"]

    cleared = client.put("/boards/acme/filters", json={"search": ""})
    assert cleared.json()["visible_count"] == 2


def test_pointer_drag_moves_candidate(client: TestClient, seeded: SqlitePersistence) -> None:
    layout = client.put("/boards/acme/layout", json=build_layout())
    assert layout.status_code == 200
    assert layout.json()["target_count"] == 6

    down = client.post(
        "/boards/acme/pointer",
        json={
            "type": "down",
            "candidate_id": "1",
            "x": 50,
            "y": 50,
            "card_rect": {"left": 10, "top": 20, "width": 200, "height": 80},
        },
    )
    assert down.status_code == 200
    assert down.json()["drag_state"] == "idle"

    move = client.post("/boards/acme/pointer", json={"type": "move", "x": 742, "y": 50})
    assert move.json()["drag_state"] == "dragging"
    assert move.json()["hover_target_id"] == "offer"
    assert move.json()["board"]["drag_overlay"]["id"] == "1"
    assert move.json()["board"]["highlighted_stage"] == "offer"

    up = client.post("/boards/acme/pointer", json={"type": "up"})
    assert up.status_code == 200
    body = up.json()
    assert body["drag_state"] == "idle"
    assert body["intent"] == {"candidate_id": "1", "from_stage": "applied", "to_stage": "offer"}
    assert column_ids(body["board"])["offer"] == ["1"]
    assert seeded.get_candidate_stage("1") == "offer"


def test_click_without_drag_changes_nothing(client: TestClient, seeded: SqlitePersistence) -> None:
    client.put("/boards/acme/layout", json=build_layout())
    client.post(
        "/boards/acme/pointer",
        json={
            "type": "down",
            "candidate_id": "1",
            "x": 50,
            "y": 50,
            "card_rect": {"left": 10, "top": 20, "width": 200, "height": 80},
        },
    )
    client.post("/boards/acme/pointer", json={"type": "move", "x": 52, "y": 51})
    up = client.post("/boards/acme/pointer", json={"type": "up"})
    assert up.json()["intent"] is None
    assert column_ids(up.json()["board"])["applied"] == ["1"]
    assert seeded.get_candidate_stage("1") is None


def test_pointer_down_validation(client: TestClient) -> None:
    missing = client.post("/boards/acme/pointer", json={"type": "down", "x": 1, "y": 1})
    assert missing.status_code == 400

    unknown = client.post(
        "/boards/acme/pointer",
        json={
            "type": "down",
            "candidate_id": "ghost",
            "card_rect": {"left": 0, "top": 0, "width": 10, "height": 10},
        },
    )
    assert unknown.status_code == 404


def test_direct_stage_move(client: TestClient, seeded: SqlitePersistence) -> None:
    moved = client.post("/boards/acme/candidates/2/stage", json={"to_stage": "hired"})
    assert moved.status_code == 200
    assert moved.json() == {
        "candidate_id": "2",
        "from_stage": "interview",
        "stage": "hired",
        "changed": True,
        "persisted": True,
    }
    assert seeded.get_candidate_stage("2") == "hired"

    same = client.post("/boards/acme/candidates/2/stage", json={"to_stage": "hired"})
    assert same.json()["changed"] is False

    invalid = client.post("/boards/acme/candidates/2/stage", json={"to_stage": "archived"})
    assert invalid.status_code == 422

    missing = client.post("/boards/acme/candidates/ghost/stage", json={"to_stage": "offer"})
    assert missing.status_code == 404


def test_reload_rebuilds_from_storage_and_keeps_filters(
    client: TestClient, seeded: SqlitePersistence
) -> None:
    client.put("/boards/acme/filters", json={"search": "a person"})
    seeded.set_candidate_stage("1", StageId.screening)

    reloaded = client.post("/boards/acme/load")
    assert reloaded.status_code == 200
    assert reloaded.json()["search_text"] == "a person"
    assert column_ids(reloaded.json())["screening"] == ["1"]


def test_reload_keeps_registered_drop_targets(client: TestClient, seeded: SqlitePersistence) -> None:
    client.put("/boards/acme/layout", json=build_layout())
    client.post("/boards/acme/load")

    client.post(
        "/boards/acme/pointer",
        json={
            "type": "down",
            "candidate_id": "1",
            "x": 50,
            "y": 50,
            "card_rect": {"left": 10, "top": 20, "width": 200, "height": 80},
        },
    )
    client.post("/boards/acme/pointer", json={"type": "move", "x": 742, "y": 50})
    up = client.post("/boards/acme/pointer", json={"type": "up"})
    assert up.json()["intent"] == {"candidate_id": "1", "from_stage": "applied", "to_stage": "offer"}
    assert seeded.get_candidate_stage("1") == "offer"


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_board(
    monkeypatch: pytest.MonkeyPatch, seeded: SqlitePersistence
) -> None:
    monkeypatch.setenv("DATABASE_URL", seeded.database_url)
    request = SimpleNamespace(app=create_app())

    first, second = await asyncio.gather(
        get_board(request, "acme"),
        get_board(request, "acme"),
    )
    assert first is second
    assert request.app.state.boards["acme"] is first
    assert first.store.revision == 1
