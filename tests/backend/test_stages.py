from __future__ import annotations

import pytest

from backend.app.models import StageId
from backend.app.stages import DEFAULT_STAGE, StageNotFoundError, all_stages, is_stage_id, stage_by_id


def test_catalog_order_is_fixed() -> None:
    assert [stage.id.value for stage in all_stages()] == [
        "applied",
        "screening",
        "interview",
        "offer",
        "hired",
        "rejected",
    ]
    assert DEFAULT_STAGE == StageId.applied


def test_stage_lookup_by_id_and_enum() -> None:
    assert stage_by_id("offer").label == "Offer"
    assert stage_by_id(StageId.hired).color == "#198754"


def test_unknown_stage_is_not_the_default() -> None:
    with pytest.raises(StageNotFoundError):
        stage_by_id("archived")
    assert not is_stage_id("archived")
    assert is_stage_id("rejected")


def test_stages_are_immutable() -> None:
    stage = stage_by_id("applied")
    with pytest.raises(Exception):
        stage.label = "Renamed"
