from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def corners(self) -> tuple[Point, Point, Point, Point]:
        # top-left, top-right, bottom-left, bottom-right
        return (
            Point(self.left, self.top),
            Point(self.right, self.top),
            Point(self.left, self.bottom),
            Point(self.right, self.bottom),
        )

    def translated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


@dataclass(frozen=True)
class DropTarget:
    id: str
    rect: Rect


def corner_distance(a: Rect, b: Rect) -> float:
    total = sum(p.distance_to(q) for p, q in zip(a.corners(), b.corners()))
    return total / 4


def rank_by_corners(dragged: Rect, targets: Iterable[DropTarget]) -> list[tuple[float, DropTarget]]:
    scored = [(corner_distance(dragged, target.rect), target) for target in targets]
    # sort is stable: equal distances keep registration order
    scored.sort(key=lambda item: item[0])
    return scored


def closest_corners(dragged: Rect, targets: Iterable[DropTarget]) -> Optional[str]:
    ranked = rank_by_corners(dragged, targets)
    if not ranked:
        return None
    return ranked[0][1].id
