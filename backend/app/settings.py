from __future__ import annotations

import os
from dataclasses import dataclass


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    app_env: str
    persistence_db_path: str
    database_url: str
    drag_activation_distance_px: float
    log_level: str


def load_settings() -> Settings:
    persistence_db_path = os.getenv(
        "PERSISTENCE_DB_PATH", "data/pipeline_board.sqlite3"
    ).strip()
    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        database_url = f"sqlite:///{persistence_db_path.replace(chr(92), '/')}"
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        persistence_db_path=persistence_db_path,
        database_url=database_url,
        drag_activation_distance_px=max(
            0.0, min(50.0, _float_env("DRAG_ACTIVATION_DISTANCE_PX", 5.0))
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
