"""Static per-session configuration (race distance, flag asset)."""

from __future__ import annotations

from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError

from f1_tracker.utils.config import PROJECT_ROOT, settings


class SessionConfig(BaseModel):
    total_laps: int | None = None
    flag: str | None = None


def load_session_config(session_key: int, path: str | Path | None = None) -> SessionConfig:
    """Look up ``session_key`` in the sessions YAML file.

    A missing file, a missing entry or a malformed entry all give an empty
    config; the tracker runs without a lap total or flag in that case.
    """
    if path is None:
        path = settings["session_config"].get("path", "config/sessions.yaml")
    path = Path(path)
    if not path.is_absolute():
        path = PROJECT_ROOT / path

    if not path.exists():
        logger.warning("Session config file {} not found", path)
        return SessionConfig()

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    sessions = data.get("sessions") or {}
    entry = sessions.get(session_key, sessions.get(str(session_key)))
    if entry is None:
        logger.warning("No static config for session {} in {}", session_key, path)
        return SessionConfig()

    try:
        config = SessionConfig.model_validate(entry)
    except ValidationError as exc:
        logger.warning("Invalid static config for session {}: {}", session_key, exc)
        return SessionConfig()

    logger.info(
        "Static config for session {}: total_laps={}, flag={}",
        session_key, config.total_laps, config.flag,
    )
    return config
