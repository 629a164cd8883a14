"""Logging configuration using loguru."""

import sys
from pathlib import Path

from loguru import logger

from f1_tracker.utils.config import PROJECT_ROOT, settings

_level = settings["logging"].get("level", "INFO")

# Remove default handler
logger.remove()

# Console handler
logger.add(
    sys.stderr,
    format=(
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
        "<level>{message}</level>"
    ),
    level=_level,
    colorize=True,
)

# File handler
log_dir = PROJECT_ROOT / Path(settings["logging"].get("log_dir", "logs"))
log_dir.mkdir(exist_ok=True)

logger.add(
    str(log_dir / "f1_live_tracker_{time:YYYY-MM-DD}.log"),
    rotation="00:00",
    retention=f"{settings['logging'].get('retention_days', 14)} days",
    level="DEBUG",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    enqueue=True,
)
