"""Configuration loading: YAML + environment variable overrides."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent.parent


def load_settings(yaml_path: Path | None = None) -> dict[str, Any]:
    """Load settings from YAML file with env var overrides.

    Args:
        yaml_path: Path to the YAML config file. Defaults to config/settings.yaml.

    Returns:
        Dict with all configuration values.
    """
    if yaml_path is None:
        yaml_path = PROJECT_ROOT / "config" / "settings.yaml"

    with open(yaml_path) as f:
        config = yaml.safe_load(f) or {}

    for section in ("openf1", "polling", "timing", "session_config", "api", "logging"):
        config.setdefault(section, {})

    # Environment variable overrides (deployment-specific values)
    if os.getenv("OPENF1_BASE_URL"):
        config["openf1"]["base_url"] = os.getenv("OPENF1_BASE_URL")
    if os.getenv("POLL_INTERVAL_SECONDS"):
        config["polling"]["interval_seconds"] = float(os.getenv("POLL_INTERVAL_SECONDS"))
    if os.getenv("RETIREMENT_TIMEOUT_SECONDS"):
        config["timing"]["retirement_timeout_seconds"] = float(
            os.getenv("RETIREMENT_TIMEOUT_SECONDS")
        )
    if os.getenv("SESSION_CONFIG_PATH"):
        config["session_config"]["path"] = os.getenv("SESSION_CONFIG_PATH")
    if os.getenv("API__CORS_ORIGINS"):
        cors_str = os.getenv("API__CORS_ORIGINS")
        config["api"]["cors_origins"] = [o.strip() for o in cors_str.split(",")]
    if os.getenv("LOG_LEVEL"):
        config["logging"]["level"] = os.getenv("LOG_LEVEL")

    return config


# Global settings singleton
settings = load_settings()
