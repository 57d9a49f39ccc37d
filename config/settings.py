"""Configuration helpers for the SNS Icon Maker project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL_ID = "imagen-3.0-generate-001"


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    model_id: str = DEFAULT_MODEL_ID
    request_timeout: float = 60.0
    assets_dir: Path = Path("assets")
    download_dir: Path = Path("downloads")
    download_prefix: str = "sns-icon"
    max_downloads: int = 100
    log_dir: Path = Path("logs")
    metadata: dict[str, Any] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ[key.strip()] = value.strip().strip('"').strip("'")


def _clean_secret(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace (全角スペース含む) and map blanks to None."""
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings.

    A missing API key is not an error here; it is reported to the user when a
    generation is requested.
    """
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    api_key = _clean_secret(os.getenv("GEMINI_API_KEY")) or _clean_secret(
        os.getenv("VITE_GEMINI_API_KEY")
    )
    base_url = (os.getenv("IMAGEN_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/")
    model_id = os.getenv("IMAGEN_MODEL_ID") or DEFAULT_MODEL_ID

    download_dir = Path(os.getenv("DOWNLOAD_DIR", "downloads")).expanduser().resolve()
    log_dir = Path(os.getenv("LOG_DIR", "logs")).expanduser()

    metadata: dict[str, Any] = {"env_file": str(env_path)}

    return AppConfig(
        api_key=api_key,
        api_base_url=base_url,
        model_id=model_id,
        request_timeout=_env_float("IMAGEN_TIMEOUT", 60.0),
        download_dir=download_dir,
        max_downloads=_env_int("MAX_DOWNLOADS", 100),
        log_dir=log_dir,
        metadata=metadata,
    )
