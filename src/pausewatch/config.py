from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover - Python <3.11
    import tomli as tomllib

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pausewatch import __version__
from pausewatch.exceptions import ConfigError

CONFIG_FILENAME = "pausewatch.toml"
CACHE_DIR = Path.home() / ".cache" / "pausewatch"
USER_AGENT = f"pausewatch/{__version__}"

DEFAULT_INDEX_URL = "https://www.cpan.org/modules/02packages.details.txt.gz"
DEFAULT_PERMISSIONS_URL = "https://www.cpan.org/modules/06perms.txt.gz"
DEFAULT_FLAGGED_MAINTAINERS = ("NEEDHELP", "HANDOFF")
COMAINTAINER_CODE = "c"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(1, value)


def _non_negative_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    values = tuple(part.strip() for part in raw.split(",") if part.strip())
    return values or default


HTTP_TIMEOUT = _float_env("PAUSEWATCH_HTTP_TIMEOUT", 60.0)
HTTP_RETRIES = _non_negative_int_env("PAUSEWATCH_HTTP_RETRIES", 0)
CONFUSABLE_DISTANCE = _int_env("PAUSEWATCH_DISTANCE", 1)


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    index_url: str = DEFAULT_INDEX_URL
    permissions_url: str = DEFAULT_PERMISSIONS_URL
    data_dir: Path = CACHE_DIR
    http_timeout: float = Field(default=HTTP_TIMEOUT, gt=0)
    http_retries: int = Field(default=HTTP_RETRIES, ge=0)
    confusable_distance: int = Field(default=CONFUSABLE_DISTANCE, ge=1)
    flagged_maintainers: tuple[str, ...] = DEFAULT_FLAGGED_MAINTAINERS

    @field_validator("flagged_maintainers")
    @classmethod
    def _require_maintainers(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(item.strip() for item in value if item.strip())
        if not cleaned:
            raise ValueError("at least one flagged maintainer is required")
        return cleaned


def _load_config_from_file(path: Path | None = None) -> dict[str, Any]:
    candidate = path if path is not None else Path.cwd() / CONFIG_FILENAME
    if not candidate.is_file():
        if path is not None:
            raise ConfigError(f"Config file not found: {candidate}")
        return {}
    try:
        data = tomllib.loads(candidate.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config file {candidate}: {exc}") from exc
    section = data.get("pausewatch", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[pausewatch] in {candidate} must be a table")
    return section


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key, env_name in (
        ("index_url", "PAUSEWATCH_INDEX_URL"),
        ("permissions_url", "PAUSEWATCH_PERMISSIONS_URL"),
        ("data_dir", "PAUSEWATCH_DATA_DIR"),
    ):
        raw = os.getenv(env_name)
        if raw:
            overrides[key] = raw
    if os.getenv("PAUSEWATCH_HTTP_TIMEOUT") is not None:
        overrides["http_timeout"] = _float_env("PAUSEWATCH_HTTP_TIMEOUT", 60.0)
    if os.getenv("PAUSEWATCH_HTTP_RETRIES") is not None:
        overrides["http_retries"] = _non_negative_int_env("PAUSEWATCH_HTTP_RETRIES", 0)
    if os.getenv("PAUSEWATCH_DISTANCE") is not None:
        overrides["confusable_distance"] = _int_env("PAUSEWATCH_DISTANCE", 1)
    if os.getenv("PAUSEWATCH_FLAGGED_MAINTAINERS") is not None:
        overrides["flagged_maintainers"] = _list_env(
            "PAUSEWATCH_FLAGGED_MAINTAINERS", DEFAULT_FLAGGED_MAINTAINERS
        )
    return overrides


def load_settings(path: Path | None = None, **overrides: Any) -> Settings:
    """Merge file config, environment and explicit overrides, in that order."""
    merged = _load_config_from_file(path)
    merged.update(_env_overrides())
    merged.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
