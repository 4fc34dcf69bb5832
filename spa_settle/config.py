"""
Loading and validation of spa_settle configuration.
Pydantic describes the schema and checks the data.
"""
from __future__ import annotations

import errno
import json
import os
import re
from pathlib import Path
from re import Pattern
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)

from spa_settle.utils import beacon_ignore_entry

__all__ = ["SpaMetricsConfig", "MeasureConfig", "load_config", "spa_config_from"]

DEFAULT_QUIET_TIME = 5000.0
DEFAULT_MAX_RESOURCES_TO_WATCH = 100


def _compile_ignore_entries(v: Any) -> Any:
    # YAML/JSON cannot carry compiled patterns: {"regex": "..."} stands for one
    if isinstance(v, (list, tuple)):
        return [
            re.compile(item["regex"]) if isinstance(item, dict) and "regex" in item else item
            for item in v
        ]
    return v


class SpaMetricsConfig(BaseModel):
    """Settings of :class:`~spa_settle.manager.SpaMetricsManager`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    ignore_urls: List[Union[str, Pattern[str]]] = Field(
        default_factory=list, description="Exact URLs or regular expressions never tracked."
    )
    max_resources_to_watch: int = Field(
        DEFAULT_MAX_RESOURCES_TO_WATCH, ge=1, description="Cap on in-flight resources tracked at once."
    )
    quiet_time: float = Field(
        DEFAULT_QUIET_TIME, gt=0, description="Quiet period without resource activity (ms)."
    )
    beacon_endpoint: Optional[str] = Field(
        None, description="Telemetry endpoint; its origin is added to ignore_urls."
    )

    @field_validator("ignore_urls", mode="before")
    @classmethod
    def _compile_regex_entries(cls, v: Any) -> Any:
        return _compile_ignore_entries(v)

    @model_validator(mode="before")
    @classmethod
    def _ignore_beacon_origin(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not data.get("beacon_endpoint"):
            return data
        data = dict(data)
        ignore_urls = list(_compile_ignore_entries(data.get("ignore_urls") or []))
        entry = beacon_ignore_entry(data["beacon_endpoint"])
        if entry not in ignore_urls:
            ignore_urls.append(entry)
        data["ignore_urls"] = ignore_urls
        return data


class MeasureConfig(BaseModel):
    """Configuration of one measurement run (CLI / :func:`measure_routes`)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: HttpUrl = Field(..., description="Root URL of the application.")
    routes: List[str] = Field(default_factory=lambda: ["/"], min_length=1, description="Routes to visit in order.")
    timeout: float = Field(10.0, gt=0, description="Timeout of a single request (seconds).")
    navigation_timeout: float = Field(
        60.0, gt=0, description="Upper bound for one route to settle (seconds)."
    )
    user_agent: str = Field("SpaSettle/1.0", min_length=1, description="User-Agent header.")
    spa: SpaMetricsConfig = Field(default_factory=SpaMetricsConfig)

    @field_validator("base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("routes")
    def _check_routes(cls, v: List[str]) -> List[str]:
        cleaned = [r.strip() for r in v]
        if any(not r for r in cleaned):
            raise ValueError("routes must not be empty strings")
        return cleaned

    @model_validator(mode="after")
    def _check_navigation_timeout(self) -> MeasureConfig:
        # navigation_timeout is in seconds, quiet_time in milliseconds
        if self.navigation_timeout * 1000 <= self.spa.quiet_time:
            raise ValueError(
                f"navigation_timeout ({self.navigation_timeout} s) must exceed "
                f"spa.quiet_time ({self.spa.quiet_time} ms)"
            )
        return self


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"YAML top level must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"JSON top level must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> MeasureConfig:
    """
    Read YAML or JSON and return a validated MeasureConfig.
    Raises FileNotFoundError when the file is missing.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return MeasureConfig(**data)


def spa_config_from(overrides: Dict[str, Any], base: Optional[SpaMetricsConfig] = None) -> SpaMetricsConfig:
    """Build a SpaMetricsConfig from *base* updated with non-None *overrides*."""
    values: Dict[str, Any] = base.model_dump(exclude={"ignore_urls"}) if base else {}
    if base is not None:
        values["ignore_urls"] = list(base.ignore_urls)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SpaMetricsConfig(**values)
