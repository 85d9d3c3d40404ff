# src/config.py
"""
Configuration loader with validation and safe error handling.

- Reads optional fingerprint.toml (or a provided path).
- Provides defaults if file is absent.
- Exposes a typed configuration object used by the imaging adapter and engines.
"""

from __future__ import annotations

import operator
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from errors import ConfigLoadError, ParameterError

FilterName = Literal["nearest", "linear", "cubic", "lanczos"]


class FingerprintConfig(BaseModel):
    """Limits and collaborator defaults for fingerprint computation."""

    default_filter: FilterName = Field(
        "lanczos",
        description="Resize filter used when the caller does not pass one.",
    )
    max_power: int = Field(6, ge=1, le=12, description="Largest IDHash power")
    max_hash_size: int = Field(64, ge=1, le=1024, description="Largest DHash size")
    url_timeout: float = Field(10.0, gt=0, description="Seconds per HTTP request")
    user_agent: str = "perceptual-fingerprints/0.1"

    @field_validator("default_filter", mode="before")
    @classmethod
    def _normalize_filter(cls, v: object) -> object:
        """Accept filter names case-insensitively ("lanczos", "Cubic")."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


class AppConfig(BaseModel):
    """Root configuration object."""

    fingerprint: FingerprintConfig = FingerprintConfig()

    @staticmethod
    def load(path: Optional[Path] = None) -> "AppConfig":
        """
        Load config from TOML if present; otherwise return defaults.

        Load order:
          1) Provided path (if any).
          2) ./fingerprint.toml in the current working directory.
        Env overrides:
          - PFP_URL_TIMEOUT: overrides fingerprint.url_timeout
          - PFP_DEFAULT_FILTER: overrides fingerprint.default_filter

        Raises:
            ConfigLoadError: if a TOML file exists but cannot be read or validated,
            or if an env override is invalid.
        """
        import tomllib

        cfg = AppConfig()
        toml_path = path or (Path.cwd() / "fingerprint.toml")

        if path is not None and not toml_path.exists():
            raise ConfigLoadError(f"Config file not found: {toml_path}")

        if toml_path.exists():
            try:
                raw_text = toml_path.read_text(encoding="utf-8")
            except OSError as exc:
                raise ConfigLoadError(
                    f"Failed to read config file: {toml_path}"
                ) from exc

            try:
                data = tomllib.loads(raw_text)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigLoadError(
                    f"Invalid TOML in config file: {toml_path}"
                ) from exc

            try:
                section = data.get("fingerprint", data)
                cfg.fingerprint = FingerprintConfig(**section)
            except (ValidationError, TypeError) as exc:
                raise ConfigLoadError(
                    f"Invalid configuration values in {toml_path}"
                ) from exc

        overrides = {}
        timeout_env = os.getenv("PFP_URL_TIMEOUT")
        if timeout_env:
            overrides["url_timeout"] = timeout_env
        filter_env = os.getenv("PFP_DEFAULT_FILTER")
        if filter_env:
            overrides["default_filter"] = filter_env

        if overrides:
            try:
                cfg.fingerprint = FingerprintConfig(
                    **{**cfg.fingerprint.model_dump(), **overrides}
                )
            except ValidationError as exc:
                raise ConfigLoadError(
                    f"Invalid environment override(s): {sorted(overrides)}"
                ) from exc

        return cfg


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load once and reuse. Tests call `get_config.cache_clear()` to reload."""
    return AppConfig.load()


def checked_size(name: str, value: object, limit: int) -> int:
    """
    Coerce an integer-like size parameter (int, numpy integer) into 1..limit.

    Raises:
        ParameterError: for bools, non-integers and out-of-range values.
    """
    if isinstance(value, bool):
        raise ParameterError(f"{name} must be an integer, got {value!r}")
    try:
        n = operator.index(value)  # type: ignore[arg-type]
    except TypeError as exc:
        raise ParameterError(f"{name} must be an integer, got {value!r}") from exc
    if not 1 <= n <= limit:
        raise ParameterError(f"{name} must be in 1..{limit}, got {n}")
    return n
