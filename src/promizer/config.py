"""
Runtime configuration for promizer.

Values come from the environment (optionally a .env file) and can be
overridden per call, e.g. from CLI options.
"""
from __future__ import annotations

import os
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator

DEFAULT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx")


class PromizerConfig(BaseModel):
    """Settings shared by the scanner, the pipeline and the CLI."""

    marker: str = "promizer"
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    max_bytes: int = Field(500_000, gt=0)
    workers: int = Field(4, ge=1)
    log_level: str = "INFO"

    @field_validator("marker")
    @classmethod
    def _marker_is_word(cls, v: str) -> str:
        v = v.strip()
        if not v or not all(c.isalnum() or c in "_-" for c in v):
            raise ValueError("marker must be a non-empty word")
        return v

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, v: Any) -> tuple[str, ...]:
        if isinstance(v, str):
            v = v.split(",")
        out = []
        for ext in v:
            ext = str(ext).strip().lower()
            if not ext:
                continue
            out.append(ext if ext.startswith(".") else f".{ext}")
        return tuple(out)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides: Any) -> "PromizerConfig":
        """
        Build a config from PROMIZER_* environment variables.

        `overrides` whose value is None are ignored so CLI options that were
        not passed fall through to the environment or the defaults.
        """
        # without an explicit file, look for .env from the working directory up
        load_dotenv(env_file or find_dotenv(usecwd=True))

        values: dict[str, Any] = {}
        env_map = {
            "marker": "PROMIZER_MARKER",
            "extensions": "PROMIZER_EXTENSIONS",
            "max_bytes": "PROMIZER_MAX_BYTES",
            "workers": "PROMIZER_WORKERS",
            "log_level": "PROMIZER_LOG_LEVEL",
        }
        for field, var in env_map.items():
            raw = os.getenv(var)
            if raw:
                values[field] = raw

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
