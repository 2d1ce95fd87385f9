from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

__all__ = ["StubRegistry", "load_registry_from_env"]


class StubRegistry(BaseModel):
    """Which tokens the stub provider accepts and how it misbehaves.

    Any token not listed anywhere gets a 401.
    """

    users: dict[str, dict[str, Any]] = Field(default_factory=dict)  # token -> /users/@me payload
    forbidden: set[str] = Field(default_factory=set)
    rate_limited: dict[str, float] = Field(default_factory=dict)  # token -> retry_after seconds
    broken: set[str] = Field(default_factory=set)  # 200 with a non-JSON body
    delay_s: float = Field(0.0, ge=0)


def load_registry_from_env() -> StubRegistry:
    """Load STUB_USERS_FILE (JSON) if set; otherwise an empty registry.

    Raises:
        ValueError: if the file cannot be parsed into a registry.
    """
    raw_path = os.getenv("STUB_USERS_FILE")
    if not raw_path:
        return StubRegistry()
    try:
        data = json.loads(Path(raw_path).read_text(encoding="utf-8"))
        return StubRegistry(**data)
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as e:
        raise ValueError(f"STUB_USERS_FILE could not be loaded: {e}") from e
