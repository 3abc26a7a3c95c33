from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class AbilitiesConfigError(ValueError):
    """Raised when the abilities YAML configuration is invalid."""


class GateRule(BaseModel):
    roles: list[str] = Field(default_factory=list)
    guest: bool = False


class AbilitiesConfig(BaseModel):
    """
    Validated gate configuration.

    Expected shape:

        abilities:
          gates:
            publish-posts:
              roles: [editor, admin]
    """

    gates: dict[str, GateRule] = Field(default_factory=dict)


def load_abilities_config(path: Path) -> AbilitiesConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "abilities" not in raw:
        raise AbilitiesConfigError(f"Missing top-level 'abilities' key in config: {path}")

    return AbilitiesConfig.model_validate(raw["abilities"] or {})
