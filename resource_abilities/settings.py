from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ImportString
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are local and deterministic (SQLite file, bundled gate config).
    - `APP_ABILITY_SERIALIZER` takes an import string, e.g.
      `resource_abilities.abilities.serializers:GrantedAbilitiesSerializer`.
    - `APP_UNAUTHENTICATED_ABILITIES=raise` makes guest-incompatible checks
      fail instead of resolving to false.
    """

    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    db_url: str | None = None
    abilities_config_path: str | None = None
    log_level: str = "INFO"

    ability_serializer: ImportString[Any] = Field(
        default="resource_abilities.abilities.serializers:AbilitySerializer",
        validate_default=True,
    )
    unauthenticated_abilities: Literal["deny", "raise"] = "deny"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "app.db"
        return f"sqlite:///{db_path}"

    def resolved_abilities_config_path(self) -> Path:
        if self.abilities_config_path:
            return Path(self.abilities_config_path)

        repo_root = Path(__file__).resolve().parents[1]
        return repo_root / "config" / "abilities.yaml"


@lru_cache
def get_settings() -> Settings:
    return Settings()
