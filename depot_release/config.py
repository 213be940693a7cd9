from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .models import DEFAULT_CHANGELIST_DESCRIPTION


class DepotSettings(BaseModel):
    host_address: Optional[str] = None
    client_id: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    charset: Optional[str] = None

    @field_validator(
        "host_address", "client_id", "username", "password", "charset", mode="before"
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class ReleaseSettings(BaseModel):
    changelist_description: str = DEFAULT_CHANGELIST_DESCRIPTION
    label_description: str = "Release label"
    revert_on_failure: bool = True


class Settings(BaseModel):
    depot: DepotSettings = DepotSettings()
    release: ReleaseSettings = ReleaseSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        return cls.model_validate(raw)


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (
        cwd / "depot-release.yaml",
        cwd / "depot-release.yml",
        cwd / "config.yaml",
    ):
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        "Could not find depot-release.yaml - pass --config explicitly."
    )
