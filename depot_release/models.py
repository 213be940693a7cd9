from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

DEFAULT_CHANGELIST_ID = 0
UNKNOWN_CHANGELIST_ID = -1

DEFAULT_CHANGELIST_DESCRIPTION = "Artifactory release plugin"


@dataclass(slots=True)
class ConnectionConfig:
    host_address: str
    client_id: str
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    charset: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ConnectionTarget:
    secure: bool
    address: str

    @property
    def port(self) -> str:
        """P4PORT value handed to the SDK; the transport is encoded as a prefix."""
        if self.secure:
            return f"ssl:{self.address}"
        return self.address

    @property
    def transport(self) -> str:
        return "ssl" if self.secure else "tcp"


class ChangelistStatus(str, Enum):
    NEW = "new"
    PENDING = "pending"
    SUBMITTED = "submitted"

    @classmethod
    def parse(cls, value: object) -> "ChangelistStatus":
        text = str(value or "").strip().lower()
        for status in cls:
            if status.value == text:
                return status
        raise ValueError(f"Unknown changelist status: {value!r}")


class FileOpStatus(str, Enum):
    VALID = "valid"
    INFO = "info"
    ERROR = "error"

    @property
    def ok(self) -> bool:
        return self in (FileOpStatus.VALID, FileOpStatus.INFO)


@dataclass(slots=True)
class FileSpec:
    path: Optional[str]
    status: FileOpStatus
    message: Optional[str] = None


@dataclass(slots=True)
class ViewMappingEntry:
    depot_path: str
    client_path: str
    exclude: bool = False

    @classmethod
    def parse(cls, line: str) -> "ViewMappingEntry":
        """Parse one client view line, e.g. ``-//depot/x/... //ws/x/...``."""
        tokens = shlex.split(line)
        if len(tokens) != 2:
            raise ValueError(f"Malformed view mapping: {line!r}")
        depot, client = tokens
        exclude = depot.startswith("-")
        return cls(depot_path=depot.lstrip("-+&"), client_path=client, exclude=exclude)


@dataclass(slots=True)
class Workspace:
    name: str
    owner: Optional[str] = None
    root: Optional[str] = None
    view: List[ViewMappingEntry] = field(default_factory=list)

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> "Workspace":
        return cls(
            name=str(spec.get("Client") or ""),
            owner=spec.get("Owner") or None,
            root=spec.get("Root") or None,
            view=[ViewMappingEntry.parse(line) for line in spec.get("View") or []],
        )


@dataclass(slots=True)
class Changelist:
    id: int
    status: ChangelistStatus
    description: str = ""
    client: Optional[str] = None
    user: Optional[str] = None
    created_at: Optional[datetime] = None
    files: List[str] = field(default_factory=list)

    @classmethod
    def from_spec(cls, spec: Mapping[str, Any]) -> "Changelist":
        raw_id = str(spec.get("Change") or "").strip()
        change_id = int(raw_id) if raw_id.isdigit() else UNKNOWN_CHANGELIST_ID
        return cls(
            id=change_id,
            status=ChangelistStatus.parse(spec.get("Status") or "new"),
            description=str(spec.get("Description") or "").strip(),
            client=spec.get("Client") or None,
            user=spec.get("User") or None,
            created_at=_parse_date(spec.get("Date")),
            files=[_strip_action(entry) for entry in spec.get("Files") or []],
        )

    def to_spec(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "Change": "new" if self.id == UNKNOWN_CHANGELIST_ID else str(self.id),
            "Status": self.status.value,
            "Description": self.description,
            "Files": list(self.files),
        }
        if self.client:
            spec["Client"] = self.client
        if self.user:
            spec["User"] = self.user
        return spec


@dataclass(slots=True)
class Label:
    name: str
    owner: Optional[str]
    created_at: datetime
    updated_at: datetime
    description: str
    revision: str
    view: List[ViewMappingEntry] = field(default_factory=list)
    locked: bool = False

    def to_spec(self) -> Dict[str, Any]:
        # A label view holds depot paths only; the client side is not sent.
        spec: Dict[str, Any] = {
            "Label": self.name,
            "Description": self.description,
            "Options": "locked" if self.locked else "unlocked",
            "Revision": self.revision,
            "View": [
                ("-" if entry.exclude else "") + _quote(entry.depot_path)
                for entry in self.view
            ],
        }
        if self.owner:
            spec["Owner"] = self.owner
        return spec


def _quote(path: str) -> str:
    if " " in path:
        return f'"{path}"'
    return path


def _parse_date(value: object) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip(), "%Y/%m/%d %H:%M:%S")
    except ValueError:
        return None


def _strip_action(entry: object) -> str:
    # Change forms list files as "//depot/path#rev   # edit".
    text = str(entry)
    if "\t" in text:
        text = text.split("\t", 1)[0]
    if " #" in text:
        text = text.split(" #", 1)[0]
    return text.strip()
