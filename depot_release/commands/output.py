from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CheckStatus(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True, slots=True)
class CheckLine:
    label: str
    status: CheckStatus
    detail: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is CheckStatus.ERROR

    def render(self) -> str:
        if self.detail:
            return f"{self.label}: {self.status.value} ({self.detail})"
        return f"{self.label}: {self.status.value}"


def ok(label: str, detail: Optional[str] = None) -> CheckLine:
    return CheckLine(label, CheckStatus.OK, detail)


def warning(label: str, detail: Optional[str] = None) -> CheckLine:
    return CheckLine(label, CheckStatus.WARNING, detail)


def error(label: str, detail: Optional[str] = None) -> CheckLine:
    return CheckLine(label, CheckStatus.ERROR, detail)


def skipped(label: str, detail: Optional[str] = None) -> CheckLine:
    return CheckLine(label, CheckStatus.SKIPPED, detail)
