from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ..config import Settings
from ..errors import DepotError
from ..perforce.builder import ConnectionBuilder
from ..perforce.negotiator import FALLBACK_CHARSET, parse_host_address, resolve_charset
from .output import CheckLine, error, ok, skipped, warning


@dataclass(slots=True)
class DoctorReport:
    checks: List[CheckLine] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(check.failed for check in self.checks)

    def lines(self) -> List[str]:
        return [check.render() for check in self.checks]


def run(settings: Settings, *, connect: bool = False) -> DoctorReport:
    report = DoctorReport()
    depot = settings.depot

    try:
        ConnectionBuilder.from_settings(depot).config()
    except DepotError as exc:
        report.checks.append(error("Connection settings", exc.message))
        report.checks.append(skipped("Connection", "fix the settings first"))
        return report

    target = parse_host_address(depot.host_address or "")
    if target.secure:
        report.checks.append(
            warning("Transport", f"ssl to {target.address}; fingerprint auto-accepted")
        )
    else:
        report.checks.append(ok("Transport", f"tcp to {target.address}"))

    report.checks.append(ok("Workspace", depot.client_id))

    if depot.username:
        detail = "password login" if depot.password else "existing ticket"
        report.checks.append(ok("User", f"{depot.username} ({detail})"))
    else:
        report.checks.append(warning("User", "not set; P4USER from the environment applies"))

    charset = resolve_charset(depot.charset)
    if charset is None:
        report.checks.append(ok("Charset", "not set"))
    elif charset == FALLBACK_CHARSET and (depot.charset or "").lower() != FALLBACK_CHARSET:
        report.checks.append(
            warning("Charset", f"{depot.charset!r} unsupported; using {FALLBACK_CHARSET}")
        )
    else:
        report.checks.append(ok("Charset", charset))

    if not connect:
        report.checks.append(skipped("Connection", "pass --connect"))
        return report

    session = ConnectionBuilder.from_settings(depot).build()
    try:
        with session:
            workspace = session.workspace
            report.checks.append(
                ok(
                    "Connection",
                    f"bound {workspace.name} ({len(workspace.view)} view rule(s))",
                )
            )
            if not workspace.view:
                report.checks.append(
                    warning("Workspace view", "empty; labels will have no view")
                )
    except DepotError as exc:
        report.checks.append(error("Connection", exc.message))
    return report
