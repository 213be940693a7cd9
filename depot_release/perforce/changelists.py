from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path, PurePath
from typing import Iterable, List, Optional, Union

from P4 import P4

from ..errors import ErrorKind, operation_error, translate_errors
from ..models import (
    DEFAULT_CHANGELIST_DESCRIPTION,
    DEFAULT_CHANGELIST_ID,
    UNKNOWN_CHANGELIST_ID,
    Changelist,
    ChangelistStatus,
    FileOpStatus,
    FileSpec,
)
from .session import DepotSession

logger = logging.getLogger(__name__)

PathLike = Union[str, PurePath]

_CREATED = re.compile(r"Change (\d+) created")


class ChangelistManager:
    """Drives changelists through ``new -> pending -> submitted | deleted``."""

    def __init__(
        self,
        session: DepotSession,
        *,
        default_description: str = DEFAULT_CHANGELIST_DESCRIPTION,
    ) -> None:
        self.session = session
        self.default_description = default_description

    def create(self, description: Optional[str] = None) -> int:
        """Create an empty pending changelist and return its server id."""
        p4 = self.session.require_connection()
        summary = Changelist(
            id=UNKNOWN_CHANGELIST_ID,
            status=ChangelistStatus.NEW,
            description=description or self.default_description,
            client=self.session.workspace.name,
            user=self.session.username,
            created_at=datetime.now(),
        )
        with translate_errors(ErrorKind.OPERATION):
            form = p4.fetch_change()
            form.update(summary.to_spec())
            response = p4.save_change(form)
            change_id = _created_id(response)
            created = Changelist.from_spec(p4.fetch_change(str(change_id)))
        logger.info("Created changelist %s", created.id)
        return created.id

    def get(self, changelist_id: int) -> Changelist:
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            return Changelist.from_spec(_change_form(p4, changelist_id))

    def opened_files(self, changelist_id: int) -> List[str]:
        """Depot paths currently opened in the changelist, read fresh from the server."""
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            # An empty changelist answers with a "not opened" warning.
            with p4.at_exception_level(P4.RAISE_ERROR):
                opened = p4.run_opened("-c", _change_arg(changelist_id))
        return [entry["depotFile"] for entry in opened if isinstance(entry, dict)]

    def edit_file(self, changelist_id: int, *paths: PathLike) -> List[FileSpec]:
        """Open ``paths`` for edit in the changelist.

        Fails on the first file the server rejects, with the server's status
        message as the error message. Files opened earlier in the same batch
        stay open; revert the changelist to undo them.
        """
        if not paths:
            raise operation_error("No files given to open for edit")
        p4 = self.session.require_connection()
        args = [_path_arg(path) for path in paths]
        with translate_errors(ErrorKind.OPERATION):
            with p4.at_exception_level(P4.RAISE_NONE):
                results = p4.run_edit("-c", _change_arg(changelist_id), *args)
                messages = list(p4.messages)
        specs = _file_specs(results, messages)
        for spec in specs:
            if not spec.status.ok:
                logger.debug("Edit rejected for %s: %s", spec.path, spec.message)
                raise operation_error(spec.message or "Failed opening file for editing")
        logger.debug("Opened %d file(s) in changelist %s", len(args), changelist_id)
        return specs

    def commit(self, changelist_id: int, message: str) -> int:
        """Submit the changelist; returns the id the server submitted it under.

        Files with no net change are reverted and dropped from the submit.
        """
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            form = _change_form(p4, changelist_id)
            form["Description"] = message
            form["Files"] = self.opened_files(changelist_id)
            response = p4.run_submit(form, "-f", "revertunchanged")
        submitted = _submitted_id(response) or changelist_id
        logger.info("Submitted changelist %s as %s", changelist_id, submitted)
        return submitted

    def revert(self, changelist_id: int) -> None:
        """Revert every opened file, then delete the changelist."""
        p4 = self.session.require_connection()
        files = self.opened_files(changelist_id)
        if files:
            with translate_errors(ErrorKind.OPERATION):
                p4.run_revert("-c", _change_arg(changelist_id), *files)
            logger.info("Reverted %d file(s) in changelist %s", len(files), changelist_id)
        self.delete(changelist_id)

    def default_changelist_id(self) -> int:
        return DEFAULT_CHANGELIST_ID

    def delete(self, changelist_id: int) -> None:
        if changelist_id == DEFAULT_CHANGELIST_ID:
            return
        current = self.get(changelist_id)
        if current.status is ChangelistStatus.SUBMITTED:
            logger.debug("Changelist %s already submitted; not deleting", changelist_id)
            return
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            p4.run_change("-d", str(changelist_id))
        logger.info("Deleted changelist %s", changelist_id)


def _change_arg(changelist_id: int) -> str:
    if changelist_id == DEFAULT_CHANGELIST_ID:
        return "default"
    return str(changelist_id)


def _change_form(p4, changelist_id: int):
    if changelist_id == DEFAULT_CHANGELIST_ID:
        return p4.fetch_change()
    return p4.fetch_change(str(changelist_id))


def _path_arg(path: PathLike) -> str:
    if isinstance(path, PurePath):
        return str(Path(path).absolute())
    return str(path)


def _file_specs(results: Iterable[object], messages: Iterable[object]) -> List[FileSpec]:
    specs: List[FileSpec] = []
    for entry in results:
        if isinstance(entry, dict):
            specs.append(
                FileSpec(
                    path=entry.get("depotFile") or entry.get("clientFile"),
                    status=FileOpStatus.VALID,
                    message=entry.get("action"),
                )
            )
        else:
            specs.append(FileSpec(path=None, status=FileOpStatus.INFO, message=str(entry)))
    for message in messages:
        severity = getattr(message, "severity", P4.E_FAILED)
        status = FileOpStatus.INFO if severity <= P4.E_INFO else FileOpStatus.ERROR
        specs.append(FileSpec(path=None, status=status, message=str(message).strip()))
    return specs


def _created_id(response: Iterable[object]) -> int:
    for line in response:
        match = _CREATED.search(str(line))
        if match:
            return int(match.group(1))
    raise operation_error(f"Unexpected response to change creation: {list(response)!r}")


def _submitted_id(response: Iterable[object]) -> Optional[int]:
    for entry in response:
        if isinstance(entry, dict) and entry.get("submittedChange"):
            return int(entry["submittedChange"])
    return None
