from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from ..errors import ErrorKind, operation_error, translate_errors
from ..models import Label, ViewMappingEntry, Workspace
from .session import DepotSession

logger = logging.getLogger(__name__)


class LabelManager:
    def __init__(self, session: DepotSession) -> None:
        self.session = session

    def exists(self, name: str) -> bool:
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            found = p4.run_labels("-e", name)
        return any(
            isinstance(entry, dict) and entry.get("label") == name for entry in found
        )

    def create(self, name: str, description: str, changelist_id: int) -> Label:
        """Label the depot state as of ``changelist_id``.

        The existence check and the save are separate round trips, so two
        concurrent creators can both pass the check.
        """
        if self.exists(name):
            raise operation_error(f"Failed to create label '{name}', label already exists")
        workspace = self.session.fetch_workspace()
        now = datetime.now()
        label = Label(
            name=name,
            owner=workspace.owner,
            created_at=now,
            updated_at=now,
            description=description,
            revision=f"@{changelist_id}",
            view=label_view(workspace),
            locked=False,
        )
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            form = p4.fetch_label(name)
            form.update(label.to_spec())
            p4.save_label(form)
        logger.info("Created label %s at %s", name, label.revision)
        return label

    def delete(self, name: str) -> None:
        p4 = self.session.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            p4.run_label("-d", name)
        logger.info("Deleted label %s", name)


def label_view(workspace: Workspace) -> List[ViewMappingEntry]:
    # Both sides take the depot path of the client rule; the client path is dropped.
    return [
        ViewMappingEntry(
            depot_path=rule.depot_path,
            client_path=rule.depot_path,
            exclude=rule.exclude,
        )
        for rule in workspace.view
    ]
