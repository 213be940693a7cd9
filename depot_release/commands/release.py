from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ..client import PerforceClient
from ..errors import DepotError
from ..perforce.changelists import PathLike

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReleaseResult:
    changelist_id: int
    submitted_id: int
    label: Optional[str] = None


def run(
    client: PerforceClient,
    paths: Sequence[PathLike],
    *,
    message: str,
    label: Optional[str] = None,
    label_description: str = "",
    revert_on_failure: bool = True,
) -> ReleaseResult:
    """Open ``paths`` in a fresh changelist, submit it and optionally label it.

    When the edit or the submit fails the changelist is reverted (unless
    disabled) and the original error is re-raised. A failed label leaves the
    submitted changelist in place.
    """
    changelist_id = client.create_changelist()
    try:
        client.edit_file(changelist_id, *paths)
        submitted_id = client.commit(changelist_id, message)
    except DepotError as exc:
        if revert_on_failure:
            _revert_after_failure(client, changelist_id)
        logger.warning("Release of changelist %s failed: %s", changelist_id, exc)
        raise
    if label:
        client.create_label(label, label_description or message, submitted_id)
    return ReleaseResult(
        changelist_id=changelist_id, submitted_id=submitted_id, label=label
    )


def _revert_after_failure(client: PerforceClient, changelist_id: int) -> None:
    try:
        client.revert(changelist_id)
        logger.warning("Reverted changelist %s after failed release", changelist_id)
    except DepotError as revert_exc:
        logger.warning(
            "Failed to revert changelist %s after error: %s", changelist_id, revert_exc
        )
