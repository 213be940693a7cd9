from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .config import Settings
from .models import FileSpec, Label
from .perforce.builder import ConnectionBuilder
from .perforce.changelists import ChangelistManager, PathLike
from .perforce.labels import LabelManager
from .perforce.session import DepotSession


@dataclass
class PerforceClient:
    """The public surface: one session plus its changelist and label managers."""

    session: DepotSession
    changelists: ChangelistManager
    labels: LabelManager

    @classmethod
    def create(cls, settings: Settings) -> "PerforceClient":
        session = ConnectionBuilder.from_settings(settings.depot).build()
        return cls.for_session(
            session, changelist_description=settings.release.changelist_description
        )

    @classmethod
    def for_session(
        cls, session: DepotSession, *, changelist_description: str | None = None
    ) -> "PerforceClient":
        changelists = (
            ChangelistManager(session, default_description=changelist_description)
            if changelist_description
            else ChangelistManager(session)
        )
        return cls(session=session, changelists=changelists, labels=LabelManager(session))

    def connect(self) -> "PerforceClient":
        self.session.connect()
        return self

    def disconnect(self) -> None:
        self.session.disconnect()

    def __enter__(self) -> "PerforceClient":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.session.__exit__(exc_type, exc, tb)

    def create_changelist(self, description: str | None = None) -> int:
        return self.changelists.create(description)

    def edit_file(self, changelist_id: int, *paths: PathLike) -> List[FileSpec]:
        return self.changelists.edit_file(changelist_id, *paths)

    def commit(self, changelist_id: int, message: str) -> int:
        return self.changelists.commit(changelist_id, message)

    def revert(self, changelist_id: int) -> None:
        self.changelists.revert(changelist_id)

    def default_changelist_id(self) -> int:
        return self.changelists.default_changelist_id()

    def delete_changelist(self, changelist_id: int) -> None:
        self.changelists.delete(changelist_id)

    def create_label(self, name: str, description: str, changelist_id: int) -> Label:
        return self.labels.create(name, description, changelist_id)

    def delete_label(self, name: str) -> None:
        self.labels.delete(name)
