from __future__ import annotations

import logging
from typing import Optional

from P4 import P4

from ..errors import DepotError, ErrorKind, connection_error, translate_errors
from ..models import ConnectionConfig, ConnectionTarget, Workspace
from .negotiator import negotiate, parse_host_address

logger = logging.getLogger(__name__)


class DepotSession:
    """A connected (server, workspace) pair.

    Not thread-safe: one session binds one workspace and one principal, and
    must be driven by a single caller. Use it as a context manager so the
    connection is released on every exit path::

        with ConnectionBuilder().host_address(...).client(...).build() as session:
            ...
    """

    def __init__(self, config: ConnectionConfig) -> None:
        self.config = config
        self.p4: Optional[P4] = None
        self._workspace: Optional[Workspace] = None

    @property
    def target(self) -> ConnectionTarget:
        return parse_host_address(self.config.host_address)

    @property
    def connected(self) -> bool:
        return self.p4 is not None and bool(self.p4.connected())

    @property
    def workspace(self) -> Workspace:
        self.require_connection()
        if self._workspace is None:
            raise connection_error("No client workspace bound to the session")
        return self._workspace

    @property
    def username(self) -> Optional[str]:
        if self.p4 is None:
            return self.config.username
        return self.p4.user or self.config.username

    def connect(self) -> "DepotSession":
        if self.connected:
            return self
        p4 = P4()
        try:
            self._workspace = negotiate(p4, self.config)
        except Exception:
            _close_quietly(p4)
            raise
        self.p4 = p4
        return self

    def disconnect(self) -> None:
        p4, self.p4 = self.p4, None
        self._workspace = None
        if p4 is None or not p4.connected():
            return
        with translate_errors(ErrorKind.CONNECTION):
            p4.disconnect()
        logger.info("Disconnected from %s", self.target.address)

    def require_connection(self) -> P4:
        p4 = self.p4
        if p4 is None or not p4.connected():
            raise connection_error("Not connected to the Perforce server")
        return p4

    def fetch_workspace(self) -> Workspace:
        """Re-read the bound client spec from the server."""
        p4 = self.require_connection()
        with translate_errors(ErrorKind.OPERATION):
            spec = p4.fetch_client(self.config.client_id)
        try:
            self._workspace = Workspace.from_spec(spec)
        except ValueError as exc:
            raise DepotError(ErrorKind.OPERATION, str(exc), exc) from exc
        return self._workspace

    def __enter__(self) -> "DepotSession":
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.disconnect()
            return
        try:
            self.disconnect()
        except DepotError as close_exc:
            # Keep the body's exception; the failed close is only logged.
            logger.warning("Failed to disconnect cleanly: %s", close_exc)


def _close_quietly(p4: P4) -> None:
    try:
        if p4.connected():
            p4.disconnect()
    except Exception as exc:  # pragma: no cover - best effort
        logger.debug("Ignoring disconnect failure after aborted connect: %s", exc)
