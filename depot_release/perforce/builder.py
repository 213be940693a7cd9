from __future__ import annotations

from typing import Optional

from ..config import DepotSettings
from ..errors import configuration_error
from ..models import ConnectionConfig
from .session import DepotSession


class ConnectionBuilder:
    """Collects connection parameters and validates them before any I/O."""

    def __init__(self) -> None:
        self._host_address: Optional[str] = None
        self._client_id: Optional[str] = None
        self._username: Optional[str] = None
        self._password: Optional[str] = None
        self._charset: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: DepotSettings) -> "ConnectionBuilder":
        return (
            cls()
            .host_address(settings.host_address)
            .client(settings.client_id)
            .username(settings.username)
            .password(settings.password)
            .charset(settings.charset)
        )

    def host_address(self, host_address: Optional[str]) -> "ConnectionBuilder":
        """Set the server address, ``[ssl:]host[:port]``."""
        self._host_address = host_address
        return self

    def client(self, client_id: Optional[str]) -> "ConnectionBuilder":
        self._client_id = client_id
        return self

    def username(self, username: Optional[str]) -> "ConnectionBuilder":
        self._username = username
        return self

    def password(self, password: Optional[str]) -> "ConnectionBuilder":
        self._password = password
        return self

    def charset(self, charset: Optional[str]) -> "ConnectionBuilder":
        self._charset = charset
        return self

    def config(self) -> ConnectionConfig:
        if _is_blank(self._client_id):
            raise configuration_error("Client clientId cannot be empty")
        if _is_blank(self._host_address):
            raise configuration_error("Hostname cannot be empty")
        return ConnectionConfig(
            host_address=self._host_address.strip(),
            client_id=self._client_id.strip(),
            username=None if _is_blank(self._username) else self._username,
            password=None if _is_blank(self._password) else self._password,
            charset=None if _is_blank(self._charset) else self._charset,
        )

    def build(self) -> DepotSession:
        """Return an unconnected session; call ``connect()`` or use ``with``."""
        return DepotSession(self.config())


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()
