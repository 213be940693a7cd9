"""
Session negotiation against a Perforce server.

The negotiator turns a :class:`ConnectionConfig` into a connected ``P4``
instance with a bound client workspace:

1. the host address picks the transport (``ssl:`` prefix, any letter case);
2. the charset is applied if Perforce knows it, otherwise ``none``;
3. the transport is connected and, for SSL, the server fingerprint is
   auto-accepted (``p4 trust -f -y``) without manual verification;
4. the user is set and ``p4 login`` runs only when a password was given;
5. the named workspace is fetched and bound as the current client.

Every failure surfaces as a ``DepotError`` of kind ``CONNECTION``.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import ErrorKind, connection_error, translate_errors
from ..models import ConnectionConfig, ConnectionTarget, Workspace

logger = logging.getLogger(__name__)

SSL_SCHEME = "ssl"
FALLBACK_CHARSET = "none"

SUPPORTED_CHARSETS = frozenset(
    {
        "auto",
        "none",
        "cp1250",
        "cp1251",
        "cp1253",
        "cp737",
        "cp850",
        "cp852",
        "cp858",
        "cp866",
        "cp936",
        "cp949",
        "cp950",
        "eucjp",
        "iso8859-1",
        "iso8859-5",
        "iso8859-7",
        "iso8859-15",
        "koi8-r",
        "macosroman",
        "shiftjis",
        "utf16",
        "utf16-nobom",
        "utf16be",
        "utf16be-bom",
        "utf16le",
        "utf16le-bom",
        "utf32",
        "utf32-nobom",
        "utf32be",
        "utf32be-bom",
        "utf32le",
        "utf32le-bom",
        "utf8",
        "utf8-bom",
        "utf8unchecked",
        "utf8unchecked-bom",
        "winansi",
        "winoemansi",
    }
)


def parse_host_address(host_address: str) -> ConnectionTarget:
    address = host_address.strip()
    scheme, sep, rest = address.partition(":")
    if sep and scheme.lower() == SSL_SCHEME:
        return ConnectionTarget(secure=True, address=rest)
    return ConnectionTarget(secure=False, address=address)


def resolve_charset(charset: Optional[str]) -> Optional[str]:
    if charset is None or not charset.strip():
        return None
    candidate = charset.strip().lower()
    if candidate in SUPPORTED_CHARSETS:
        return candidate
    logger.debug(
        "Charset %r is not supported by Perforce; using %r", charset, FALLBACK_CHARSET
    )
    return FALLBACK_CHARSET


def negotiate(p4, config: ConnectionConfig) -> Workspace:
    """Connect ``p4`` according to ``config`` and return the bound workspace."""
    target = parse_host_address(config.host_address)
    charset = resolve_charset(config.charset)
    with translate_errors(ErrorKind.CONNECTION):
        p4.port = target.port
        if charset is not None:
            p4.charset = charset
        logger.info(
            "Connecting to Perforce at %s (%s)", target.address, target.transport
        )
        p4.connect()
        if target.secure:
            logger.info("Auto-accepting SSL fingerprint of %s", target.address)
            p4.run_trust("-f", "-y")
        if config.username:
            p4.user = config.username
        if config.password:
            p4.password = config.password
            p4.run_login()
        workspace = bind_workspace(p4, config.client_id)
    logger.info(
        "Connected as %s, bound workspace %s", p4.user or "<default>", workspace.name
    )
    return workspace


def bind_workspace(p4, client_id: str) -> Workspace:
    known = p4.run_clients("-e", client_id)
    wanted = client_id.lower()
    if not any(str(entry.get("client", "")).lower() == wanted for entry in known):
        raise connection_error(f"Client workspace '{client_id}' does not exist")
    p4.client = client_id
    try:
        return Workspace.from_spec(p4.fetch_client(client_id))
    except ValueError as exc:
        raise connection_error(
            f"Client workspace '{client_id}' has an unreadable view: {exc}", exc
        ) from exc
