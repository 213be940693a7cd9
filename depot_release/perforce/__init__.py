from __future__ import annotations

from .builder import ConnectionBuilder
from .changelists import ChangelistManager
from .labels import LabelManager
from .negotiator import parse_host_address, resolve_charset
from .session import DepotSession

__all__ = [
    "ChangelistManager",
    "ConnectionBuilder",
    "DepotSession",
    "LabelManager",
    "parse_host_address",
    "resolve_charset",
]
