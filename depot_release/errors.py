from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from P4 import P4Exception

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    OPERATION = "operation"


class DepotError(IOError):
    """The one failure callers see from the depot layer.

    ``kind`` says which stage failed, ``message`` is the human-readable text
    (server messages are kept verbatim) and ``cause`` is the SDK error, if any.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"DepotError(kind={self.kind.value!r}, message={self.message!r})"


def configuration_error(message: str) -> DepotError:
    return DepotError(ErrorKind.CONFIGURATION, message)


def connection_error(message: str, cause: Optional[BaseException] = None) -> DepotError:
    return DepotError(ErrorKind.CONNECTION, message, cause)


def operation_error(message: str, cause: Optional[BaseException] = None) -> DepotError:
    return DepotError(ErrorKind.OPERATION, message, cause)


def describe_failure(exc: BaseException) -> str:
    """Server text of a failure: P4 errors, then P4 warnings, else ``str(exc)``.

    ``str(exc)`` on a command failure is the SDK summary line, so the message
    lists are read first; the fallback covers connection failures and OS errors.
    """
    for attr in ("errors", "warnings"):
        items = getattr(exc, attr, None)
        if items:
            return "; ".join(str(item).strip() for item in items)
    return str(exc).strip()


@contextmanager
def translate_errors(kind: ErrorKind) -> Iterator[None]:
    """Re-raise SDK and transport failures as :class:`DepotError`."""
    try:
        yield
    except DepotError:
        raise
    except (P4Exception, OSError) as exc:
        detail = describe_failure(exc)
        logger.debug("Perforce call failed (%s): %s", kind.value, detail)
        raise DepotError(
            kind, f"Perforce execution failed: '{detail}'", cause=exc
        ) from exc
