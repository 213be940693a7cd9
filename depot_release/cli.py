from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence

from pydantic import ValidationError

from .client import PerforceClient
from .commands import doctor as cmd_doctor
from .commands import release as cmd_release
from .config import Settings, find_config
from .errors import DepotError

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}

MASK = "****"


class SecretMaskingFormatter(logging.Formatter):
    def __init__(self, fmt: str, secrets: Iterable[Optional[str]]) -> None:
        super().__init__(fmt)
        self.secrets = [secret for secret in secrets if secret]

    def _mask(self, message: str) -> str:
        for secret in self.secrets:
            message = message.replace(secret, MASK)
        return message

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return self._mask(message)


class ColorFormatter(SecretMaskingFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depot-release",
        description="Perforce changelist and label automation for releases",
    )
    parser.add_argument("--config", type=Path, help="Path to depot-release.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    doctor_parser = subparsers.add_parser("doctor", help="Check connection settings")
    doctor_parser.add_argument(
        "--connect",
        action="store_true",
        help="Also open a session and bind the workspace",
    )

    change_parser = subparsers.add_parser("changelist", help="Manage changelists")
    change_sub = change_parser.add_subparsers(dest="action", required=True)
    create_parser = change_sub.add_parser("create", help="Create an empty changelist")
    create_parser.add_argument("--description", default=None)
    change_sub.add_parser("default", help="Print the default changelist id")
    edit_parser = change_sub.add_parser("edit", help="Open files for edit")
    edit_parser.add_argument("id", type=int)
    edit_parser.add_argument("paths", nargs="+")
    commit_parser = change_sub.add_parser("commit", help="Submit a changelist")
    commit_parser.add_argument("id", type=int)
    commit_parser.add_argument("-m", "--message", required=True)
    revert_parser = change_sub.add_parser(
        "revert", help="Revert all files and delete the changelist"
    )
    revert_parser.add_argument("id", type=int)
    delete_parser = change_sub.add_parser("delete", help="Delete a pending changelist")
    delete_parser.add_argument("id", type=int)

    label_parser = subparsers.add_parser("label", help="Manage labels")
    label_sub = label_parser.add_subparsers(dest="action", required=True)
    label_create = label_sub.add_parser("create", help="Label a changelist")
    label_create.add_argument("name")
    label_create.add_argument("--changelist", type=int, required=True)
    label_create.add_argument("--description", default=None)
    label_delete = label_sub.add_parser("delete", help="Delete a label")
    label_delete.add_argument("name")

    release_parser = subparsers.add_parser(
        "release", help="Edit, submit and optionally label files in one changelist"
    )
    release_parser.add_argument("paths", nargs="+")
    release_parser.add_argument("-m", "--message", required=True)
    release_parser.add_argument("--label", default=None)
    release_parser.add_argument("--label-description", default=None)
    release_parser.add_argument(
        "--no-revert",
        action="store_true",
        help="Leave the changelist in place when the release fails",
    )
    return parser


def configure_logging(level: str, secrets: Iterable[Optional[str]]) -> WarningBufferHandler:
    secrets = list(secrets)
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, secrets))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(SecretMaskingFormatter(LOG_FORMAT, secrets))
    root_logger.addHandler(warn_buffer)
    return warn_buffer


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.load(find_config(args.config))
    except FileNotFoundError as exc:
        raise SystemExit(f"Configuration error: {exc}")
    except ValidationError as exc:
        raise SystemExit(f"Invalid configuration: {exc}")
    warn_buffer = configure_logging(args.log_level, [settings.depot.password])

    try:
        if args.command == "doctor":
            report = cmd_doctor.run(settings, connect=args.connect)
            for line in report.lines():
                print(line)
            if not report.ok:
                raise SystemExit(1)
            return
        with PerforceClient.create(settings) as client:
            _dispatch(args, settings, client)
    except DepotError as exc:
        logging.getLogger(__name__).error("%s", exc)
        raise SystemExit(1)
    finally:
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m", file=sys.stderr)
            for line in warn_buffer.records:
                print(f" - {line}", file=sys.stderr)


def _dispatch(args: argparse.Namespace, settings: Settings, client: PerforceClient) -> None:
    match (args.command, getattr(args, "action", None)):
        case ("changelist", "create"):
            print(client.create_changelist(args.description))
        case ("changelist", "default"):
            print(client.default_changelist_id())
        case ("changelist", "edit"):
            for spec in client.edit_file(args.id, *args.paths):
                print(f"{spec.path or '-'}: {spec.message or spec.status.value}")
        case ("changelist", "commit"):
            print(client.commit(args.id, args.message))
        case ("changelist", "revert"):
            client.revert(args.id)
        case ("changelist", "delete"):
            client.delete_changelist(args.id)
        case ("label", "create"):
            description = args.description or settings.release.label_description
            label = client.create_label(args.name, description, args.changelist)
            print(f"{label.name} {label.revision}")
        case ("label", "delete"):
            client.delete_label(args.name)
        case ("release", _):
            result = cmd_release.run(
                client,
                args.paths,
                message=args.message,
                label=args.label,
                label_description=args.label_description
                or settings.release.label_description,
                revert_on_failure=settings.release.revert_on_failure
                and not args.no_revert,
            )
            print(result.submitted_id)
        case _:
            raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    main()
