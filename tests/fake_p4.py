from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional
from unittest.mock import patch

from P4 import P4, P4Exception

from depot_release.models import ConnectionConfig
from depot_release.perforce.session import DepotSession

DEFAULT_VIEW = [
    "//depot/app/... //ci-client/app/...",
    "-//depot/app/secret/... //ci-client/app/secret/...",
    '"//depot/app/with space/..." "//ci-client/app/with space/..."',
]


class FakeMessage:
    def __init__(self, severity: int, text: str) -> None:
        self.severity = severity
        self.text = text

    def __str__(self) -> str:
        return self.text


class FakeP4:
    """In-memory stand-in for ``P4.P4`` that records every call."""

    def __init__(
        self,
        *,
        clients: Iterable[str] = ("ci-client",),
        view: Optional[List[str]] = None,
        owner: str = "svc",
        labels: Iterable[str] = (),
        failures: Optional[Dict[str, BaseException]] = None,
    ) -> None:
        self.port: Optional[str] = None
        self.user: str = ""
        self.password: Optional[str] = None
        self.client: Optional[str] = None
        self.charset: Optional[str] = None
        self.exception_level = P4.RAISE_ALL
        self.messages: list = []
        self.calls: list[tuple] = []
        self.clients = list(clients)
        self.view = DEFAULT_VIEW if view is None else view
        self.owner = owner
        self.labels = set(labels)
        self.failures = dict(failures or {})
        self.changes: Dict[str, dict] = {}
        self.opened: Dict[str, List[str]] = {}
        self.edit_messages: list = []
        self.submit_as: Optional[int] = None
        self.next_change = 100
        self._connected = False

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def _raise_for_messages(self) -> None:
        # Mirrors the SDK: RAISE_ALL raises on warnings, RAISE_ERROR on errors only.
        if self.exception_level == P4.RAISE_NONE:
            return
        threshold = P4.E_WARN if self.exception_level == P4.RAISE_ALL else P4.E_FAILED
        raised = [m for m in self.messages if m.severity >= threshold]
        if raised:
            raise P4Exception(str(raised[0]))

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def calls_to(self, name: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == name]

    def add_change(
        self, change_id: int, *, status: str = "pending", files: Iterable[str] = ()
    ) -> None:
        key = str(change_id)
        self.changes[key] = {
            "Change": key,
            "Status": status,
            "Client": "ci-client",
            "User": "svc",
            "Description": "Artifactory release plugin\n",
            "Files": [f"{path}\t# edit" for path in files],
        }
        if status == "pending":
            self.opened[key] = list(files)

    # connection

    def connect(self) -> "FakeP4":
        self._record("connect")
        self._connected = True
        return self

    def disconnect(self) -> None:
        self._record("disconnect")
        self._connected = False

    def connected(self) -> bool:
        return self._connected

    @contextmanager
    def at_exception_level(self, level: int):
        previous = self.exception_level
        self.exception_level = level
        try:
            yield
        finally:
            self.exception_level = previous

    def run_trust(self, *args):
        self._record("run_trust", *args)
        return ["Trust already established."]

    def run_login(self, *args):
        self._record("run_login", *args)
        return [{"User": self.user, "Expiration": "43200"}]

    def run_clients(self, *args):
        self._record("run_clients", *args)
        return [{"client": name} for name in self.clients if name == args[-1]]

    def fetch_client(self, name: str):
        self._record("fetch_client", name)
        return {"Client": name, "Owner": self.owner, "Root": "/ws", "View": list(self.view)}

    # changelists

    def fetch_change(self, *args):
        self._record("fetch_change", *args)
        if not args:
            return {
                "Change": "new",
                "Status": "new",
                "Client": self.client,
                "User": self.user,
                "Description": "<enter description here>\n",
                "Files": ["//depot/app/stray.txt\t# edit"],
            }
        key = str(args[0])
        if key not in self.changes:
            raise P4Exception(f"Change {key} unknown.")
        return dict(self.changes[key])

    def save_change(self, spec):
        self._record("save_change", dict(spec))
        if spec["Change"] == "new":
            key = str(self.next_change)
            self.next_change += 1
            self.changes[key] = dict(spec, Change=key, Status="pending")
            self.opened[key] = []
            return [f"Change {key} created."]
        self.changes[spec["Change"]].update(spec)
        return [f"Change {spec['Change']} updated."]

    def run_opened(self, *args):
        self._record("run_opened", *args)
        key = args[-1]
        paths = self.opened.get(key, [])
        self.messages = []
        if not paths:
            self.messages = [FakeMessage(P4.E_WARN, "File(s) not opened on this client.")]
            self._raise_for_messages()
        return [{"depotFile": path, "change": key} for path in paths]

    def run_edit(self, *args):
        self._record("run_edit", *args)
        key = args[1]
        self.messages = list(self.edit_messages)
        self._raise_for_messages()
        results = []
        for path in args[2:]:
            if any(path in str(message) for message in self.messages):
                continue
            depot = path if path.startswith("//") else f"//depot/app/{path.rsplit('/', 1)[-1]}"
            self.opened.setdefault(key, []).append(depot)
            results.append({"depotFile": depot, "clientFile": path, "action": "edit"})
        return results

    def run_submit(self, *args):
        form = args[0]
        self._record("run_submit", dict(form), *args[1:])
        key = form["Change"]
        submitted = str(self.submit_as or key)
        change = self.changes.pop(key)
        change.update(form, Change=submitted, Status="submitted")
        self.changes[submitted] = change
        self.opened.pop(key, None)
        return [
            {"change": key, "openFiles": str(len(form["Files"]))},
            {"submittedChange": submitted},
        ]

    def run_revert(self, *args):
        self._record("run_revert", *args)
        key = args[1]
        reverted = self.opened.pop(key, [])
        self.opened[key] = []
        return [{"depotFile": path, "action": "reverted"} for path in reverted]

    def run_change(self, *args):
        self._record("run_change", *args)
        if args[0] == "-d":
            key = args[1]
            if self.opened.get(key):
                raise P4Exception(
                    f"Change {key} has {len(self.opened[key])} open file(s) associated with it and can't be deleted."
                )
            self.changes.pop(key, None)
            return [f"Change {key} deleted."]
        return []

    # labels

    def run_labels(self, *args):
        self._record("run_labels", *args)
        name = args[-1]
        return [{"label": name}] if name in self.labels else []

    def fetch_label(self, name: str):
        self._record("fetch_label", name)
        return {
            "Label": name,
            "Owner": self.user,
            "Description": "Created by svc.\n",
            "Options": "unlocked noautoreload",
            "View": ["//depot/..."],
        }

    def save_label(self, spec):
        self._record("save_label", dict(spec))
        self.labels.add(spec["Label"])
        return [f"Label {spec['Label']} saved."]

    def run_label(self, *args):
        self._record("run_label", *args)
        if args[0] == "-d":
            name = args[-1]
            if name not in self.labels:
                raise P4Exception(f"Label '{name}' doesn't exist.")
            self.labels.discard(name)
            return [f"Label {name} deleted."]
        return []


def make_config(**overrides) -> ConnectionConfig:
    values = dict(
        host_address="ssl:depot.example.org:1666",
        client_id="ci-client",
        username="svc",
        password="secret",
        charset=None,
    )
    values.update(overrides)
    return ConnectionConfig(**values)


def connected_session(fake: FakeP4, **overrides) -> DepotSession:
    session = DepotSession(make_config(**overrides))
    with patch("depot_release.perforce.session.P4", return_value=fake):
        session.connect()
    return session
