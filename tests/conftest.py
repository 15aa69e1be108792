"""Shared pytest fixtures for k8s-manager tests.

FakeKubectl stands in for the kubectl adapter: it answers lookups from a
canned cluster state and records every call so tests can assert on the
exact kubectl arguments.
"""

from pathlib import Path
from typing import Iterable, Optional

import pytest

from k8s_manager.commands import Manager
from k8s_manager.config import Settings
from k8s_manager.context import Options

MUTATING_VERBS = {"apply", "delete", "scale", "rollout"}


class FakeKubectl:
    """Record kubectl calls and answer from canned state."""

    def __init__(
        self,
        workloads: Iterable[tuple[str, str]] = (),
        pods: Optional[dict[str, list[str]]] = None,
        failing: Iterable[str] = (),
        installed: bool = True,
        reachable: bool = True,
    ) -> None:
        self.binary = "kubectl"
        self.verbose = False
        self.workloads = set(workloads)
        self.pods = pods or {}
        self.failing = set(failing)
        self.installed = installed
        self.reachable = reachable
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def available(self) -> bool:
        return self.installed

    def probe(self, *args: str) -> bool:
        self.calls.append(("probe", args))
        if args[0] == "cluster-info":
            return self.reachable
        if args[0] == "get" and len(args) >= 3:
            return (args[1], args[2]) in self.workloads
        return False

    def capture(self, *args: str) -> tuple[bool, str]:
        self.calls.append(("capture", args))
        if args[:2] == ("get", "pods") and "-l" in args:
            app = args[args.index("-l") + 1].split("=", 1)[1]
            return True, " ".join(self.pods.get(app, []))
        if args[:2] == ("get", "all"):
            return True, "\n".join(f"{kind}.apps/{name}" for kind, name in sorted(self.workloads))
        return True, ""

    def stream(self, *args: str) -> bool:
        self.calls.append(("stream", args))
        return args[0] not in self.failing

    def attach(self, *args: str) -> bool:
        self.calls.append(("attach", args))
        return args[0] not in self.failing

    def write_to(self, path: Path, *args: str, append: bool = False) -> bool:
        self.calls.append(("write_to", args))
        with open(path, "a" if append else "w", encoding="utf-8") as f:
            f.write(f"# {' '.join(args)}\n")
        return args[0] not in self.failing

    def streamed(self) -> list[tuple[str, ...]]:
        """Arguments of every streamed call, in order."""
        return [args for mode, args in self.calls if mode == "stream"]

    def mutating_calls(self) -> list[tuple[str, ...]]:
        """Arguments of every call that changes cluster state."""
        return [
            args
            for mode, args in self.calls
            if mode in ("stream", "attach") and args[0] in MUTATING_VERBS
            and args[:2] != ("rollout", "status")
        ]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings that log under tmp_path and never sleep."""
    return Settings(log_dir=tmp_path / "logs", status_delay=0)


@pytest.fixture
def options(settings: Settings) -> Options:
    """Options with no namespace selected and a fixed timestamp."""
    return Options(timestamp="20240101-120000", settings=settings)


@pytest.fixture
def make_manager(options: Options):
    """Build a Manager around a FakeKubectl."""

    def factory(namespace: str = "", **state) -> tuple[Manager, FakeKubectl]:
        options.namespace = namespace
        kubectl = FakeKubectl(**state)
        return Manager(kubectl, options), kubectl

    return factory


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Point the CLI at a FakeKubectl and a temporary log directory."""
    monkeypatch.setenv("K8S_MANAGER_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("K8S_MANAGER_STATUS_DELAY", "0")
    monkeypatch.setattr("k8s_manager.cli.current_context", lambda: "test-context")

    def install(**state) -> FakeKubectl:
        kubectl = FakeKubectl(**state)
        monkeypatch.setattr("k8s_manager.cli.Kubectl", lambda *args, **kwargs: kubectl)
        return kubectl

    return install
