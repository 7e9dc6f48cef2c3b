"""Pytest configuration and fixtures for ftbfs tests."""

import re
import sys
import tempfile
from pathlib import Path

import pytest

from ftbfs.core.log import ConsoleSink, setup_logger

BUILD_DIR = re.compile(r"/root/build/(\S+?)-\*/")
FETCH = re.compile(r"pull-lp-source (\S+) ")


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only debug logging; nothing is sent to logfire.dev."""
    setup_logger(
        log_root=Path(tempfile.gettempdir()) / "ftbfs-tests",
        run_name="test",
        level="debug",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def state(tmp_path, monkeypatch):
    """A fully loaded State writing its run logs under tmp_path.

    sys.argv is replaced so settings loading does not try to parse
    pytest's own arguments.
    """
    from ftbfs.core.config import State

    monkeypatch.setattr(sys, "argv", ["ftbfs"])
    state = State()
    state.config.log_root = tmp_path / "logs"
    state.config.run_name = "20240101-120000"
    state.config.container.network_interval = 0
    return state


class FakeBackend:
    """In-memory ContainerBackend.

    Args:
        missing: Packages whose source fetch fails
        results: Build exit status per package (default 0)
        deps_fail: Build-dependency exit status per package
        network_down: Number of failing network probes before success;
            None means the network never comes up
        interrupt_on: Package whose build raises KeyboardInterrupt
    """

    def __init__(
        self,
        missing=(),
        results=None,
        deps_fail=None,
        network_down=0,
        interrupt_on=None,
    ):
        self.missing = set(missing)
        self.results = results or {}
        self.deps_fail = deps_fail or {}
        self.network_down = network_down
        self.interrupt_on = interrupt_on
        self.instances = set()
        self.snapshots = {}
        self.calls = []
        self.deleted = []
        self.probes = 0

    def launch(self, image, name):
        self.calls.append(("launch", name, image))
        self.instances.add(name)

    def snapshot(self, name, label):
        self.calls.append(("snapshot", name, label))
        self.snapshots.setdefault(name, set()).add(label)

    def restore(self, name, label):
        assert label in self.snapshots.get(name, set())
        self.calls.append(("restore", name, label))

    def execute(self, name, command, timeout=None, log_file=None):
        assert name in self.instances
        self.calls.append(("execute", command))

        if command.startswith("ping"):
            self.probes += 1
            if self.network_down is None or self.probes <= self.network_down:
                return 2
            return 0

        fetch = FETCH.search(command)
        if fetch:
            return 1 if fetch.group(1) in self.missing else 0

        build_dir = BUILD_DIR.search(command)
        if not build_dir:
            return 0
        package = build_dir.group(1)

        if log_file:
            with open(log_file, "a") as f:
                f.write(f"$ {command}\n")

        if "build-dep" in command:
            return self.deps_fail.get(package, 0)
        if package == self.interrupt_on:
            raise KeyboardInterrupt
        return self.results.get(package, 0)

    def delete(self, name):
        self.calls.append(("delete", name))
        if name in self.instances:
            self.instances.discard(name)
            self.deleted.append(name)

    def exists(self, name):
        return name in self.instances

    def ops(self, op):
        return [call for call in self.calls if call[0] == op]


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def supported(monkeypatch):
    """Pretend bionic and focal are the supported releases."""
    calls = []

    def fake_supported_releases(command, runner=None):  # noqa: ARG001
        calls.append(command)
        return ["bionic", "focal"]

    monkeypatch.setattr(
        "ftbfs.command.rebuild.supported_releases", fake_supported_releases
    )
    return calls
