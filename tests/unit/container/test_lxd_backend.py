"""Tests for the lxc command line backend."""

from types import SimpleNamespace

import pytest
import yaml

from ftbfs.container import LxdBackend
from ftbfs.core.yaml_settings import DEFAULTS_FILE


@pytest.fixture
def templates():
    with open(DEFAULTS_FILE) as f:
        return yaml.safe_load(f)["config"]["commands"]["lxc"]


class RecordingRunner:
    """Stands in for Runner; `lxc list` reports the given names."""

    def __init__(self, listed=(), exited=0):
        self.listed = list(listed)
        self.exited = exited
        self.commands = []

    def execute(self, command, **kwargs):
        self.commands.append((command, kwargs))
        stdout = "\n".join(self.listed) + "\n" if "lxc list" in command else ""
        return SimpleNamespace(stdout=stdout, stderr="", exited=self.exited)


def test_launch_is_ephemeral(templates):
    runner = RecordingRunner()

    LxdBackend(templates, runner).launch("ubuntu-daily:bionic", "ftbfs-1")

    assert runner.commands[0][0] == (
        "lxc launch ubuntu-daily:bionic ftbfs-1 --ephemeral"
    )


def test_snapshot_and_restore(templates):
    runner = RecordingRunner()
    backend = LxdBackend(templates, runner)

    backend.snapshot("ftbfs-1", "base")
    backend.restore("ftbfs-1", "base")

    assert [c for c, _ in runner.commands] == [
        "lxc snapshot ftbfs-1 base",
        "lxc restore ftbfs-1 base",
    ]


def test_execute_quotes_command_and_returns_status(templates, tmp_path):
    runner = RecordingRunner(exited=124)
    log_file = tmp_path / "vim.log"

    status = LxdBackend(templates, runner).execute(
        "ftbfs-1", "cd /root/build && make", timeout=960, log_file=log_file
    )

    assert status == 124
    command, kwargs = runner.commands[0]
    assert command == "lxc exec ftbfs-1 -- sh -c 'cd /root/build && make'"
    assert kwargs["timeout"] == 960
    assert kwargs["log_file"] == log_file
    assert kwargs["append"] is True
    assert kwargs["check"] is False


def test_delete_existing(templates):
    runner = RecordingRunner(listed=["ftbfs-1", "other"])

    LxdBackend(templates, runner).delete("ftbfs-1")

    assert runner.commands[-1][0] == "lxc delete --force ftbfs-1"


def test_delete_absent_is_noop(templates):
    runner = RecordingRunner(listed=["ftbfs-10"])

    LxdBackend(templates, runner).delete("ftbfs-1")

    assert not any("delete" in c for c, _ in runner.commands)
