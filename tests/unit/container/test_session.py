"""Tests for the Container session lifecycle."""

import os
import signal
import threading
import time

import pytest
from conftest import FakeBackend

from ftbfs.container import Container, NetworkUnreachableError
from ftbfs.core.runner import Runner


def make_container(backend, **kwargs):
    kwargs.setdefault("sleep", lambda seconds: None)
    return Container(backend, "ftbfs-test", "ubuntu-daily:focal", **kwargs)


def test_launch_on_enter_delete_on_exit():
    backend = FakeBackend()

    with make_container(backend) as container:
        assert backend.exists("ftbfs-test")
        assert not container.closed

    assert backend.ops("launch") == [
        ("launch", "ftbfs-test", "ubuntu-daily:focal")
    ]
    assert backend.deleted == ["ftbfs-test"]
    assert container.closed


def test_close_is_idempotent():
    backend = FakeBackend()

    with make_container(backend) as container:
        pass
    container.close()
    container.close()

    assert len(backend.ops("delete")) == 1


def test_deleted_when_block_raises():
    backend = FakeBackend()

    with pytest.raises(ValueError), make_container(backend):
        raise ValueError("boom")

    assert backend.deleted == ["ftbfs-test"]


def test_sigterm_tears_down():
    backend = FakeBackend()

    with pytest.raises(SystemExit) as excinfo, make_container(backend):
        os.kill(os.getpid(), signal.SIGTERM)

    assert excinfo.value.code == 128 + signal.SIGTERM
    assert backend.deleted == ["ftbfs-test"]


def test_signal_handlers_restored():
    before = signal.getsignal(signal.SIGTERM)

    with make_container(FakeBackend()):
        assert signal.getsignal(signal.SIGTERM) is not before

    assert signal.getsignal(signal.SIGTERM) is before


def test_failed_launch_cleans_up():
    class HalfLaunched(FakeBackend):
        def launch(self, image, name):
            super().launch(image, name)
            raise RuntimeError("image download failed")

    backend = HalfLaunched()

    with pytest.raises(RuntimeError), make_container(backend):
        pass

    assert backend.deleted == ["ftbfs-test"]


def test_wait_for_network_counts_attempts():
    sleeps = []
    backend = FakeBackend(network_down=2)

    with make_container(backend, sleep=sleeps.append,
                        network_interval=0.5) as container:
        assert container.wait_for_network("ping -c 1 example.org") == 3

    assert sleeps == [0.5, 0.5]


def test_wait_for_network_gives_up():
    backend = FakeBackend(network_down=None)

    with pytest.raises(NetworkUnreachableError), make_container(
        backend, network_attempts=5
    ) as container:
        container.wait_for_network("ping -c 1 example.org")

    assert backend.probes == 5
    assert backend.deleted == ["ftbfs-test"]


class ShellBackend(FakeBackend):
    """Runs execute() as a real host process; delete() kills it the way
    deleting an instance ends its running exec."""

    def __init__(self, pid_file):
        super().__init__()
        self.pid_file = pid_file

    def execute(self, name, command, timeout=None, log_file=None):
        self.calls.append(("execute", command))
        return Runner().execute(
            f"echo $$ > {self.pid_file}; exec {command}", check=False
        ).exited

    def delete(self, name):
        if self.pid_file.exists():
            os.kill(int(self.pid_file.read_text()), signal.SIGKILL)
        super().delete(name)


def test_sigterm_during_command_tears_down_promptly(tmp_path):
    backend = ShellBackend(tmp_path / "exec.pid")
    timer = threading.Timer(1, os.kill, (os.getpid(), signal.SIGTERM))

    start = time.monotonic()
    with pytest.raises(SystemExit), make_container(backend) as container:
        timer.start()
        container.execute("sleep 20")

    assert time.monotonic() - start < 10
    assert backend.deleted == ["ftbfs-test"]
    assert len(backend.ops("delete")) == 1
