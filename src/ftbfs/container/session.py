"""Scoped lifetime of the build container."""

import signal
import threading
import time
from pathlib import Path

from ftbfs.container.backend import ContainerBackend
from ftbfs.core.log import logger

# Signals that should tear the container down like Ctrl-C does
_TEARDOWN_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class NetworkUnreachableError(RuntimeError):
    """The container never got network access."""


class Container:
    """One ephemeral container, launched on enter and deleted on exit.

    The container is deleted exactly once whichever way the block is
    left: normal completion, an exception, KeyboardInterrupt, or
    SIGTERM/SIGHUP. On a signal the container is deleted from the
    handler, which also kills any command still running inside it, and
    SystemExit is raised once that is done.
    close() may be called again afterwards and does nothing.

    Usage:
        with Container(backend, name, image) as container:
            container.wait_for_network(probe)
            container.execute("apt-get update")
    """

    def __init__(
        self,
        backend: ContainerBackend,
        name: str,
        image: str,
        network_attempts: int = 60,
        network_interval: float = 1.0,
        sleep=time.sleep,
    ):
        self.backend = backend
        self.name = name
        self.image = image
        self.network_attempts = network_attempts
        self.network_interval = network_interval
        self._sleep = sleep
        self._closed = False
        self._previous_handlers = {}

    def __enter__(self):
        self._install_signal_handlers()
        try:
            self.backend.launch(self.image, self.name)
        except BaseException:
            # lxc may have created the instance before failing
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False

    def close(self) -> None:
        """Delete the container; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        try:
            self.backend.delete(self.name)
        finally:
            self._restore_signal_handlers()

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(
        self,
        command: str,
        timeout: int | None = None,
        log_file: Path | None = None,
    ) -> int:
        return self.backend.execute(
            self.name, command, timeout=timeout, log_file=log_file
        )

    def snapshot(self, label: str) -> None:
        self.backend.snapshot(self.name, label)

    def restore(self, label: str) -> None:
        self.backend.restore(self.name, label)

    def wait_for_network(self, probe: str) -> int:
        """Run probe until it succeeds.

        Returns:
            Number of attempts used

        Raises:
            NetworkUnreachableError: If every attempt failed
        """
        for attempt in range(1, self.network_attempts + 1):
            if self.execute(probe) == 0:
                logger.debug(
                    "Network reachable", container=self.name, attempt=attempt
                )
                return attempt
            if attempt < self.network_attempts:
                self._sleep(self.network_interval)

        raise NetworkUnreachableError(
            f"No network in container {self.name} after "
            f"{self.network_attempts} attempts"
        )

    def _install_signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in _TEARDOWN_SIGNALS:
            self._previous_handlers[signum] = signal.signal(
                signum, self._teardown_on_signal
            )

    def _teardown_on_signal(self, signum, frame):  # noqa: ARG002
        # A blocked invoke run only returns once its child exits, and
        # deleting the instance is what ends an lxc exec child.
        self.close()
        raise SystemExit(128 + signum)

    def _restore_signal_handlers(self):
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers = {}
