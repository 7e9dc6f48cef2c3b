"""Container hypervisor access.

Everything the harness does to a container goes through the narrow
ContainerBackend interface, so tests can substitute an in-memory fake
for the real LXD client.
"""

import shlex
from pathlib import Path
from typing import Protocol

from ftbfs.core.log import logger
from ftbfs.core.runner import Runner


class ContainerBackend(Protocol):
    """Operations on named container instances."""

    def launch(self, image: str, name: str) -> None:
        ...

    def snapshot(self, name: str, label: str) -> None:
        ...

    def restore(self, name: str, label: str) -> None:
        ...

    def execute(
        self,
        name: str,
        command: str,
        timeout: int | None = None,
        log_file: Path | None = None,
    ) -> int:
        """Run a shell command in the instance and return its exit
        status. Output is appended to log_file when given."""
        ...

    def delete(self, name: str) -> None:
        ...

    def exists(self, name: str) -> bool:
        ...


class LxdBackend:
    """ContainerBackend implemented with the ``lxc`` command line.

    Commands are rendered from the ``lxc`` templates in the
    configuration, e.g. ``lxc launch {image} {container} --ephemeral``.
    Lifecycle commands raise invoke.UnexpectedExit on failure;
    execute() reports the exit status instead.
    """

    def __init__(self, templates: dict[str, str], runner: Runner | None = None):
        self.templates = templates
        self.runner = runner or Runner()

    def _run(self, template: str, **fields):
        command = self.templates[template].format(**fields)
        return self.runner.execute(command, check=True)

    def launch(self, image: str, name: str) -> None:
        logger.info("Launching container", container=name, image=image)
        self._run("launch", image=image, container=name)

    def snapshot(self, name: str, label: str) -> None:
        logger.debug("Taking snapshot", container=name, label=label)
        self._run("snapshot", container=name, label=label)

    def restore(self, name: str, label: str) -> None:
        logger.debug("Restoring snapshot", container=name, label=label)
        self._run("restore", container=name, label=label)

    def execute(
        self,
        name: str,
        command: str,
        timeout: int | None = None,
        log_file: Path | None = None,
    ) -> int:
        logger.debug("Running in container", container=name, command=command)
        rendered = self.templates["exec"].format(
            container=name, command=shlex.quote(command)
        )
        result = self.runner.execute(
            rendered,
            timeout=timeout,
            log_file=log_file,
            append=True,
            log_level="spew",
            check=False,
        )
        return result.exited

    def delete(self, name: str) -> None:
        if not self.exists(name):
            logger.debug("Container already gone", container=name)
            return
        logger.info("Deleting container", container=name)
        self._run("delete", container=name)

    def exists(self, name: str) -> bool:
        result = self._run("list")
        return name in result.stdout.split()
