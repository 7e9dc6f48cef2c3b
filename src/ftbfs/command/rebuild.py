"""Rebuild command - rebuild source packages in a throwaway container."""

from __future__ import annotations

import re
import sys

from invoke.exceptions import UnexpectedExit
from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from ftbfs.container import (
    Container,
    ContainerBackend,
    LxdBackend,
    NetworkUnreachableError,
)
from ftbfs.core.log import logger
from ftbfs.core.logdir import RunLogDir
from ftbfs.distro import UnsupportedReleaseError, check_release, supported_releases

EXIT_ABORTED = 1
EXIT_USAGE = 2

# Debian policy 5.6.1
SOURCE_NAME = re.compile(r"^[a-z0-9][a-z0-9+.-]+$")


class RebuildCommand(BaseModel):
    """Rebuild source packages from the archive in a clean container.

    Launches one ephemeral container for RELEASE, provisions it and
    snapshots it, then for each SRC_PACKAGE restores the snapshot,
    fetches the source and builds it under a timeout. Per-package
    .log/.result/.time files are written to logs/<run_name>/. The
    container is deleted when the run ends, however it ends.
    """

    release: CliPositionalArg[str] = Field(
        description="Supported release name, e.g. noble"
    )
    packages: CliPositionalArg[list[str]] = Field(
        description="One or more source package names"
    )

    async def run_workflow(
        self, state: "State", backend: ContainerBackend | None = None
    ) -> int:
        """Validate arguments, then run the rebuild workflow inside a
        container session.

        Args:
            state: Loaded State
            backend: Container backend; LXD when None

        Returns:
            Exit code: 0 when the run completed (per-package failures
            live in the result files), 1 when it was aborted, 2 for
            usage errors
        """
        config = state.config

        if not self.packages:
            print("ftbfs rebuild: error: no source packages given",
                  file=sys.stderr)
            return EXIT_USAGE
        for package in self.packages:
            if not SOURCE_NAME.match(package):
                print(f"ftbfs rebuild: error: invalid source package name "
                      f"'{package}'", file=sys.stderr)
                return EXIT_USAGE
        if len(set(self.packages)) != len(self.packages):
            print("ftbfs rebuild: error: source packages given more than once",
                  file=sys.stderr)
            return EXIT_USAGE
        try:
            check_release(
                self.release,
                supported_releases(config.distro.supported_command),
            )
        except UnsupportedReleaseError as e:
            print(f"ftbfs rebuild: error: {e}", file=sys.stderr)
            return EXIT_USAGE
        except UnexpectedExit as e:
            print(f"ftbfs rebuild: error: cannot list supported releases: "
                  f"{e.result.command!r} exited with {e.result.exited}",
                  file=sys.stderr)
            return EXIT_ABORTED

        rebuild = state.runtime.rebuild
        rebuild.release = self.release
        rebuild.packages = list(self.packages)
        rebuild.log_dir = RunLogDir(config.log_root, config.run_name)

        logger.info(
            f"Starting rebuild of {len(rebuild.packages)} package(s) "
            f"for {self.release} in {rebuild.log_dir.run_dir}"
        )

        from ftbfs.workflow.graph import create_workflow
        from ftbfs.workflow.nodes.provision import Provision, ProvisioningError

        container = Container(
            backend or LxdBackend(config.commands["lxc"]),
            name=config.container_name,
            image=f"{config.container.image_remote}:{self.release}",
            network_attempts=config.container.network_attempts,
            network_interval=config.container.network_interval,
        )
        workflow = create_workflow()

        try:
            with container:
                rebuild.container = container
                async with workflow.iter(Provision(), state=state) as run:
                    async for node in run:
                        if hasattr(node, 'data'):
                            return 0
        except (NetworkUnreachableError, ProvisioningError) as e:
            logger.error(f"Rebuild aborted: {e}")
            return EXIT_ABORTED
        except UnexpectedExit as e:
            logger.error(
                f"Rebuild aborted: {e.result.command!r} exited with "
                f"{e.result.exited}: {e.result.stderr.strip()}"
            )
            return EXIT_ABORTED

        logger.error("Rebuild failed - workflow ended unexpectedly")
        return EXIT_ABORTED
