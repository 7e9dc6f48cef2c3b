"""BuildPackage node - one clean rebuild attempt for one package."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime

from pydantic_graph import BaseNode, GraphRunContext

from ftbfs.core.config import State
from ftbfs.core.log import logger
from ftbfs.core.result import SOURCE_NOT_FOUND, PackageResult


@dataclass
class BuildPackage(BaseNode[State]):
    """Rebuild packages[index] from the base snapshot and record the
    outcome. Package failures are recorded, never raised; only a
    container that loses its network aborts the run."""

    index: int

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "BuildPackage | Finalize":
        rebuild = ctx.state.runtime.rebuild
        package = rebuild.packages[self.index]

        logger.info(
            f"[{self.index + 1}/{len(rebuild.packages)}] "
            f"Rebuilding {package} for {rebuild.release}"
        )
        with logger.span("Rebuild {package}", package=package):
            result = self.attempt(ctx.state, package)

        rebuild.log_dir.record(result)
        rebuild.results.append(result)
        log = logger.info if result.success else logger.warn
        log(
            f"{package}: {result.status} "
            f"(result {result.returncode}, {result.duration}s)"
        )

        if self.index + 1 < len(rebuild.packages):
            return BuildPackage(index=self.index + 1)

        from ftbfs.workflow.nodes.finalize import Finalize
        return Finalize()

    def attempt(self, state: State, package: str) -> PackageResult:
        config = state.config
        rebuild = state.runtime.rebuild
        container = rebuild.container
        build = config.commands["build"]
        fields = {
            "package": package,
            "release": rebuild.release,
            "workdir": config.container.workdir,
            "timeout": config.rebuild.timeout,
        }
        timestamp = datetime.now()

        container.restore(config.container.base_snapshot)
        container.wait_for_network(build["network_probe"])

        if container.execute(build["fetch_source"].format(**fields)) != 0:
            logger.warn(f"{package}: not found for {rebuild.release}")
            return PackageResult(
                package=package,
                returncode=SOURCE_NOT_FOUND,
                timestamp=timestamp,
            )

        log_file = rebuild.log_dir.log_file(package)
        for step in ("update", "build_deps"):
            returncode = container.execute(
                build[step].format(**fields), log_file=log_file
            )
            if returncode != 0:
                logger.warn(f"{package}: {step} failed with {returncode}")
                return PackageResult(
                    package=package,
                    returncode=returncode,
                    log_file=log_file,
                    timestamp=timestamp,
                )

        # The in-container timeout(1) is the real limit; the host-side
        # timeout only catches an exec that hangs past it.
        start = time.monotonic()
        returncode = container.execute(
            build["build"].format(**fields),
            timeout=config.rebuild.timeout + config.rebuild.grace,
            log_file=log_file,
        )
        duration = int(time.monotonic() - start)

        return PackageResult(
            package=package,
            returncode=returncode,
            duration=duration,
            log_file=log_file,
            timestamp=timestamp,
        )
