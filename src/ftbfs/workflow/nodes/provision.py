"""Provision node - prepare the container and take the base snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from ftbfs.core.config import State
from ftbfs.core.log import logger

# Leading underscore keeps it apart from <package>.log files
PROVISION_LOG = "_provision.log"


class ProvisioningError(RuntimeError):
    """A base image preparation step failed."""


@dataclass
class Provision(BaseNode[State]):
    """Bring the fresh container up to date, install the build tooling
    and snapshot it as the clean base every package starts from."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> "BuildPackage | Finalize":
        config = ctx.state.config
        rebuild = ctx.state.runtime.rebuild
        container = rebuild.container
        build = config.commands["build"]
        log_file = rebuild.log_dir.run_dir / PROVISION_LOG

        rebuild.status = "provisioning"
        with logger.span("Provisioning {container}", container=container.name):
            container.wait_for_network(build["network_probe"])

            steps = [
                ("update", build["update"]),
                ("upgrade", build["upgrade"]),
                ("install_tooling", build["install_tooling"].format(
                    packages=" ".join(config.rebuild.tooling)
                )),
            ]
            for step, command in steps:
                logger.info(f"Provisioning step: {step}")
                returncode = container.execute(command, log_file=log_file)
                if returncode != 0:
                    raise ProvisioningError(
                        f"Provisioning step '{step}' failed with exit "
                        f"status {returncode}. See log: {log_file}"
                    )

            container.snapshot(config.container.base_snapshot)

        rebuild.status = "building"
        logger.info(
            f"Base snapshot '{config.container.base_snapshot}' ready"
        )

        if not rebuild.packages:
            from ftbfs.workflow.nodes.finalize import Finalize
            return Finalize()

        from ftbfs.workflow.nodes.build_package import BuildPackage
        return BuildPackage(index=0)
