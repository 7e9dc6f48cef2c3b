"""Rebuild workflow graph."""

from pydantic_graph import Graph

from ftbfs.core.config import State
from ftbfs.core.log import logger


def create_workflow():
    """Create the rebuild workflow graph.

    Provision -> BuildPackage(0) -> ... -> BuildPackage(n-1) -> Finalize

    The container itself is launched and deleted by the caller around
    the graph run.

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    # Lazy imports: node return hints are resolved from this namespace
    from ftbfs.workflow.nodes.build_package import BuildPackage
    from ftbfs.workflow.nodes.finalize import Finalize
    from ftbfs.workflow.nodes.provision import Provision

    return Graph(
        nodes=(
            Provision,
            BuildPackage,
            Finalize,
        ),
        state_type=State,
    )
