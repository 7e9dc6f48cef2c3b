"""Workflow nodes."""

from ftbfs.workflow.nodes.build_package import BuildPackage
from ftbfs.workflow.nodes.finalize import Finalize
from ftbfs.workflow.nodes.provision import Provision

__all__ = ["BuildPackage", "Finalize", "Provision"]
