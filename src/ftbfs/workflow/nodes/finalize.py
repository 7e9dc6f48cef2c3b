"""Finalize node - summarize the run."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from ftbfs.core.config import State
from ftbfs.core.log import logger
from ftbfs.core.result import PackageResult


@dataclass
class Finalize(BaseNode[State, None, list[PackageResult]]):
    """Log the pass/fail summary and end with the results."""

    async def run(
        self, ctx: GraphRunContext[State]
    ) -> End[list[PackageResult]]:
        rebuild = ctx.state.runtime.rebuild
        results = rebuild.results
        failed = [r.package for r in results if not r.success]

        rebuild.status = "complete"
        logger.info(
            f"Rebuild of {len(results)} package(s) for {rebuild.release} "
            f"complete: {len(results) - len(failed)} built, "
            f"{len(failed)} failed"
        )
        if failed:
            logger.warn(f"Failed: {' '.join(failed)}")
        logger.info(f"Results in {rebuild.log_dir.run_dir}")

        return End(results)
