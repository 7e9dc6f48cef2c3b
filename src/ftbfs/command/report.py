"""Report command - summarize the results of a finished run."""

import sys
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from ftbfs.core.logdir import RunLogDir
from ftbfs.core.result import PackageResult


def format_result(result: PackageResult) -> str:
    return (
        f"{result.package:<32} {result.returncode:>4} "
        f"{result.duration:>6}s  {result.status}"
    )


class ReportCommand(BaseModel):
    """Print one line per package recorded in RUN_DIR: name, result
    code, build seconds and what the code means."""

    run_dir: CliPositionalArg[Path] = Field(
        description="A run directory, e.g. logs/20240101-120000"
    )

    async def run_workflow(self, state: "State") -> int:  # noqa: ARG002
        if not self.run_dir.is_dir():
            print(f"ftbfs report: error: no such run directory: "
                  f"{self.run_dir}", file=sys.stderr)
            return 2

        results = RunLogDir(self.run_dir).results()
        for result in results:
            print(format_result(result))

        failed = sum(1 for r in results if not r.success)
        print(f"{len(results)} package(s), {failed} failed")
        return 0
