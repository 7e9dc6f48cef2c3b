#!/usr/bin/env python3
"""ftbfs CLI - archive rebuild harness and team package lookup."""

import asyncio
import sys

from pydantic import Field
from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from ftbfs.command.rebuild import RebuildCommand
from ftbfs.command.report import ReportCommand
from ftbfs.command.team_packages import TeamPackagesCommand
from ftbfs.core.config import State
from ftbfs.core.log import logger


class CliState(State):
    """Rebuild archive source packages in ephemeral containers and
    look up which packages a team owns.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.rebuild.timeout 1800)
    2. Environment variables (FTBFS_CONFIG__REBUILD__TIMEOUT=1800)
    3. .env file
    4. --include FILE, ./ftbfs.yaml, the user config directory,
       then the package defaults
    """

    rebuild: CliSubCommand[RebuildCommand]
    team_packages: CliSubCommand[TeamPackagesCommand] = Field(
        alias="team-packages"
    )
    report: CliSubCommand[ReportCommand]

    def cli_cmd(self):
        """Dispatch to the chosen subcommand, or show help if none."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closing the logger flushes and closes the file sink
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Entry point for the ftbfs console script."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
