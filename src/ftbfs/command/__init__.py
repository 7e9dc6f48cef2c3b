"""CLI command modules for ftbfs."""

from ftbfs.command.rebuild import RebuildCommand
from ftbfs.command.report import ReportCommand
from ftbfs.command.team_packages import TeamPackagesCommand

__all__ = ["RebuildCommand", "ReportCommand", "TeamPackagesCommand"]
