"""Team-packages command - print the packages a team owns."""

import sys

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from ftbfs.teams import (
    HttpMappingSource,
    MappingSource,
    format_packages,
    packages_for_team,
)


class TeamPackagesCommand(BaseModel):
    """Print the source packages owned by TEAM, space separated.

    Prints nothing when the team is not in the mapping. A mapping
    that cannot be fetched or parsed is an error.
    """

    team: CliPositionalArg[str] = Field(
        description="Team name, e.g. foundations-bugs"
    )

    async def run_workflow(
        self, state: "State", source: MappingSource | None = None
    ) -> int:
        teams = state.config.teams
        source = source or HttpMappingSource(teams.mapping_url, teams.timeout)

        sys.stdout.write(format_packages(packages_for_team(self.team, source)))
        sys.stdout.flush()
        return 0
