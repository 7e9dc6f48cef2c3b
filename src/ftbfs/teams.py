"""Look up the source packages a team is subscribed to."""

from typing import Protocol

import requests

from ftbfs.core.log import logger


class MappingSource(Protocol):
    """Anything that can produce the team -> packages mapping."""

    def fetch(self) -> dict[str, list[str]]:
        ...


class HttpMappingSource:
    """Fetch the mapping as JSON over HTTP(S).

    No retries and no caching: each fetch() is one GET. Transport
    failures raise requests.RequestException and a body that is not
    JSON raises ValueError; both reach the caller unchanged.
    """

    def __init__(self, url: str, timeout: float = 30.0):
        self.url = url
        self.timeout = timeout

    def fetch(self) -> dict[str, list[str]]:
        logger.debug("Fetching team mapping", url=self.url)
        response = requests.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()


def packages_for_team(team: str, source: MappingSource) -> list[str]:
    """Return the team's packages in mapping order, or [] if the team
    is not in the mapping."""
    mapping = source.fetch()
    packages = mapping.get(team, [])
    if not packages:
        logger.debug("No packages found for team", team=team)
    return list(packages)


def format_packages(packages: list[str]) -> str:
    """Space-terminate each name: ["bash", "coreutils"] -> "bash coreutils "."""
    return "".join(f"{package} " for package in packages)
