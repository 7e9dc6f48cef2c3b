"""Distribution release metadata."""

from ftbfs.core.runner import Runner


class UnsupportedReleaseError(ValueError):
    """The requested release is not currently supported."""

    def __init__(self, release: str, supported: list[str]):
        self.release = release
        self.supported = supported
        super().__init__(
            f"'{release}' is not a supported release "
            f"(supported: {' '.join(supported) or 'none'})"
        )


def supported_releases(command: str, runner: Runner | None = None) -> list[str]:
    """Run the metadata command and return the release names it prints.

    Raises:
        invoke.UnexpectedExit: If the command fails
    """
    result = (runner or Runner()).execute(command, check=True)
    return result.stdout.split()


def check_release(release: str, supported: list[str]) -> None:
    """Raise UnsupportedReleaseError unless release is in supported."""
    if release not in supported:
        raise UnsupportedReleaseError(release, supported)
