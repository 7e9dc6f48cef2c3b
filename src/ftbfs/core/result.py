"""Per-package rebuild results and the exit-code conventions they use."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, computed_field

# Harness-reserved: the source package does not exist for the release.
# Kept negative so it can never be confused with a process exit status.
SOURCE_NOT_FOUND = -1

# GNU timeout(1) / shell conventions
TIMED_OUT = 124
TIMEOUT_FAILED = 125
NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127
KILLED = 137

_DESCRIPTIONS = {
    0: "built successfully",
    SOURCE_NOT_FOUND: "source not found for this release",
    TIMED_OUT: "build timed out",
    TIMEOUT_FAILED: "timeout command failed",
    NOT_EXECUTABLE: "build command could not be invoked",
    COMMAND_NOT_FOUND: "build command not found",
    KILLED: "build killed",
}


def describe(returncode: int) -> str:
    """Human readable meaning of a recorded result code."""
    if returncode in _DESCRIPTIONS:
        return _DESCRIPTIONS[returncode]
    return f"build failed with exit status {returncode}"


class PackageResult(BaseModel):
    """Outcome of one package's rebuild attempt."""

    package: str
    returncode: int
    duration: int = 0
    log_file: Path | None = None
    timestamp: datetime | None = None

    @computed_field
    @property
    def success(self) -> bool:
        return self.returncode == 0

    @computed_field
    @property
    def status(self) -> str:
        return describe(self.returncode)
