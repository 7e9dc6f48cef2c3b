"""Per-run artifact directory: logs/<run_name>/<package>.{log,result,time}."""

from pathlib import Path

from ftbfs.core.result import PackageResult


class RunLogDir:
    """Owns the artifact files of one rebuild run.

    Files are written once per package and never removed, so a run that
    is interrupted halfway still leaves the finished packages on disk.
    """

    def __init__(self, base_dir: Path, run_name: str | None = None):
        """Open (and create) a run directory.

        Args:
            base_dir: Root directory holding all runs
            run_name: Subdirectory name; None opens base_dir itself,
                which is how an existing run is re-read
        """
        self.run_dir = base_dir / run_name if run_name else base_dir
        self.run_dir.mkdir(parents=True, exist_ok=True)

    def log_file(self, package: str) -> Path:
        return self.run_dir / f"{package}.log"

    def result_file(self, package: str) -> Path:
        return self.run_dir / f"{package}.result"

    def time_file(self, package: str) -> Path:
        return self.run_dir / f"{package}.time"

    def record(self, result: PackageResult) -> None:
        """Write the .result and .time files for a package."""
        self.result_file(result.package).write_text(f"{result.returncode}\n")
        self.time_file(result.package).write_text(f"{result.duration}\n")

    def results(self) -> list[PackageResult]:
        """Load every recorded package result, sorted by package name."""
        loaded = []
        for result_file in sorted(self.run_dir.glob("*.result")):
            package = result_file.stem
            time_file = self.time_file(package)
            log_file = self.log_file(package)
            loaded.append(PackageResult(
                package=package,
                returncode=int(result_file.read_text().strip()),
                duration=(
                    int(time_file.read_text().strip())
                    if time_file.exists() else 0
                ),
                log_file=log_file if log_file.exists() else None,
            ))
        return loaded
