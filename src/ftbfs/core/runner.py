"""Command execution on the host, built on invoke."""

import contextlib
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from ftbfs.core.log import logger
from ftbfs.core.result import TIMED_OUT


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    Every host command the harness issues (lxc, distro-info) goes
    through execute(), which captures output, optionally writes it to
    a log file and maps invoke's timeout exception onto the same exit
    status GNU timeout(1) uses.
    """

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
        log_file: Path | None = None,
        append: bool = False,
        log_level: str | None = None,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> Result:
        """Run a shell command.

        Args:
            command: Command string to execute
            cwd: Working directory for the command
            timeout: Maximum run time in seconds
            log_file: Stream combined stdout/stderr here while it runs
            append: Append to log_file instead of replacing it
            log_level: Echo each output line to the logger at this level
            check: Raise invoke.UnexpectedExit on non-zero exit
            env: Extra environment variables

        Returns:
            invoke.Result; ``exited`` is 124 when the timeout fired
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout
        if env:
            kwargs["env"] = env

        logger.spew("Executing {command}", command=command)
        with contextlib.ExitStack() as stack:
            if log_file:
                log_file.parent.mkdir(parents=True, exist_ok=True)
                # Both streams land in the file as they arrive, so an
                # interrupted command still leaves its output behind
                stream = stack.enter_context(
                    open(log_file, "a" if append else "w",
                         buffering=1, encoding="utf-8")
                )
                kwargs.update(hide=False, out_stream=stream, err_stream=stream)
            if cwd:
                stack.enter_context(self.cd(str(cwd)))
            try:
                result = self.run(command, **kwargs)
            except CommandTimedOut as e:
                logger.warn(
                    "Command timed out after {timeout}s",
                    command=command,
                    timeout=timeout,
                )
                result = e.result
                result.exited = TIMED_OUT

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
