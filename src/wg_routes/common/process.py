"""Async command execution for system tools."""

import asyncio
from dataclasses import dataclass

from .exceptions import CommandError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and buffered output of a finished command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """Command exited with status 0."""
        return self.returncode == 0

    @property
    def command(self) -> str:
        """Command line for log messages."""
        return " ".join(self.args)


class CommandRunner:
    """Runs system commands to completion and captures their output."""

    def __init__(self, use_sudo: bool = False):
        """Initialize CommandRunner.

        Args:
            use_sudo: Prefix privileged commands with ``sudo``
        """
        self.use_sudo = use_sudo

    def build_args(self, args: list[str], privileged: bool = False) -> list[str]:
        """Return the final argument vector for ``args``."""
        if privileged and self.use_sudo:
            return ["sudo", *args]
        return list(args)

    async def run(
        self, args: list[str], privileged: bool = False, check: bool = False
    ) -> CommandResult:
        """Run a command and wait for it to exit.

        Args:
            args: Program and arguments
            privileged: Needs root; prefixed with sudo when enabled
            check: Raise CommandError on non-zero exit

        Returns:
            Result with exit status and decoded output

        Raises:
            CommandError: If the program cannot be started, or exits
                non-zero while ``check`` is set
        """
        argv = self.build_args(args, privileged)
        logger.debug("Running command", command=" ".join(argv))
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(f"Failed to run {argv[0]}: {e}") from e

        stdout, stderr = await process.communicate()
        result = CommandResult(
            args=tuple(argv),
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

        if result.stdout.strip():
            logger.debug("Command output", command=result.command, stdout=result.stdout.strip())
        if result.stderr.strip():
            logger.debug("Command error output", command=result.command, stderr=result.stderr.strip())

        if check and not result.ok:
            raise CommandError(
                f"Command '{result.command}' exited with status {result.returncode}: "
                f"{result.stderr.strip()}",
                result,
            )
        return result
