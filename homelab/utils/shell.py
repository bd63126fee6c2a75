"""
Shell command execution for service bring-up.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from ..exceptions import CommandExecutionError, ContainerRuntimeError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single shell command."""
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def check(self) -> "CommandResult":
        """Return self, or raise CommandExecutionError on a non-zero exit."""
        if not self.succeeded:
            raise CommandExecutionError(self.command, self.exit_code, self.stderr)
        return self


class CommandRunner:
    """Runs shell commands through ``sh -c`` without a timeout.

    Commands run one at a time; the runner never kills an in-flight process.
    """

    def __init__(self, shell: str = "sh", cwd: Optional[str] = None):
        self.shell = shell
        self.cwd = cwd

    async def run(self, command: str) -> CommandResult:
        """Run a command and capture its output.

        Args:
            command: Shell command line

        Returns:
            CommandResult with the exit code and decoded output

        Raises:
            ContainerRuntimeError: If the shell itself cannot be started
        """
        logger.debug(f"Running command: {command}")

        try:
            process = await asyncio.create_subprocess_exec(
                self.shell, "-c", command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd
            )
        except FileNotFoundError as e:
            raise ContainerRuntimeError(message=f"Shell not found: {self.shell}", cause=e)

        stdout, stderr = await process.communicate()

        result = CommandResult(
            command=command,
            exit_code=process.returncode,
            stdout=stdout.decode(errors="replace") if stdout else "",
            stderr=stderr.decode(errors="replace") if stderr else ""
        )

        if result.succeeded:
            logger.debug(f"Command output: {result.stdout.strip()}")
        else:
            logger.warning(
                f"Command exited with {result.exit_code}: {command}",
                extra={'exit_code': result.exit_code, 'stderr': result.stderr.strip()}
            )

        return result
