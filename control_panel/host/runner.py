# control_panel/host/runner.py
"""Host command runner - the only surface that touches the operating system."""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

from control_panel.host.commands import AllowedCommand

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return self.stdout if self.ok else (self.stderr or self.stdout)


class HostCommandRunner(ABC):
    """Executes an AllowedCommand and reports its output and exit code."""

    @abstractmethod
    def run(self, command: AllowedCommand) -> CommandResult:
        pass


class SubprocessCommandRunner(HostCommandRunner):
    """Runs commands with subprocess; no shell is involved."""

    def run(self, command: AllowedCommand) -> CommandResult:
        logger.info(f"[host] running: {command}")
        try:
            completed = subprocess.run(
                list(command.argv),
                capture_output=True,
                text=True,
                timeout=command.timeout,
                check=False,
            )
        except FileNotFoundError:
            logger.error(f"[host] command not found: {command.argv[0]}")
            return CommandResult(exit_code=127, stderr=f"{command.argv[0]}: command not found")
        except subprocess.TimeoutExpired:
            logger.error(f"[host] command timed out after {command.timeout}s: {command}")
            return CommandResult(exit_code=124, stderr=f"timed out after {command.timeout}s")

        if completed.returncode != 0:
            logger.warning(f"[host] {command.name} exited with {completed.returncode}")
        return CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
