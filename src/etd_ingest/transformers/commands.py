"""Blocking invocation of external tools (FOP, pdftotext)."""

import logging
import subprocess
from pathlib import Path

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Run external commands with a timeout.

    A missing executable or a timeout is reported as a failed result rather
    than raised, so callers only ever check ``CommandResult.ok``.
    """

    def __init__(self, timeout: float = 300):
        self.timeout = timeout

    def run(self, args: list[str], cwd: Path | None = None) -> CommandResult:
        args = [str(a) for a in args]
        logger.debug(f"Running: {' '.join(args)}")
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            logger.error(f"Executable not found: {args[0]}")
            return CommandResult(args=args, returncode=127, stderr=str(e))
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {self.timeout}s: {args[0]}")
            return CommandResult(
                args=args, returncode=-1, stderr=f"timed out after {self.timeout}s"
            )

        if completed.returncode != 0:
            logger.warning(
                f"{args[0]} exited with status {completed.returncode}: "
                f"{completed.stderr.strip()[:500]}"
            )
        return CommandResult(
            args=args,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
