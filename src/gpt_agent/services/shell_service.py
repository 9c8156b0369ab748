from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def to_text(self) -> str:
        if self.ok:
            parts = ["Command succeeded"]
        else:
            parts = [f"Command failed with exit code {self.exit_code}"]
        if self.stdout.strip():
            parts.append(f"stdout:\n{self.stdout.strip()}")
        if self.stderr.strip():
            parts.append(f"stderr:\n{self.stderr.strip()}")
        return "\n\n".join(parts).strip()


def run_command(command: str, cwd: Path) -> CommandResult:
    """Run a shell command in ``cwd``, waiting for it to finish."""
    logger.info("Running: %s (cwd=%s)", command, cwd)
    proc = subprocess.run(command, shell=True, cwd=cwd, capture_output=True, text=True, errors="replace")
    logger.debug("Exit code %d", proc.returncode)
    return CommandResult(exit_code=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
