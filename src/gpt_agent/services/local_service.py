from __future__ import annotations

import fnmatch
import logging
import subprocess
from pathlib import Path

from gpt_agent.models.agent_schemas import PathTraversalError, ToolExecutionError
from gpt_agent.services.file_service import FileService

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_PATTERNS = [".git", "node_modules", "__pycache__", ".venv", "venv"]


class LocalService(FileService):
    """File access confined to ``work_dir``."""

    def __init__(self, work_dir: Path | None = None) -> None:
        self.work_dir = (work_dir or Path.cwd()).resolve()

    def _resolve(self, path: str) -> Path:
        """Resolve path relative to work_dir, refusing anything outside it."""
        target = (self.work_dir / path).resolve()
        if target != self.work_dir and self.work_dir not in target.parents:
            raise PathTraversalError(f"Upward traversal outside of {self.work_dir} not allowed: {path}")
        return target

    # --- FileService interface ---

    def read_file(self, path: str) -> str:
        p = self._resolve(path)
        try:
            return p.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ToolExecutionError(path, e.strerror or str(e)) from e

    def write_file(self, path: str, content: str) -> None:
        p = self._resolve(path)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
        except FileExistsError as e:
            raise ToolExecutionError(path, "a parent path already exists and is not a directory") from e
        except OSError as e:
            raise ToolExecutionError(path, e.strerror or str(e)) from e
        try:
            p.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ToolExecutionError(path, e.strerror or str(e)) from e
        logger.info("Written: %s (%d lines)", path, content.count("\n") + 1)

    def delete_file(self, path: str) -> bool:
        p = self._resolve(path)
        if not p.is_file():
            return False
        try:
            p.unlink()
        except OSError as e:
            raise ToolExecutionError(path, e.strerror or str(e)) from e
        logger.info("Deleted: %s", path)
        return True

    def file_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def list_files(self) -> list[str]:
        files = self._git_ls_files()
        if files is None:
            files = self._walk_files()
        return sorted(files)

    # --- listing helpers ---

    def _git_ls_files(self) -> list[str] | None:
        """List files via git so .gitignore rules apply; None outside a work tree."""
        try:
            result = subprocess.run(
                ["git", "ls-files", "--cached", "--others", "--exclude-standard"],
                cwd=self.work_dir, capture_output=True, text=True, check=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return None
        return [line for line in result.stdout.splitlines() if line]

    def _ignore_patterns(self) -> list[str]:
        patterns = list(DEFAULT_EXCLUDE_PATTERNS)
        gitignore = self.work_dir / ".gitignore"
        if gitignore.is_file():
            for line in gitignore.read_text(encoding="utf-8").splitlines():
                line = line.strip()
                if line and not line.startswith("#") and not line.startswith("!"):
                    patterns.append(line.strip("/"))
        return patterns

    def _walk_files(self) -> list[str]:
        patterns = self._ignore_patterns()
        files: list[str] = []
        for fpath in self.work_dir.rglob("*"):
            if not fpath.is_file():
                continue
            rel = fpath.relative_to(self.work_dir)
            if _is_ignored(rel, patterns):
                continue
            files.append(rel.as_posix())
        return files


def _is_ignored(rel: Path, patterns: list[str]) -> bool:
    if any(fnmatch.fnmatch(rel.as_posix(), pat) for pat in patterns):
        return True
    return any(fnmatch.fnmatch(part, pat) for part in rel.parts for pat in patterns)
