"""Prompt templates stored as .txt files in templates/."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

TEMPLATES_DIR = Path(__file__).parent / "templates"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """Raw template text with {variable} placeholders."""
    return (TEMPLATES_DIR / f"{name}.txt").read_text(encoding="utf-8").strip()


def system_prompt(work_dir: Path) -> str:
    """System message for a conversation working inside ``work_dir``."""
    return load_prompt("system").format(work_dir=work_dir)
