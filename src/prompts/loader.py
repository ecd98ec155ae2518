"""Prompt templates shipped alongside the code."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

PROMPT_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_prompt(filename: str) -> str:
    """Return a prompt template, normalised to end with a single newline."""

    path = PROMPT_DIR / filename
    if not path.is_file():
        available = sorted(p.name for p in PROMPT_DIR.glob("*.txt"))
        raise RuntimeError(f"Prompt file not found: {filename} (available: {', '.join(available)})")
    return path.read_text(encoding="utf-8").strip() + "\n"
