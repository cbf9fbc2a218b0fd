"""File utilities."""
from __future__ import annotations

from pathlib import Path


def ensure_dir(path: str) -> Path:
    """Ensure directory exists and return Path."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def read_markup_file(path: str) -> str:
    """Read a diagram source file as UTF-8, dropping undecodable bytes.

    Raises FileNotFoundError when the path does not exist so the CLI can
    report it as a bad parameter.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Missing file: {path}")
    try:
        return p.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return p.read_text(encoding="utf-8", errors="ignore")
