"""Subprocess helpers for running mermaid-cli locally or inside docker."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from novaflow.renderers.engine import RenderError

logger = logging.getLogger(__name__)


def docker_command(image: str, workdir: Path, command: List[str]) -> List[str]:
    return [
        "docker",
        "run",
        "--rm",
        "-v",
        f"{workdir}:/data",
        "-w",
        "/data",
        image,
    ] + command


def local_command(executable: str, workdir: Path, command: List[str]) -> List[str]:
    return [executable] + [str(workdir / arg) if arg.endswith((".mmd", ".svg", ".json")) else arg for arg in command]


async def run_renderer(cmd: List[str], cwd: Optional[Path] = None) -> None:
    """Run ``cmd`` to completion and raise RenderError on a non-zero exit."""
    logger.debug("Running renderer", extra={"cmd": cmd})
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(cwd) if cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise RenderError(f"Renderer executable not found: {cmd[0]}") from exc
    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        snippet = (stderr or b"").decode("utf-8", errors="ignore").strip()
        if len(snippet) > 300:
            snippet = snippet[:300] + "..."
        raise RenderError(f"{cmd[0]} exited with status {proc.returncode}: {snippet}")
