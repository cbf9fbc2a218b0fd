"""Mermaid engine backed by mermaid-cli, run locally or through docker."""
from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from novaflow.renderers.docker_client import docker_command, local_command, run_renderer
from novaflow.renderers.engine import EngineOutput, RenderError
from novaflow.renderers.syntax import check_mermaid_structure
from novaflow.utils.config import settings


class MermaidCliEngine:
    """Render with ``mmdc``; ``use_docker`` runs the mermaid-cli image instead."""

    name = "mermaid-cli"

    def __init__(
        self,
        use_docker: bool = False,
        executable: Optional[str] = None,
        image: Optional[str] = None,
    ):
        self.use_docker = use_docker
        self.executable = executable or settings.mermaid_cli_command
        self.image = image or settings.mermaid_renderer_image
        self.config: Dict[str, Any] = {}

    def configure(self, config: Dict[str, Any]) -> None:
        self.config = config

    async def check_syntax(self, markup: str) -> bool:
        check_mermaid_structure(markup)
        return True

    def build_command(self, workdir: Path) -> list[str]:
        args = ["-i", "input.mmd", "-o", "output.svg", "-c", "config.json", "-b", "transparent"]
        theme = self.config.get("theme")
        if theme:
            args += ["-t", theme]
        if self.use_docker:
            return docker_command(self.image, workdir, args)
        return local_command(self.executable, workdir, args)

    async def render(self, diagram_id: str, markup: str) -> EngineOutput:
        with tempfile.TemporaryDirectory() as tmp_dir:
            workdir = Path(tmp_dir)
            (workdir / "input.mmd").write_text(markup, encoding="utf-8")
            (workdir / "config.json").write_text(json.dumps(self.config), encoding="utf-8")
            output_path = workdir / "output.svg"
            await run_renderer(self.build_command(workdir), cwd=workdir)
            if not output_path.exists():
                raise RenderError("mermaid-cli did not produce an SVG")
            svg_text = output_path.read_text(encoding="utf-8")
        return EngineOutput(svg=svg_text, diagram_id=diagram_id)
