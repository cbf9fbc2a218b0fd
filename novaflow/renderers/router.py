"""Pick the diagram engine for the configured backend."""
from __future__ import annotations

from typing import Optional

from novaflow.renderers.engine import DiagramEngine
from novaflow.renderers.ink_renderer import MermaidInkEngine
from novaflow.renderers.mermaid_renderer import MermaidCliEngine
from novaflow.renderers.preview_renderer import PreviewEngine
from novaflow.utils.config import settings


BACKENDS = ("cli", "docker", "ink", "preview")


def get_engine(backend: Optional[str] = None) -> DiagramEngine:
    token = (backend or settings.renderer_backend or "").strip().lower()
    if token in {"cli", "mmdc"}:
        return MermaidCliEngine()
    if token == "docker":
        return MermaidCliEngine(use_docker=True)
    if token in {"ink", "mermaid.ink"}:
        return MermaidInkEngine()
    if token in {"preview", "fake"}:
        return PreviewEngine()
    raise ValueError("Unknown renderer backend: %s" % backend)
