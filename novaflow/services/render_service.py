"""One-shot rendering for the API and CLI."""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from novaflow.renderers.diagram_renderer import DiagramRenderer, RenderSession
from novaflow.renderers.engine import DiagramEngine
from novaflow.renderers.host import BufferedHost, RenderFailure, RenderResult, RenderSuccess
from novaflow.renderers.router import get_engine
from novaflow.utils.config import settings
from novaflow.utils.file_utils import ensure_dir


@dataclass
class RenderOutcome:
    result: Optional[RenderResult]
    session: Optional[RenderSession]

    @property
    def sanitized(self) -> str:
        return self.session.sanitized if self.session else ""

    @property
    def svg(self) -> Optional[str]:
        if isinstance(self.result, RenderSuccess):
            return self.result.graphic.serialize()
        return None


@lru_cache(maxsize=None)
def shared_engine(backend: str) -> DiagramEngine:
    """Engines are reused so one-time configuration happens once per backend."""
    return get_engine(backend)


async def render_markup(raw: str, engine: Optional[DiagramEngine] = None) -> RenderOutcome:
    host = BufferedHost()
    renderer = DiagramRenderer(engine or shared_engine(settings.renderer_backend), host, debounce_seconds=0)
    try:
        result = await renderer.render(raw)
    finally:
        renderer.close()
    return RenderOutcome(result=result, session=renderer.session)


def write_outputs(outcome: RenderOutcome, output_name: str) -> dict:
    """Persist sanitized source and SVG next to each other in the output dir."""
    output_dir = ensure_dir(settings.output_dir)
    base_path = Path(output_dir) / output_name
    mmd_path = base_path.with_suffix(".mmd")
    mmd_path.write_text(outcome.sanitized, encoding="utf-8")
    payload = {"source_path": str(mmd_path), "status": outcome.result.status if outcome.result else "skipped"}
    if outcome.svg is not None:
        svg_path = base_path.with_suffix(".svg")
        svg_path.write_text(outcome.svg, encoding="utf-8")
        payload["file_path"] = str(svg_path)
        payload["width"] = outcome.result.width
        payload["height"] = outcome.result.height
    if isinstance(outcome.result, RenderFailure):
        payload["message"] = outcome.result.message
    return payload
