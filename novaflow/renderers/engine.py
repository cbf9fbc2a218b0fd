"""Diagram engine contract and one-time engine configuration."""
from __future__ import annotations

import copy
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from novaflow.utils.config import settings

logger = logging.getLogger(__name__)


class RenderError(RuntimeError):
    """Raised when an engine cannot produce a usable graphic."""


@dataclass
class EngineOutput:
    svg: str
    diagram_id: str = ""


@runtime_checkable
class DiagramEngine(Protocol):
    name: str

    def configure(self, config: Dict[str, Any]) -> None:
        ...

    async def check_syntax(self, markup: str) -> bool:
        ...

    async def render(self, diagram_id: str, markup: str) -> EngineOutput:
        ...


@dataclass
class EngineConfig:
    """Mermaid initialization options passed once to each engine."""

    theme: str = field(default_factory=lambda: settings.mermaid_theme)
    font_family: str = field(default_factory=lambda: settings.mermaid_font_family)
    font_size: int = field(default_factory=lambda: settings.mermaid_font_size)
    flowchart: Dict[str, Any] = field(
        default_factory=lambda: {"useMaxWidth": True, "htmlLabels": True, "curve": "basis"}
    )
    gantt: Dict[str, Any] = field(default_factory=lambda: {"useMaxWidth": True, "fontSize": 12})
    sequence: Dict[str, Any] = field(default_factory=lambda: {"useMaxWidth": True})
    er: Dict[str, Any] = field(default_factory=lambda: {"useMaxWidth": True})
    mindmap: Dict[str, Any] = field(default_factory=lambda: {"useMaxWidth": True})

    def to_mermaid(self) -> Dict[str, Any]:
        gantt = dict(self.gantt)
        gantt.setdefault("fontFamily", self.font_family)
        return {
            "startOnLoad": False,
            "theme": self.theme,
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "flowchart": dict(self.flowchart),
            "gantt": gantt,
            "sequence": dict(self.sequence),
            "er": dict(self.er),
            "mindmap": dict(self.mindmap),
        }


_configured_engines: "weakref.WeakSet[Any]" = weakref.WeakSet()


def ensure_engine_configured(engine: DiagramEngine, config: Optional[EngineConfig] = None) -> bool:
    """Configure ``engine`` the first time it is used in this process.

    Returns True when configuration was applied by this call and False when
    the engine had already been configured.
    """
    if engine in _configured_engines:
        return False
    options = (config or EngineConfig()).to_mermaid()
    engine.configure(copy.deepcopy(options))
    _configured_engines.add(engine)
    logger.info("Configured diagram engine", extra={"engine": getattr(engine, "name", type(engine).__name__)})
    return True


def reset_engine_configuration() -> None:
    """Forget which engines were configured (used when settings change)."""
    _configured_engines.clear()
