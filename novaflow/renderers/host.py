"""Render host contract and the in-process host used by the API and CLI."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union

from novaflow.renderers.graphic import SvgGraphic

logger = logging.getLogger(__name__)


class HostUnavailable(RuntimeError):
    """Raised when the mount point is missing or has been torn down."""


@dataclass
class RenderSuccess:
    graphic: SvgGraphic
    width: float
    height: float
    markup: str
    export_ready: bool = True
    status: str = "success"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "handle": self.graphic,
            "width": self.width,
            "height": self.height,
            "export_ready": self.export_ready,
        }


@dataclass
class RenderFailure:
    message: str
    markup: str
    kind: str = "render"
    status: str = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}


@dataclass
class RenderEmpty:
    markup: str = ""
    status: str = "empty"

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status}


RenderResult = Union[RenderSuccess, RenderFailure, RenderEmpty]


class RenderContainer(Protocol):
    @property
    def available(self) -> bool:
        ...

    def clear(self) -> None:
        ...

    def mount(self, graphic: SvgGraphic) -> None:
        ...


class RenderHost(Protocol):
    container: Optional[RenderContainer]

    def on_loading(self, session) -> None:
        ...

    def on_result(self, result: RenderResult) -> None:
        ...


class MemoryContainer:
    """Container holding at most one mounted graphic."""

    def __init__(self):
        self.graphic: Optional[SvgGraphic] = None
        self.torn_down = False
        self.clear_count = 0

    @property
    def available(self) -> bool:
        return not self.torn_down

    def clear(self) -> None:
        self.graphic = None
        self.clear_count += 1

    def mount(self, graphic: SvgGraphic) -> None:
        if self.torn_down:
            raise HostUnavailable("Container has been torn down")
        self.graphic = graphic

    def teardown(self) -> None:
        self.torn_down = True
        self.graphic = None


@dataclass
class BufferedHost:
    """Host that keeps every notification; the last result is the displayed state."""

    container: Optional[MemoryContainer] = field(default_factory=MemoryContainer)
    results: List[RenderResult] = field(default_factory=list)
    loading: List[int] = field(default_factory=list)
    is_loading: bool = False

    def on_loading(self, session) -> None:
        self.is_loading = True
        self.loading.append(session.token)

    def on_result(self, result: RenderResult) -> None:
        self.is_loading = False
        self.results.append(result)
        if isinstance(result, RenderFailure):
            logger.warning("Chart rendering error: %s", result.message)

    @property
    def displayed(self) -> Optional[RenderResult]:
        return self.results[-1] if self.results else None

    @property
    def errors(self) -> List[RenderFailure]:
        return [r for r in self.results if isinstance(r, RenderFailure)]
