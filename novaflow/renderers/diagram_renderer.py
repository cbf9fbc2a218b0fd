"""Render state machine: sanitize, validate, render, post-process.

One ``DiagramRenderer`` owns one host region. Every invocation opens a new
``RenderSession`` identified by a monotonically increasing token; results
that resolve after a newer invocation has started are dropped, so the host
always shows the outcome of the most recent call (last write wins). Engine
calls are never cancelled.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from novaflow.renderers.engine import DiagramEngine, EngineConfig, EngineOutput, RenderError, ensure_engine_configured
from novaflow.renderers.graphic import SvgGraphic
from novaflow.renderers.host import (
    HostUnavailable,
    RenderContainer,
    RenderEmpty,
    RenderFailure,
    RenderHost,
    RenderResult,
    RenderSuccess,
)
from novaflow.tools.diagram_validator import validate
from novaflow.tools.markup_sanitizer import sanitize
from novaflow.utils.config import settings

logger = logging.getLogger(__name__)

RENDER_FAILURE_PREFIX = "Failed to render chart: "


class RenderPhase(str, Enum):
    IDLE = "idle"
    SANITIZING = "sanitizing"
    VALIDATING = "validating"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({RenderPhase.DONE, RenderPhase.FAILED})


@dataclass
class RenderSession:
    token: int
    raw_markup: str
    diagram_id: str
    phase: RenderPhase = RenderPhase.IDLE
    sanitized: str = ""
    history: List[RenderPhase] = field(default_factory=lambda: [RenderPhase.IDLE])
    result: Optional[RenderResult] = None
    discarded: bool = False

    def advance(self, phase: RenderPhase) -> None:
        self.phase = phase
        self.history.append(phase)

    @property
    def terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


def new_diagram_id(token: int) -> str:
    return f"mermaid-{token}-{uuid.uuid4().hex[:9]}"


class DiagramRenderer:
    def __init__(
        self,
        engine: DiagramEngine,
        host: RenderHost,
        *,
        config: Optional[EngineConfig] = None,
        debounce_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.engine = engine
        self.host = host
        self.config = config
        if debounce_seconds is None:
            debounce_seconds = settings.render_debounce_ms / 1000.0
        self.debounce_seconds = debounce_seconds
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.render_timeout_seconds
        self._token = 0
        self._session: Optional[RenderSession] = None
        self._last_raw: Optional[str] = None
        self._submit_seq = 0
        self._closed = False

    @property
    def session(self) -> Optional[RenderSession]:
        return self._session

    @property
    def phase(self) -> RenderPhase:
        return self._session.phase if self._session else RenderPhase.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    def is_current(self, session: RenderSession) -> bool:
        return not self._closed and session.token == self._token

    async def render(self, raw: Optional[str]) -> Optional[RenderResult]:
        """Run the pipeline now; returns None if the result was not applied."""
        if self._closed:
            logger.debug("Render requested after host teardown")
            return None
        # Supersedes any submit still waiting out its debounce.
        self._submit_seq += 1
        self._token += 1
        session = RenderSession(token=self._token, raw_markup=raw or "", diagram_id=new_diagram_id(self._token))
        self._session = session
        self._last_raw = session.raw_markup
        return await self._run(session)

    async def retry(self) -> Optional[RenderResult]:
        """Start over with the raw markup of the last invocation."""
        if self._last_raw is None:
            return None
        return await self.render(self._last_raw)

    def submit(self, raw: Optional[str]) -> "asyncio.Task[Optional[RenderResult]]":
        """Debounced render for live editing; only the latest submit renders."""
        self._submit_seq += 1
        return asyncio.ensure_future(self._debounced(self._submit_seq, raw))

    def close(self) -> None:
        """Host teardown: in-flight sessions resolve into nothing."""
        self._closed = True
        self._token += 1

    async def _debounced(self, seq: int, raw: Optional[str]) -> Optional[RenderResult]:
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        if seq != self._submit_seq or self._closed:
            return None
        return await self.render(raw)

    def _container(self) -> Optional[RenderContainer]:
        container = getattr(self.host, "container", None)
        if container is None or not container.available:
            return None
        return container

    async def _run(self, session: RenderSession) -> Optional[RenderResult]:
        container = self._container()
        if container is None:
            return self._host_gone(session)

        session.advance(RenderPhase.SANITIZING)
        container.clear()
        self.host.on_loading(session)
        try:
            ensure_engine_configured(self.engine, self.config)
        except Exception as exc:
            logger.exception("Diagram engine configuration failed", extra={"token": session.token})
            return self._render_failed(session, exc)
        session.sanitized = sanitize(session.raw_markup)
        if not session.sanitized:
            return self._finish(session, RenderPhase.DONE, RenderEmpty(markup=session.raw_markup))

        session.advance(RenderPhase.VALIDATING)
        validation = await validate(session.sanitized, self.engine)
        if not self.is_current(session):
            return self._discard(session)
        if not validation.ok:
            failure = RenderFailure(message=validation.error.message, markup=session.sanitized, kind="parse")
            return self._finish(session, RenderPhase.FAILED, failure)

        session.advance(RenderPhase.RENDERING)
        try:
            output = await self._call_engine(session)
        except Exception as exc:
            if not self.is_current(session):
                return self._discard(session)
            logger.exception("Mermaid rendering error", extra={"token": session.token, "diagram_id": session.diagram_id})
            return self._render_failed(session, exc)
        if not self.is_current(session):
            return self._discard(session)

        try:
            if output is None or not (output.svg or "").strip():
                raise RenderError("Failed to generate SVG from chart code")
            graphic = SvgGraphic.from_markup(output.svg, diagram_id=session.diagram_id)
            graphic.fit_to_container()
        except RenderError as exc:
            return self._render_failed(session, exc)

        container = self._container()
        if container is None:
            return self._host_gone(session)
        try:
            graphic.attach_to(container)
        except HostUnavailable:
            return self._host_gone(session)

        width, height = graphic.intrinsic_size()
        success = RenderSuccess(graphic=graphic, width=width, height=height, markup=session.sanitized)
        return self._finish(session, RenderPhase.DONE, success)

    async def _call_engine(self, session: RenderSession) -> EngineOutput:
        call = self.engine.render(session.diagram_id, session.sanitized)
        if not self.timeout_seconds:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise RenderError(f"render timed out after {self.timeout_seconds:g}s") from None

    def _render_failed(self, session: RenderSession, exc: BaseException) -> Optional[RenderResult]:
        detail = str(exc) or type(exc).__name__
        failure = RenderFailure(message=RENDER_FAILURE_PREFIX + detail, markup=session.sanitized, kind="render")
        return self._finish(session, RenderPhase.FAILED, failure)

    def _finish(self, session: RenderSession, phase: RenderPhase, result: RenderResult) -> Optional[RenderResult]:
        session.advance(phase)
        session.result = result
        self.host.on_result(result)
        logger.info(
            "Render session finished",
            extra={"token": session.token, "phase": phase.value, "status": result.status},
        )
        return result

    def _discard(self, session: RenderSession) -> None:
        session.discarded = True
        logger.debug(
            "Discarding stale render result",
            extra={"token": session.token, "current_token": self._token},
        )
        return None

    def _host_gone(self, session: RenderSession) -> None:
        session.discarded = True
        logger.info("Render host unavailable; skipping", extra={"token": session.token})
        return None
