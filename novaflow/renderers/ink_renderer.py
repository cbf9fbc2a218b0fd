"""Render Mermaid text through a mermaid.ink compatible server."""
from __future__ import annotations

import base64
import json
from typing import Any, Dict, Optional

import httpx

from novaflow.renderers.engine import EngineOutput, RenderError
from novaflow.renderers.syntax import check_mermaid_structure
from novaflow.utils.config import settings


def encode_state(markup: str, config: Dict[str, Any]) -> str:
    """URL-safe base64 of the ``{code, mermaid}`` state the server expects."""
    payload = json.dumps({"code": markup, "mermaid": config}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def _raise_for_status(response: httpx.Response, context: str) -> None:
    if response.status_code >= 400:
        snippet = (response.text or "").strip()
        if len(snippet) > 300:
            snippet = snippet[:300] + "..."
        raise RenderError(f"{context} failed ({response.status_code}): {snippet}")


class MermaidInkEngine:
    name = "mermaid-ink"

    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.mermaid_ink_url).rstrip("/")
        self._client = client
        self.config: Dict[str, Any] = {}

    def configure(self, config: Dict[str, Any]) -> None:
        self.config = config

    async def check_syntax(self, markup: str) -> bool:
        check_mermaid_structure(markup)
        return True

    def svg_url(self, markup: str) -> str:
        return f"{self.base_url}/svg/{encode_state(markup, self.config)}"

    async def render(self, diagram_id: str, markup: str) -> EngineOutput:
        url = self.svg_url(markup)
        if self._client is not None:
            response = await self._client.get(url)
        else:
            async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
                response = await client.get(url)
        _raise_for_status(response, "mermaid.ink render")
        return EngineOutput(svg=response.text, diagram_id=diagram_id)
