"""Syntax pre-check for sanitized diagram markup."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from novaflow.renderers.engine import DiagramEngine

logger = logging.getLogger(__name__)


_MERMAID_BLOCK_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"<\s*script", re.IGNORECASE), "<script>"),
    (re.compile(r"<\s*iframe", re.IGNORECASE), "<iframe>"),
    (re.compile(r"<\s*img", re.IGNORECASE), "<img>"),
    (re.compile(r"javascript:\s*", re.IGNORECASE), "javascript URI"),
)


class ParseError(ValueError):
    """Sanitized markup rejected by the engine's syntax check."""

    def __init__(self, message: str, blocked_tokens: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.blocked_tokens = list(blocked_tokens or [])


@dataclass
class DiagramValidationResult:
    markup: str
    error: Optional[ParseError] = None
    blocked_tokens: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


def _scan_patterns(text: str, patterns: Iterable[tuple[re.Pattern[str], str]]) -> List[str]:
    blocked: List[str] = []
    for pattern, label in patterns:
        if pattern.search(text):
            blocked.append(label)
    return blocked


def _invalid(markup: str, detail: str, blocked: Optional[List[str]] = None) -> DiagramValidationResult:
    error = ParseError(f"Invalid syntax: {detail}", blocked_tokens=blocked)
    return DiagramValidationResult(markup, error, list(blocked or []))


async def validate(markup: str, engine: DiagramEngine) -> DiagramValidationResult:
    """Check ``markup`` against the engine grammar without modifying it."""
    blocked = _scan_patterns(markup, _MERMAID_BLOCK_PATTERNS)
    if blocked:
        logger.info("Diagram contains blocked directives", extra={"blocked_tokens": blocked})
        return _invalid(markup, "blocked directive " + ", ".join(blocked), blocked)

    try:
        valid = await engine.check_syntax(markup)
    except Exception as exc:
        logger.debug("Syntax check rejected markup: %s", exc)
        return _invalid(markup, str(exc) or "Parse error")

    if valid is False:
        return _invalid(markup, "Parse error")
    return DiagramValidationResult(markup)
