"""Structural Mermaid syntax checks.

Engines use these checks as their cheap ``check_syntax`` capability before a
full render:

1. the first statement is a known diagram type keyword;
2. ``graph``/``flowchart`` directions are valid when given;
3. the diagram has a body;
4. flowchart lines have balanced brackets outside quoted labels.
"""
from __future__ import annotations

import logging
import re
from typing import List

logger = logging.getLogger(__name__)


# Maps recognised header keywords to whether they take a direction.
DIAGRAM_TYPES: dict[str, bool] = {
    "graph": True,
    "flowchart": True,
    "sequenceDiagram": False,
    "classDiagram": False,
    "classDiagram-v2": False,
    "stateDiagram": False,
    "stateDiagram-v2": False,
    "erDiagram": False,
    "gantt": False,
    "pie": False,
    "mindmap": False,
    "timeline": False,
    "gitGraph": False,
    "journey": False,
    "quadrantChart": False,
    "requirementDiagram": False,
    "xychart-beta": False,
    "block-beta": False,
    "sankey-beta": False,
}

VALID_DIRECTIONS = frozenset({"TD", "TB", "LR", "RL", "BT"})

# Longest keywords first so "stateDiagram-v2" wins over "stateDiagram".
_HEADER_RE = re.compile(
    r"^\s*("
    + "|".join(re.escape(k) for k in sorted(DIAGRAM_TYPES, key=len, reverse=True))
    + r")(?![\w-])",
)
_QUOTED_RE = re.compile(r'"[^"\n]*"')
_EDGE_LABEL_RE = re.compile(r"\|[^|\n]*\|")
_HTML_TAG_RE = re.compile(r"</?[A-Za-z][^<>\n]*/?>")
# Asymmetric shape opener: a node id directly followed by ">", e.g. A>Flag].
_ASYMMETRIC_OPEN_RE = re.compile(r"(^|[\s&;>])([A-Za-z0-9_]+)>")
_PAIRS = {"]": "[", ")": "(", "}": "{"}


class MermaidSyntaxError(ValueError):
    """Raised when markup fails the structural pre-check."""

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line


def _statements(markup: str) -> List[tuple[int, str]]:
    """Return (line number, text) pairs, skipping blanks, comments and front matter."""
    lines = markup.splitlines()
    start = 0
    if lines and lines[0].strip() == "---":
        for idx in range(1, len(lines)):
            if lines[idx].strip() == "---":
                start = idx + 1
                break
    statements = []
    for idx in range(start, len(lines)):
        stripped = lines[idx].strip()
        if not stripped or stripped.startswith("%%"):
            continue
        statements.append((idx + 1, lines[idx]))
    return statements


def _check_brackets(line_no: int, line: str) -> None:
    text = _QUOTED_RE.sub("", line)
    text = _EDGE_LABEL_RE.sub("", text)
    text = _HTML_TAG_RE.sub("", text)
    text = _ASYMMETRIC_OPEN_RE.sub(r"\1\2[", text)
    stack: List[str] = []
    for ch in text:
        if ch in "[({":
            stack.append(ch)
        elif ch in _PAIRS:
            if not stack or stack[-1] != _PAIRS[ch]:
                raise MermaidSyntaxError(f"Unexpected '{ch}' on line {line_no}", line=line_no)
            stack.pop()
    if stack:
        raise MermaidSyntaxError(f"Unclosed '{stack[-1]}' on line {line_no}", line=line_no)


def check_mermaid_structure(markup: str) -> None:
    """Raise MermaidSyntaxError when markup is structurally unusable."""
    statements = _statements(markup or "")
    if not statements:
        raise MermaidSyntaxError("No diagram definition found")

    header_line, header = statements[0]
    match = _HEADER_RE.match(header)
    if not match:
        logger.debug("Unrecognised diagram header %r", header[:80])
        raise MermaidSyntaxError(
            f"No diagram type detected matching text: {header.strip()[:40]}",
            line=header_line,
        )

    keyword = match.group(1)
    if DIAGRAM_TYPES[keyword]:
        rest = header[match.end():].split()
        direction = rest[0].rstrip(";").upper() if rest else ""
        if direction and direction not in VALID_DIRECTIONS:
            raise MermaidSyntaxError(
                f"Invalid direction '{rest[0]}' for {keyword}; expected one of {', '.join(sorted(VALID_DIRECTIONS))}",
                line=header_line,
            )

    inline_body = header.split(";", 1)[1].strip() if ";" in header else ""
    if len(statements) < 2 and not inline_body:
        raise MermaidSyntaxError(f"{keyword} diagram has no content", line=header_line)

    if DIAGRAM_TYPES[keyword]:
        for line_no, line in statements[1:]:
            _check_brackets(line_no, line)
