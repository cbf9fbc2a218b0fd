"""Offline preview engine.

Produces neutral SVG (no colors or style tags) without a browser or network:
flowcharts become boxes joined by arrows, sequence diagrams become lifelines,
anything else is embedded as text. Used by tests and when no real Mermaid
engine is installed.
"""
from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Tuple

from novaflow.renderers.engine import EngineOutput
from novaflow.renderers.syntax import check_mermaid_structure


_NODE_RE = re.compile(r"([A-Za-z0-9_]+)\s*(?:\[\(?|\(\(?|\{\{?|>)\s*\"?([^\]\)\}\"]*)\"?\s*(?:\)?\]|\)?\)|\}?\})?")
_EDGE_SPLIT_RE = re.compile(r"\s*(?:-->|---|==>|-\.->)\s*(?:\|[^|]*\|\s*)?")

_BOX_W = 140
_BOX_H = 40
_GAP = 60
_MARGIN = 20


def _svg_root(width: float, height: float, diagram_id: str) -> ET.Element:
    return ET.Element(
        "svg",
        xmlns="http://www.w3.org/2000/svg",
        version="1.1",
        id=diagram_id or "preview",
        width=f"{width:g}",
        height=f"{height:g}",
        viewBox=f"0 0 {width:g} {height:g}",
    )


def _svg_with_text(body: str, diagram_id: str) -> str:
    lines = body.splitlines()[:40] or [""]
    height = 20 * len(lines) + 2 * _MARGIN
    root = _svg_root(600, height, diagram_id)
    g = ET.SubElement(root, "g")
    for idx, line in enumerate(lines):
        text = ET.SubElement(g, "text", x=str(_MARGIN), y=str(_MARGIN + 20 * (idx + 1) - 6))
        text.text = line[:200]
    return ET.tostring(root, encoding="unicode")


def _parse_node(token: str, labels: Dict[str, str], order: List[str]) -> str:
    token = token.strip().rstrip(";")
    match = _NODE_RE.match(token)
    if match:
        node_id = match.group(1)
        label = (match.group(2) or "").strip()
    else:
        node_id, label = token.split()[0] if token.split() else token, ""
    if node_id not in order:
        order.append(node_id)
    if label or node_id not in labels:
        labels[node_id] = label or labels.get(node_id) or node_id
    return node_id


def _flowchart(lines: List[str], horizontal: bool, diagram_id: str) -> str:
    labels: Dict[str, str] = {}
    order: List[str] = []
    edges: List[Tuple[str, str]] = []
    for line in lines:
        if line.split()[0] in {"subgraph", "end", "style", "classDef", "class", "click", "linkStyle", "direction"}:
            continue
        parts = [p for p in _EDGE_SPLIT_RE.split(line) if p.strip()]
        ids = [_parse_node(p, labels, order) for p in parts]
        edges.extend(zip(ids, ids[1:]))

    count = max(1, len(order))
    if horizontal:
        width = _MARGIN * 2 + count * _BOX_W + (count - 1) * _GAP
        height = _MARGIN * 2 + _BOX_H
    else:
        width = _MARGIN * 2 + _BOX_W
        height = _MARGIN * 2 + count * _BOX_H + (count - 1) * _GAP
    root = _svg_root(width, height, diagram_id)

    positions: Dict[str, Tuple[float, float]] = {}
    for idx, node_id in enumerate(order):
        if horizontal:
            x, y = _MARGIN + idx * (_BOX_W + _GAP), _MARGIN
        else:
            x, y = _MARGIN, _MARGIN + idx * (_BOX_H + _GAP)
        positions[node_id] = (x, y)
        g = ET.SubElement(root, "g", {"class": "node", "id": f"{diagram_id}-{node_id}"})
        ET.SubElement(g, "rect", x=f"{x:g}", y=f"{y:g}", width=str(_BOX_W), height=str(_BOX_H), rx="6")
        text = ET.SubElement(g, "text", {"x": f"{x + _BOX_W / 2:g}", "y": f"{y + _BOX_H / 2 + 4:g}", "text-anchor": "middle"})
        text.text = labels.get(node_id, node_id)

    for src, tgt in edges:
        (sx, sy), (tx, ty) = positions[src], positions[tgt]
        if horizontal:
            x1, y1, x2, y2 = sx + _BOX_W, sy + _BOX_H / 2, tx, ty + _BOX_H / 2
        else:
            x1, y1, x2, y2 = sx + _BOX_W / 2, sy + _BOX_H, tx + _BOX_W / 2, ty
        ET.SubElement(root, "line", {"class": "edge", "x1": f"{x1:g}", "y1": f"{y1:g}", "x2": f"{x2:g}", "y2": f"{y2:g}"})
    return ET.tostring(root, encoding="unicode")


def _sequence(lines: List[str], diagram_id: str) -> str:
    participants: List[str] = []
    events = []
    for line in lines:
        lowered = line.lower()
        if lowered.startswith(("participant", "actor")):
            tokens = line.split(None, 1)
            if len(tokens) > 1:
                name = tokens[1].split(" as ", 1)[0].strip()
                if name not in participants:
                    participants.append(name)
            continue
        for sep in ("-->>", "->>", "-->", "->", "--x", "-x"):
            if sep in line:
                arrow_part, _, label = line.partition(":")
                src, tgt = [p.strip().lstrip("+-") for p in arrow_part.split(sep, 1)]
                for name in (src, tgt):
                    if name and name not in participants:
                        participants.append(name)
                events.append((src, tgt, label.strip()))
                break

    width = 600
    lifeline_h = max(120, 40 * (len(events) + 1))
    height = lifeline_h + 80
    root = _svg_root(width, height, diagram_id)
    count = max(1, len(participants))
    step_x = (width - 2 * 40) / max(1, count - 1) if count > 1 else 0
    xs = {}
    for i, name in enumerate(participants):
        x = 40 + i * step_x if count > 1 else width / 2
        xs[name] = x
        ET.SubElement(root, "rect", x=f"{x - 30:g}", y="5", width="60", height="24", rx="6")
        t = ET.SubElement(root, "text", {"x": f"{x:g}", "y": "22", "text-anchor": "middle"})
        t.text = name
        ET.SubElement(root, "line", {"x1": f"{x:g}", "y1": "40", "x2": f"{x:g}", "y2": f"{40 + lifeline_h:g}", "stroke-dasharray": "4 4"})
    y = 60
    for src, tgt, label in events:
        sx, tx = xs.get(src, 40), xs.get(tgt, 140)
        ET.SubElement(root, "line", {"class": "message", "x1": f"{sx:g}", "y1": str(y), "x2": f"{tx:g}", "y2": str(y)})
        if label:
            tl = ET.SubElement(root, "text", {"x": f"{(sx + tx) / 2:g}", "y": str(y - 6), "text-anchor": "middle"})
            tl.text = label
        y += 40
    return ET.tostring(root, encoding="unicode")


def render_preview_svg(markup: str, diagram_id: str = "") -> str:
    lines = [line.strip() for line in (markup or "").splitlines() if line.strip() and not line.strip().startswith("%%")]
    if not lines:
        return _svg_with_text("Mermaid: (empty)", diagram_id)
    header = lines[0].split()
    keyword = header[0]
    if keyword in {"graph", "flowchart"}:
        direction = header[1].rstrip(";").upper() if len(header) > 1 else "TD"
        return _flowchart(lines[1:], direction in {"LR", "RL"}, diagram_id)
    if keyword == "sequenceDiagram":
        return _sequence(lines[1:], diagram_id)
    return _svg_with_text("\n".join(lines), diagram_id)


class PreviewEngine:
    name = "preview"

    def __init__(self):
        self.config: Dict[str, Any] = {}

    def configure(self, config: Dict[str, Any]) -> None:
        self.config = config

    async def check_syntax(self, markup: str) -> bool:
        check_mermaid_structure(markup)
        return True

    async def render(self, diagram_id: str, markup: str) -> EngineOutput:
        return EngineOutput(svg=render_preview_svg(markup, diagram_id), diagram_id=diagram_id)
