"""SVG graphic handle returned by the render pipeline."""
from __future__ import annotations

import re
from typing import Optional, Tuple
from xml.etree import ElementTree as ET

from novaflow.renderers.engine import RenderError


SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")

DEFAULT_VIEWBOX = "0 0 800 600"

# Applied to every rendered graphic so it fits the host container.
FIT_STYLES = (
    ("max-width", "100%"),
    ("height", "auto"),
    ("display", "block"),
    ("margin", "0 auto"),
    ("background-color", "transparent"),
)

_LENGTH_RE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*(px)?\s*$")
_MAX_WIDTH_RE = re.compile(r"max-width:\s*([0-9]*\.?[0-9]+)px")


def _strip_ns(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def _parse_length(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    match = _LENGTH_RE.match(value)
    return float(match.group(1)) if match else None


def _parse_style(style: str) -> list[tuple[str, str]]:
    pairs = []
    for chunk in style.split(";"):
        if ":" not in chunk:
            continue
        key, value = chunk.split(":", 1)
        if key.strip():
            pairs.append((key.strip(), value.strip()))
    return pairs


class SvgGraphic:
    """Attachable SVG artifact with known intrinsic dimensions."""

    def __init__(self, root: ET.Element, diagram_id: str = ""):
        if _strip_ns(root.tag) != "svg":
            raise RenderError(f"Expected an <svg> root element, got <{_strip_ns(root.tag)}>")
        self._root = root
        self.diagram_id = diagram_id or root.attrib.get("id", "")
        self.container = None

    @classmethod
    def from_markup(cls, svg_text: str, diagram_id: str = "") -> "SvgGraphic":
        if not svg_text or not svg_text.strip():
            raise RenderError("Failed to generate SVG from chart code")
        try:
            root = ET.fromstring(svg_text.strip())
        except ET.ParseError as exc:
            raise RenderError(f"Invalid SVG: {exc}") from exc
        return cls(root, diagram_id=diagram_id)

    @property
    def root(self) -> ET.Element:
        return self._root

    def intrinsic_size(self) -> Tuple[float, float]:
        """Width and height from the viewBox, falling back to absolute attributes."""
        view_box = self._root.attrib.get("viewBox", "").replace(",", " ").split()
        if len(view_box) == 4:
            try:
                width, height = float(view_box[2]), float(view_box[3])
            except ValueError:
                width = height = 0.0
            if width > 0 and height > 0:
                return width, height
        width = _parse_length(self._root.attrib.get("width"))
        height = _parse_length(self._root.attrib.get("height"))
        if width is None:
            match = _MAX_WIDTH_RE.search(self._root.attrib.get("style", ""))
            width = float(match.group(1)) if match else None
        if width and height:
            return width, height
        _, _, default_w, default_h = DEFAULT_VIEWBOX.split()
        return float(default_w), float(default_h)

    def fit_to_container(self) -> "SvgGraphic":
        """Bound width to the container, auto height, centred, transparent."""
        if not self._root.attrib.get("viewBox"):
            width = _parse_length(self._root.attrib.get("width"))
            height = _parse_length(self._root.attrib.get("height"))
            if width and height:
                self._root.set("viewBox", f"0 0 {width:g} {height:g}")
            else:
                self._root.set("viewBox", DEFAULT_VIEWBOX)
        fit_keys = {key for key, _ in FIT_STYLES}
        kept = [(k, v) for k, v in _parse_style(self._root.attrib.get("style", "")) if k not in fit_keys]
        style = "; ".join(f"{k}: {v}" for k, v in kept + list(FIT_STYLES))
        self._root.set("style", style + ";")
        return self

    def attach_to(self, container) -> None:
        container.mount(self)
        self.container = container

    def serialize(self) -> str:
        return ET.tostring(self._root, encoding="unicode")
