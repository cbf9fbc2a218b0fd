import pytest

from novaflow.renderers.engine import RenderError
from novaflow.renderers.graphic import SvgGraphic
from novaflow.renderers.host import HostUnavailable, MemoryContainer


VIEWBOX_SVG = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 320 180" style="max-width: 320px;"><g/></svg>'
SIZED_SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="250" height="120px"><g/></svg>'
BARE_SVG = '<svg xmlns="http://www.w3.org/2000/svg"><g/></svg>'


def _style(graphic):
    pairs = {}
    for chunk in graphic.root.attrib["style"].split(";"):
        if ":" in chunk:
            key, value = chunk.split(":", 1)
            pairs[key.strip()] = value.strip()
    return pairs


def test_intrinsic_size_prefers_viewbox():
    graphic = SvgGraphic.from_markup(VIEWBOX_SVG)
    assert graphic.intrinsic_size() == (320.0, 180.0)


def test_intrinsic_size_from_width_and_height():
    graphic = SvgGraphic.from_markup(SIZED_SVG)
    assert graphic.intrinsic_size() == (250.0, 120.0)


def test_intrinsic_size_defaults_without_dimensions():
    graphic = SvgGraphic.from_markup(BARE_SVG)
    assert graphic.intrinsic_size() == (800.0, 600.0)


def test_fit_to_container_applies_layout_styles():
    graphic = SvgGraphic.from_markup(VIEWBOX_SVG).fit_to_container()
    style = _style(graphic)
    assert style["max-width"] == "100%"
    assert style["height"] == "auto"
    assert style["display"] == "block"
    assert style["margin"] == "0 auto"
    assert style["background-color"] == "transparent"


def test_fit_to_container_adds_missing_viewbox():
    sized = SvgGraphic.from_markup(SIZED_SVG).fit_to_container()
    assert sized.root.attrib["viewBox"] == "0 0 250 120"
    bare = SvgGraphic.from_markup(BARE_SVG).fit_to_container()
    assert bare.root.attrib["viewBox"] == "0 0 800 600"


def test_fit_to_container_keeps_unrelated_styles():
    svg = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 10 10" style="font-size: 12px"/>'
    graphic = SvgGraphic.from_markup(svg).fit_to_container()
    assert _style(graphic)["font-size"] == "12px"


def test_serialize_uses_default_namespace():
    text = SvgGraphic.from_markup(VIEWBOX_SVG).serialize()
    assert text.startswith("<svg")
    assert "ns0:" not in text


def test_from_markup_rejects_empty_and_invalid_text():
    with pytest.raises(RenderError, match="Failed to generate SVG"):
        SvgGraphic.from_markup("   ")
    with pytest.raises(RenderError, match="Invalid SVG"):
        SvgGraphic.from_markup("<svg><g></svg>")


def test_from_markup_rejects_non_svg_root():
    with pytest.raises(RenderError, match="Expected an <svg> root"):
        SvgGraphic.from_markup("<div>chart</div>")


def test_attach_to_mounts_into_container():
    container = MemoryContainer()
    graphic = SvgGraphic.from_markup(VIEWBOX_SVG, diagram_id="mermaid-1-abc")
    graphic.attach_to(container)
    assert container.graphic is graphic
    assert graphic.container is container
    assert graphic.diagram_id == "mermaid-1-abc"


def test_attach_to_torn_down_container_raises():
    container = MemoryContainer()
    container.teardown()
    with pytest.raises(HostUnavailable):
        SvgGraphic.from_markup(VIEWBOX_SVG).attach_to(container)
