import asyncio

from novaflow.renderers.preview_renderer import PreviewEngine
from novaflow.tools.diagram_validator import ParseError, validate


MERMAID_ALLOWED = """graph LR
    A[Client] --> B[Server]"""


MERMAID_SCRIPT = """graph TD
    A[<script>alert(1)</script>] --> B"""


class RejectingEngine:
    name = "rejecting"

    def __init__(self, exc=None):
        self.exc = exc
        self.checked = []

    def configure(self, config):
        pass

    async def check_syntax(self, markup):
        self.checked.append(markup)
        if self.exc is not None:
            raise self.exc
        return False

    async def render(self, diagram_id, markup):
        raise AssertionError("render should not be called")


def test_validate_accepts_baseline_flowchart():
    result = asyncio.run(validate(MERMAID_ALLOWED, PreviewEngine()))
    assert result.ok
    assert result.error is None
    assert result.blocked_tokens == []


def test_validate_does_not_modify_markup():
    result = asyncio.run(validate(MERMAID_ALLOWED, PreviewEngine()))
    assert result.markup is MERMAID_ALLOWED


def test_validate_reports_engine_message():
    result = asyncio.run(validate("grph TD\n    A --> B", PreviewEngine()))
    assert not result.ok
    assert isinstance(result.error, ParseError)
    assert result.error.message.startswith("Invalid syntax: No diagram type detected")


def test_validate_engine_exception_without_message():
    engine = RejectingEngine(exc=RuntimeError())
    result = asyncio.run(validate(MERMAID_ALLOWED, engine))
    assert result.error.message == "Invalid syntax: Parse error"


def test_validate_engine_returning_false():
    engine = RejectingEngine()
    result = asyncio.run(validate(MERMAID_ALLOWED, engine))
    assert engine.checked == [MERMAID_ALLOWED]
    assert result.error.message == "Invalid syntax: Parse error"


def test_validate_blocks_script_tags_before_engine():
    engine = RejectingEngine()
    result = asyncio.run(validate(MERMAID_SCRIPT, engine))
    assert not result.ok
    assert "<script>" in result.blocked_tokens
    assert result.error.blocked_tokens == result.blocked_tokens
    assert engine.checked == []


def test_validate_blocks_javascript_uri():
    markup = 'graph TD\n    A --> B\n    click A "javascript:alert(1)"'
    result = asyncio.run(validate(markup, PreviewEngine()))
    assert "javascript URI" in result.blocked_tokens
