"""Best-effort repair of LLM-generated Mermaid markup.

Generated markup is frequently wrapped in Markdown fences and carries a
handful of recurring syntax mistakes. ``sanitize`` strips the fences and runs
an ordered catalog of rewrite rules over the text. Each rule is a named
pattern/replacement pair so it can be exercised on its own with
``apply_rule``; new quirks from other model providers are handled by adding
rules to ``REWRITE_RULES``.

The sanitizer never raises and is idempotent: the pipeline is re-applied until
the text stops changing.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


_LEADING_FENCE = re.compile(r"\A```[\w-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?```[ \t]*\Z")


@dataclass(frozen=True)
class RewriteRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str
    rationale: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


REWRITE_RULES: Tuple[RewriteRule, ...] = (
    RewriteRule(
        name="title-after-declaration",
        pattern=re.compile(
            r"^((?:graph|flowchart)[ \t]+\w+)[ \t]*\n[ \t]*title[ \t]+(?![ \t-])[^\n]*$",
            re.MULTILINE,
        ),
        replacement=r"\1",
        rationale="flowchart grammars reject a title statement in the body",
    ),
    RewriteRule(
        name="stray-title",
        pattern=re.compile(r"^[ \t]*title[ \t]+(?![ \t-])[^\n]*(?:\n|\Z)", re.MULTILINE),
        replacement="",
        rationale="title lines elsewhere are dropped as well",
    ),
    RewriteRule(
        name="direction-join",
        pattern=re.compile(r"^(graph|flowchart)[ \t]+(TB|TD|BT|RL|LR)_(\w+)", re.MULTILINE),
        replacement=r"\1 \2\n    \3",
        rationale="models glue the first node onto the direction token, e.g. graph LR_A",
    ),
    RewriteRule(
        name="identifier-label-underscore",
        pattern=re.compile(r"([A-Za-z0-9]+)_([A-Za-z0-9_]+)\["),
        replacement=r"\1[\2 ",
        rationale="an underscore between an id and its bracketed label moves into the label",
    ),
    RewriteRule(
        name="arrow-collapse",
        pattern=re.compile(r"(?<![<.=\-])[ \t]*-{2,}>(?!>)(?:[ \t]*-+\^?(?![->]))?[ \t]*"),
        replacement=" --> ",
        rationale="--->, -->--^ and uneven spacing collapse to a single spaced arrow",
    ),
    RewriteRule(
        name="indent-node",
        pattern=re.compile(r"^[ \t]*([A-Za-z0-9]+)\[([^\]\n]+)\][ \t]*$", re.MULTILINE),
        replacement=r"    \1[\2]",
        rationale="standalone node definitions",
    ),
    RewriteRule(
        name="indent-connection",
        pattern=re.compile(r"^[ \t]*([A-Za-z0-9]+)[ \t]*-->[ \t]*([A-Za-z0-9]+)[ \t]*$", re.MULTILINE),
        replacement=r"    \1 --> \2",
        rationale="standalone connections between bare ids",
    ),
    RewriteRule(
        name="collapse-blank-lines",
        pattern=re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+"),
        replacement="\n\n",
        rationale="at most one blank line between statements",
    ),
)

_RULES_BY_NAME: Dict[str, RewriteRule] = {rule.name: rule for rule in REWRITE_RULES}


def strip_fences(raw: Optional[str]) -> str:
    """Remove every surrounding ```lang ... ``` fence layer and outer whitespace."""
    text = (raw or "").strip()
    while True:
        stripped = _LEADING_FENCE.sub("", text, count=1)
        stripped = _TRAILING_FENCE.sub("", stripped, count=1).strip()
        # Each removal shortens the text, so this terminates.
        if stripped == text:
            return text
        text = stripped


def apply_rule(name: str, text: str) -> str:
    """Apply a single rewrite rule by name."""
    try:
        rule = _RULES_BY_NAME[name]
    except KeyError:
        raise ValueError("Unknown rewrite rule: %s" % name) from None
    return rule.apply(text)


def _sanitize_once(text: str) -> str:
    cleaned = strip_fences(text)
    if not cleaned:
        return ""
    for rule in REWRITE_RULES:
        cleaned = rule.apply(cleaned)
    return strip_fences(cleaned)


def sanitize(raw: Optional[str]) -> str:
    """Return cleaned markup; an empty string means there is nothing to render."""
    if not raw:
        return ""
    text = _sanitize_once(raw.replace("\r", ""))
    seen = {text}
    while True:
        again = _sanitize_once(text)
        # A repeat is either the fixed point or a rule cycle; stop on both.
        if again in seen:
            return again
        seen.add(again)
        text = again
