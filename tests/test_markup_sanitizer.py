import random

import pytest

from novaflow.tools.markup_sanitizer import REWRITE_RULES, apply_rule, sanitize, strip_fences


MALFORMED_FRAGMENTS = [
    "A[Start] --> B[End]",
    "A -->--^ B",
    "A ---> B",
    "A-->B",
    "  C   -->   D  ",
    "Node_Label[Some Text]",
    "my_long_id[Label] --> other_id[Other]",
    "title Project Overview",
    "    title Roadmap 2024",
    "E[Standalone]",
    "F{Decision?} -->|yes| G[Done]",
    "H <--> I",
    "J -->-- K",
    "subgraph One",
    "end",
    "style A fill:#f9f,stroke:#333",
    "K((Circle)) --> L[(Database)]",
    "",
    "   ",
    "M --> N --> O",
]

HEADERS = [
    "graph LR",
    "graph TD",
    "flowchart TB",
    "graph LR_First[Entry]",
    "graph TD_Start",
    "sequenceDiagram",
    "gantt",
    "",
]


def _fuzzed_inputs(count=60, seed=20240611):
    rng = random.Random(seed)
    samples = []
    for _ in range(count):
        lines = [rng.choice(HEADERS)]
        for _ in range(rng.randint(1, 8)):
            lines.append(rng.choice(MALFORMED_FRAGMENTS))
        separator = rng.choice(["\n", "\n\n", "\n\n\n\n", "\n  \n\n"])
        body = separator.join(lines)
        wrap = rng.choice(["plain", "fence", "lang-fence", "padded"])
        if wrap == "fence":
            body = f"```\n{body}\n```"
        elif wrap == "lang-fence":
            body = f"```mermaid\n{body}\n```\n"
        elif wrap == "padded":
            body = f"\n\n   {body}   \n"
        samples.append(body)
    return samples


def test_sanitize_empty_input():
    assert sanitize("") == ""
    assert sanitize(None) == ""
    assert sanitize("   \n\t ") == ""
    assert sanitize("```\n```") == ""


def test_sanitize_strips_plain_fence():
    assert sanitize("```\nfoo\n```") == "foo"


@pytest.mark.parametrize(
    "body",
    [
        "graph TD\n  A[Start] --> B[End]",
        "graph LR\n    title My Title\n    A --> B",
        "sequenceDiagram\n    Alice->>Bob: Hi\n    Bob-->>Alice: Hello",
    ],
)
def test_fenced_input_matches_unwrapped(body):
    expected = sanitize(body)
    assert sanitize(f"```\n{body}\n```") == expected
    assert sanitize(f"```mermaid\n{body}\n```") == expected
    assert sanitize(f"```mermaid\n{body}\n```\n") == expected


def test_strip_fences_only_touches_outer_fence():
    assert strip_fences("```mermaid\ngraph TD\n    A --> B\n```") == "graph TD\n    A --> B"
    assert strip_fences("graph TD\n    A --> B") == "graph TD\n    A --> B"


def test_title_after_declaration_is_removed():
    result = sanitize("graph LR\n    title My Title\n    A --> B")
    assert not any(line.strip().startswith("title") for line in result.splitlines())
    assert "A --> B" in result
    assert result == "graph LR\n    A --> B"


def test_stray_title_lines_are_removed():
    result = sanitize("flowchart TD\n    A --> B\n    title Oops\n    B --> C")
    assert result == "flowchart TD\n    A --> B\n    B --> C"


def test_node_named_title_is_kept():
    result = sanitize("graph TD\n    title --> B")
    assert "title --> B" in result


def test_direction_join_is_split_into_declaration_and_node():
    result = sanitize("graph LR_MyNode[Label]")
    lines = result.splitlines()
    assert lines[0] == "graph LR"
    assert lines[1].strip() == "MyNode[Label]"
    assert result == "graph LR\n    MyNode[Label]"


def test_direction_join_keeps_following_lines():
    result = sanitize("graph LR_A[Start]\n    A --> B")
    assert result == "graph LR\n    A[Start]\n    A --> B"


@pytest.mark.parametrize(
    "raw",
    [
        "graph LR\n    A -->--^ B",
        "graph LR\n    A ---> B",
        "graph LR\n    A-->B",
        "graph LR\n    A   -->    B",
        "graph LR\n    A -->-- B",
    ],
)
def test_arrow_variants_normalize(raw):
    assert sanitize(raw) == "graph LR\n    A --> B"


def test_arrow_between_labelled_nodes():
    assert sanitize("graph TD\n  A[Start]--->B[End]") == "graph TD\n  A[Start] --> B[End]"


def test_bidirectional_and_sequence_arrows_untouched():
    assert sanitize("graph LR\n    A <--> B") == "graph LR\n    A <--> B"
    assert sanitize("sequenceDiagram\n    Alice-->>Bob: Hi") == "sequenceDiagram\n    Alice-->>Bob: Hi"


def test_end_to_end_example_keeps_valid_markup():
    raw = "```mermaid\ngraph TD\n  A[Start] --> B[End]\n```"
    assert sanitize(raw) == "graph TD\n  A[Start] --> B[End]"


def test_blank_line_runs_collapse():
    assert sanitize("graph TD\n    A --> B\n\n\n\n    B --> C") == "graph TD\n    A --> B\n\n    B --> C"


def test_rules_are_ordered_and_named():
    assert [rule.name for rule in REWRITE_RULES] == [
        "title-after-declaration",
        "stray-title",
        "direction-join",
        "identifier-label-underscore",
        "arrow-collapse",
        "indent-node",
        "indent-connection",
        "collapse-blank-lines",
    ]
    assert all(rule.rationale for rule in REWRITE_RULES)


def test_rule_title_after_declaration():
    assert apply_rule("title-after-declaration", "graph TD\n  title Foo\n  A --> B") == "graph TD\n  A --> B"


def test_rule_stray_title():
    assert apply_rule("stray-title", "title X\ngraph TD") == "graph TD"


def test_rule_direction_join():
    assert apply_rule("direction-join", "graph TD_Start") == "graph TD\n    Start"


def test_rule_identifier_label_underscore():
    assert apply_rule("identifier-label-underscore", "    Node_Label[Text]") == "    Node[Label Text]"


def test_rule_arrow_collapse():
    assert apply_rule("arrow-collapse", "A--->B") == "A --> B"
    assert apply_rule("arrow-collapse", "A -->--^ B") == "A --> B"


def test_rule_indent_node():
    assert apply_rule("indent-node", "A[Start]") == "    A[Start]"


def test_rule_indent_connection():
    assert apply_rule("indent-connection", "  A-->B  ") == "    A --> B"


def test_rule_collapse_blank_lines():
    assert apply_rule("collapse-blank-lines", "a\n\n\n\nb") == "a\n\nb"
    assert apply_rule("collapse-blank-lines", "a\n\nb") == "a\n\nb"


def test_unknown_rule_raises():
    with pytest.raises(ValueError):
        apply_rule("no-such-rule", "graph TD")


def test_sanitize_is_idempotent_on_fuzzed_inputs():
    samples = _fuzzed_inputs()
    assert len(samples) >= 50
    for raw in samples:
        once = sanitize(raw)
        assert sanitize(once) == once, raw


def test_sanitized_output_has_no_fence_or_outer_whitespace():
    for raw in _fuzzed_inputs(seed=7):
        result = sanitize(raw)
        assert result == result.strip()
        assert not result.startswith("```")
        assert not result.endswith("```")


def _fenced_inputs(count=40, seed=99):
    rng = random.Random(seed)
    samples = []
    for _ in range(count):
        body = rng.choice(["graph TD\n    A --> B", "graph LR_A[Start]\n    A ---> B", "title Plan\ngantt", ""])
        for _ in range(rng.randint(1, 12)):
            opener = rng.choice(["```", "```mermaid", "```mermaid  ", "``` "])
            body = f"{opener}\n{body}\n" + rng.choice(["```", "```  ", "```\n\n"])
        samples.append(body)
    for length in (3, 4, 7, 24, 60, 61, 62):
        samples.append("`" * length)
        samples.append("`" * length + "\ngraph TD\n    A --> B\n" + "`" * length)
    return samples


def test_nested_fences_are_fully_removed():
    raw = "```mermaid\n" * 8 + "graph TD\n    A --> B" + "\n```" * 8
    assert sanitize(raw) == "graph TD\n    A --> B"
    assert strip_fences(raw) == "graph TD\n    A --> B"


def test_long_backtick_run_is_stable():
    once = sanitize("`" * 60)
    assert once == ""
    assert sanitize("`" * 61) == "`"


def test_sanitize_is_idempotent_on_odd_fences():
    for raw in _fenced_inputs():
        once = sanitize(raw)
        assert sanitize(once) == once, raw
        assert not once.startswith("```"), raw
        assert not once.endswith("```"), raw
