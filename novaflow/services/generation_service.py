"""Turn project tasks or a free-text request into Mermaid markup via the LLM."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from novaflow.schemas import GanttTask
from novaflow.tools.markup_sanitizer import strip_fences
from novaflow.utils.config import settings
from novaflow.utils.openai_client import get_openai_client

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You write Mermaid.js diagrams. Reply with Mermaid code only: no prose, no Markdown, "
    "no code fences. Syntax rules: "
    "1) node ids are plain letters or digits (A, B, step2), never with underscores; "
    "2) labels go in brackets after the id, e.g. A[Start Process]; "
    "3) connect nodes with arrows, e.g. A --> B; "
    "4) put the declaration on its own line, e.g. graph LR, and indent every node and "
    "connection with 4 spaces; "
    "5) do not use title statements.\n"
    "Example:\ngraph LR\n    A[Planning] --> B[Requirements]\n    B --> C[Development]\n    C --> D[Testing]"
)

DIAGRAM_CHOICE_HINTS = (
    "- time-based schedules: gantt chart\n"
    "- processes or workflows: flowchart\n"
    "- concepts or ideas: mindmap\n"
    "- states and transitions: state diagram\n"
    "- interactions between actors: sequence diagram\n"
    "- if the user named a diagram type, use it"
)

FALLBACK_PROMPT_CHART = """flowchart TD
    A[User Request] --> B[Process Request]
    B --> C[Generate Output]
    C --> D[Display Result]"""

_UNSAFE_TASK_CHARS = re.compile(r"[^a-zA-Z0-9\s]")


class GenerationError(RuntimeError):
    """The LLM backend is not configured."""


@dataclass
class GenerationResult:
    mermaid_code: str
    warning: Optional[str] = None


def build_tasks_prompt(
    project_name: str,
    tasks: Sequence[GanttTask],
    instructions: Optional[str] = None,
    chart_style: Optional[str] = None,
) -> str:
    entries = []
    for index, task in enumerate(tasks, start=1):
        entries.append(
            f"{index}. {task.title}\n"
            f"   Start Date: {task.start_date}\n"
            f"   End Date: {task.end_date}\n"
            f"   Description: {task.description or 'N/A'}"
        )
    return (
        "Create a Mermaid.js visualization for this project.\n\n"
        f"Project Name: {project_name}\n"
        f"Visualization Style: {chart_style or 'Auto-select best type'}\n"
        f"User Instructions: {instructions or 'Create the most appropriate visualization for this data'}\n\n"
        "Project Data:\n"
        + "\n\n".join(entries)
        + "\n\nChoose the diagram type that fits the data:\n"
        + DIAGRAM_CHOICE_HINTS
    )


def build_request_prompt(prompt: str, chart_type: Optional[str] = None) -> str:
    return (
        "Create a Mermaid.js visualization for this request.\n\n"
        f"USER REQUEST: {prompt}\n\n"
        f"PREFERRED CHART TYPE: {chart_type or 'Auto-select best type'}\n\n"
        "Choose the diagram type that fits the request:\n"
        + DIAGRAM_CHOICE_HINTS
        + "\n\nReturn only the Mermaid code."
    )


def fallback_gantt(project_name: str, tasks: Sequence[GanttTask]) -> str:
    """Deterministic gantt chart used when the LLM cannot be reached."""
    lines = [
        "gantt",
        f"    title {project_name or 'Project Gantt Chart'}",
        "    dateFormat YYYY-MM-DD",
        "    section Project Timeline",
    ]
    for index, task in enumerate(tasks, start=1):
        title = _UNSAFE_TASK_CHARS.sub("", task.title).strip() or f"Task {index}"
        lines.append(f"    {title} :task{index}, {task.start_date}, {task.end_date}")
    return "\n".join(lines)


def _complete(user_prompt: str, model: Optional[str]) -> str:
    client = get_openai_client()
    response = client.chat.completions.create(
        model=model or settings.llm_model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ],
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )
    raw = (response.choices[0].message.content or "").strip() if response.choices else ""
    code = strip_fences(raw)
    if not code:
        raise ValueError("No Mermaid code generated from API response")
    return code


def generate_from_tasks(
    project_name: str,
    tasks: Sequence[GanttTask],
    *,
    instructions: Optional[str] = None,
    chart_style: Optional[str] = None,
    model: Optional[str] = None,
) -> GenerationResult:
    if not settings.llm_api_key:
        logger.info("LLM key missing; using fallback gantt chart")
        return GenerationResult(
            fallback_gantt(project_name, tasks),
            warning="Using fallback chart generation. Configure LLM_API_KEY for AI-powered charts.",
        )
    prompt = build_tasks_prompt(project_name, tasks, instructions, chart_style)
    try:
        return GenerationResult(_complete(prompt, model))
    except Exception:
        logger.exception("Chart generation from tasks failed", extra={"project_name": project_name})
        return GenerationResult(
            fallback_gantt(project_name, tasks),
            warning="Used fallback chart generation due to API error",
        )


def generate_from_prompt(
    prompt: str,
    *,
    chart_type: Optional[str] = None,
    model: Optional[str] = None,
) -> GenerationResult:
    if not prompt or not prompt.strip():
        raise ValueError("Prompt is required")
    if not settings.llm_api_key:
        raise GenerationError("LLM API key not configured. Set LLM_API_KEY in the environment.")
    try:
        return GenerationResult(_complete(build_request_prompt(prompt, chart_type), model))
    except Exception:
        logger.exception("Chart generation from prompt failed")
        return GenerationResult(FALLBACK_PROMPT_CHART, warning="Used fallback visualization due to API error")
