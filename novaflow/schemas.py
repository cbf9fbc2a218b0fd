"""Pydantic schemas for API."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProjectCreate(CamelModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ProjectResponse(CamelModel):
    id: int
    name: str
    description: Optional[str]
    start_date: Optional[str]
    end_date: Optional[str]
    created_at: datetime


class TaskCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    order: int = 0


class TaskUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    order: Optional[int] = None


class TaskResponse(CamelModel):
    id: int
    project_id: int
    title: str
    description: Optional[str]
    start_date: Optional[str]
    end_date: Optional[str]
    order: int


class TaskOrderUpdate(CamelModel):
    order: int


class ChartCreate(CamelModel):
    mermaid_code: str = Field(min_length=1)
    chart_type: str = "gantt"


class ChartUpdate(CamelModel):
    mermaid_code: Optional[str] = Field(default=None, min_length=1)
    chart_type: Optional[str] = None


class ChartResponse(CamelModel):
    id: int
    project_id: int
    mermaid_code: str
    chart_type: str
    created_at: datetime


class GanttTask(CamelModel):
    title: str
    start_date: str
    end_date: str
    description: Optional[str] = None


class GenerateGanttRequest(CamelModel):
    project_name: str
    tasks: List[GanttTask]
    instructions: Optional[str] = None
    chart_style: Optional[str] = None
    model: Optional[str] = Field(default=None, validation_alias="groqModel")


class GeneratePromptRequest(CamelModel):
    prompt: str = ""
    chart_type: Optional[str] = None
    model: Optional[str] = Field(default=None, validation_alias="groqModel")


class GenerationResponse(CamelModel):
    mermaid_code: str
    warning: Optional[str] = None


class MarkupRequest(CamelModel):
    mermaid_code: str = ""


class SanitizeResponse(CamelModel):
    sanitized: str


class RenderResponse(CamelModel):
    status: str
    sanitized: str = ""
    message: Optional[str] = None
    svg: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None
    export_ready: bool = False
