"""REST API server."""
from __future__ import annotations

from typing import Generator, List

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session as DbSession

from novaflow.db import Base, SessionLocal, engine
from novaflow.renderers.host import RenderFailure, RenderSuccess
from novaflow.schemas import (
    ChartCreate,
    ChartResponse,
    ChartUpdate,
    GenerateGanttRequest,
    GeneratePromptRequest,
    GenerationResponse,
    MarkupRequest,
    ProjectCreate,
    ProjectResponse,
    ProjectUpdate,
    RenderResponse,
    SanitizeResponse,
    TaskCreate,
    TaskOrderUpdate,
    TaskResponse,
    TaskUpdate,
)
from novaflow.services import project_service
from novaflow.services.generation_service import GenerationError, generate_from_prompt, generate_from_tasks
from novaflow.services.render_service import render_markup
from novaflow.tools.markup_sanitizer import sanitize


app = FastAPI(title="NovaFlow Chart API")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
    )


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        project_service.seed_demo_project(db)


@app.get("/health")
async def health():
    return {"status": "ok"}


def get_db() -> Generator[DbSession, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Projects


@app.get("/api/projects", response_model=List[ProjectResponse])
def list_projects_api(db: DbSession = Depends(get_db)):
    return project_service.list_projects(db)


@app.get("/api/projects/{project_id}", response_model=ProjectResponse)
def get_project_api(project_id: int, db: DbSession = Depends(get_db)):
    project = project_service.get_project(db, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@app.post("/api/projects", response_model=ProjectResponse, status_code=201)
def create_project_api(payload: ProjectCreate, db: DbSession = Depends(get_db)):
    return project_service.create_project(db, payload)


@app.put("/api/projects/{project_id}", response_model=ProjectResponse)
def update_project_api(project_id: int, payload: ProjectUpdate, db: DbSession = Depends(get_db)):
    project = project_service.update_project(db, project_id, payload)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@app.delete("/api/projects/{project_id}", status_code=204)
def delete_project_api(project_id: int, db: DbSession = Depends(get_db)):
    if not project_service.delete_project(db, project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return Response(status_code=204)


# Tasks


@app.get("/api/projects/{project_id}/tasks", response_model=List[TaskResponse])
def list_tasks_api(project_id: int, db: DbSession = Depends(get_db)):
    return project_service.list_tasks(db, project_id)


@app.post("/api/projects/{project_id}/tasks", response_model=TaskResponse, status_code=201)
def create_task_api(project_id: int, payload: TaskCreate, db: DbSession = Depends(get_db)):
    task = project_service.create_task(db, project_id, payload)
    if not task:
        raise HTTPException(status_code=404, detail="Project not found")
    return task


@app.put("/api/tasks/{task_id}", response_model=TaskResponse)
def update_task_api(task_id: int, payload: TaskUpdate, db: DbSession = Depends(get_db)):
    task = project_service.update_task(db, task_id, payload)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.put("/api/tasks/{task_id}/order", response_model=TaskResponse)
def reorder_task_api(task_id: int, payload: TaskOrderUpdate, db: DbSession = Depends(get_db)):
    task = project_service.reorder_task(db, task_id, payload.order)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.delete("/api/tasks/{task_id}", status_code=204)
def delete_task_api(task_id: int, db: DbSession = Depends(get_db)):
    if not project_service.delete_task(db, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return Response(status_code=204)


# Charts


@app.get("/api/projects/{project_id}/charts", response_model=List[ChartResponse])
def list_charts_api(project_id: int, db: DbSession = Depends(get_db)):
    return project_service.list_charts(db, project_id)


@app.post("/api/projects/{project_id}/charts", response_model=ChartResponse, status_code=201)
def create_chart_api(project_id: int, payload: ChartCreate, db: DbSession = Depends(get_db)):
    chart = project_service.create_chart(db, project_id, payload)
    if not chart:
        raise HTTPException(status_code=404, detail="Project not found")
    return chart


@app.put("/api/charts/{chart_id}", response_model=ChartResponse)
def update_chart_api(chart_id: int, payload: ChartUpdate, db: DbSession = Depends(get_db)):
    chart = project_service.update_chart(db, chart_id, payload)
    if not chart:
        raise HTTPException(status_code=404, detail="Chart not found")
    return chart


@app.delete("/api/charts/{chart_id}", status_code=204)
def delete_chart_api(chart_id: int, db: DbSession = Depends(get_db)):
    if not project_service.delete_chart(db, chart_id):
        raise HTTPException(status_code=404, detail="Chart not found")
    return Response(status_code=204)


# Generation and rendering


@app.post("/api/generate-gantt", response_model=GenerationResponse)
def generate_gantt_api(payload: GenerateGanttRequest):
    result = generate_from_tasks(
        payload.project_name,
        payload.tasks,
        instructions=payload.instructions,
        chart_style=payload.chart_style,
        model=payload.model,
    )
    return GenerationResponse(mermaid_code=result.mermaid_code, warning=result.warning)


@app.post("/api/generate-from-prompt", response_model=GenerationResponse)
def generate_from_prompt_api(payload: GeneratePromptRequest):
    try:
        result = generate_from_prompt(payload.prompt, chart_type=payload.chart_type, model=payload.model)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except GenerationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return GenerationResponse(mermaid_code=result.mermaid_code, warning=result.warning)


@app.post("/api/sanitize", response_model=SanitizeResponse)
def sanitize_api(payload: MarkupRequest):
    return SanitizeResponse(sanitized=sanitize(payload.mermaid_code))


@app.post("/api/render", response_model=RenderResponse)
async def render_api(payload: MarkupRequest):
    outcome = await render_markup(payload.mermaid_code)
    result = outcome.result
    if result is None:
        raise HTTPException(status_code=503, detail="Render host unavailable")
    response = RenderResponse(status=result.status, sanitized=outcome.sanitized)
    if isinstance(result, RenderSuccess):
        response.svg = outcome.svg
        response.width = result.width
        response.height = result.height
        response.export_ready = result.export_ready
    elif isinstance(result, RenderFailure):
        response.message = result.message
    return response
