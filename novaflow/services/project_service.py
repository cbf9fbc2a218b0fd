"""Persistence operations for projects, tasks and charts."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from novaflow.db_models import Chart, Project, Task
from novaflow.schemas import (
    ChartCreate,
    ChartUpdate,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
)

logger = logging.getLogger(__name__)


def _apply(record, payload) -> None:
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(record, key, value)


def list_projects(db: DbSession) -> List[Project]:
    return list(db.scalars(select(Project).order_by(Project.id)))


def get_project(db: DbSession, project_id: int) -> Optional[Project]:
    return db.get(Project, project_id)


def create_project(db: DbSession, payload: ProjectCreate) -> Project:
    project = Project(**payload.model_dump())
    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Created project", extra={"project_id": project.id})
    return project


def update_project(db: DbSession, project_id: int, payload: ProjectUpdate) -> Optional[Project]:
    project = db.get(Project, project_id)
    if not project:
        return None
    _apply(project, payload)
    db.commit()
    db.refresh(project)
    return project


def delete_project(db: DbSession, project_id: int) -> bool:
    project = db.get(Project, project_id)
    if not project:
        return False
    db.delete(project)
    db.commit()
    return True


def list_tasks(db: DbSession, project_id: int) -> List[Task]:
    return list(db.scalars(select(Task).where(Task.project_id == project_id).order_by(Task.order, Task.id)))


def create_task(db: DbSession, project_id: int, payload: TaskCreate) -> Optional[Task]:
    if not db.get(Project, project_id):
        return None
    task = Task(project_id=project_id, **payload.model_dump())
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(db: DbSession, task_id: int, payload: TaskUpdate) -> Optional[Task]:
    task = db.get(Task, task_id)
    if not task:
        return None
    _apply(task, payload)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: DbSession, task_id: int) -> bool:
    task = db.get(Task, task_id)
    if not task:
        return False
    db.delete(task)
    db.commit()
    return True


def reorder_task(db: DbSession, task_id: int, new_order: int) -> Optional[Task]:
    """Move a task to ``new_order`` within its project, shifting its siblings."""
    task = db.get(Task, task_id)
    if not task:
        return None
    siblings = [t for t in list_tasks(db, task.project_id) if t.id != task.id]
    new_order = max(0, min(new_order, len(siblings)))
    siblings.insert(new_order, task)
    for index, item in enumerate(siblings):
        item.order = index
    db.commit()
    db.refresh(task)
    return task


def list_charts(db: DbSession, project_id: int) -> List[Chart]:
    return list(db.scalars(select(Chart).where(Chart.project_id == project_id).order_by(Chart.id)))


def create_chart(db: DbSession, project_id: int, payload: ChartCreate) -> Optional[Chart]:
    if not db.get(Project, project_id):
        return None
    chart = Chart(project_id=project_id, **payload.model_dump())
    db.add(chart)
    db.commit()
    db.refresh(chart)
    return chart


def update_chart(db: DbSession, chart_id: int, payload: ChartUpdate) -> Optional[Chart]:
    chart = db.get(Chart, chart_id)
    if not chart:
        return None
    _apply(chart, payload)
    db.commit()
    db.refresh(chart)
    return chart


def delete_chart(db: DbSession, chart_id: int) -> bool:
    chart = db.get(Chart, chart_id)
    if not chart:
        return False
    db.delete(chart)
    db.commit()
    return True


def seed_demo_project(db: DbSession) -> Optional[Project]:
    """Create the sample project on an empty database."""
    if db.scalars(select(Project).limit(1)).first() is not None:
        return None
    today = date.today()
    project = Project(
        name="NovaFlow Demo Project",
        description="A sample project to demonstrate chart generation",
        start_date=today.isoformat(),
        end_date=(today + timedelta(days=30)).isoformat(),
    )
    steps = [
        ("Project Planning", "Define project scope and requirements", 0, 5),
        ("Design Phase", "Create wireframes and mockups", 5, 12),
        ("Development", "Build the core features", 12, 25),
        ("Testing & Launch", "Test the application and deploy", 25, 30),
    ]
    for order, (title, description, start, end) in enumerate(steps):
        project.tasks.append(
            Task(
                title=title,
                description=description,
                start_date=(today + timedelta(days=start)).isoformat(),
                end_date=(today + timedelta(days=end)).isoformat(),
                order=order,
            )
        )
    db.add(project)
    db.commit()
    db.refresh(project)
    return project
