"""
Pending Task Routes

GET /pending-tasks - Own drafts, newest first, with the badge count
POST /pending-tasks - Save a half-filled form as pending
GET /pending-tasks/{id} - One draft
DELETE /pending-tasks/{id} - Discard a draft
GET /pending-tasks/{type}/{id}/resume - Load a draft back into its create form

Every query is scoped to the caller's uid; another user's draft id behaves
exactly like a missing one.
"""

from typing import Optional

from fastapi import APIRouter, Body, HTTPException, Depends, Query
from fastapi.responses import JSONResponse

from fct_admin.api.deps import get_pending_task_manager
from fct_admin.core.errors import MalformedDraftError
from fct_admin.services.pending_tasks import PendingTaskManager, TASK_NOT_FOUND
from fct_admin.schemas.schemas import (
    DraftType, DraftUnion, MessageResponse, PendingTask,
    PendingTaskCreated, PendingTaskListResponse, PendingTaskResume
)

router = APIRouter(prefix="/pending-tasks", tags=["Pending Tasks"])

TYPE_TITLES = {
    DraftType.empresa: "Empresa",
    DraftType.estudiante: "Estudiante",
    DraftType.asignacion: "Asignación",
    DraftType.ciclo: "Ciclo Formativo",
}

BACK_HREF = "/dashboard/pendientes"


def _resume_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "backHref": BACK_HREF}
    )


@router.get("", response_model=PendingTaskListResponse, response_model_exclude_unset=True)
async def list_pending_tasks(
    type: Optional[DraftType] = Query(None, description="Only drafts of this kind"),
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    """Own drafts; `count` is the total regardless of the type filter."""
    tasks = manager.refresh_tasks()
    if type is not None:
        tasks = [task for task in tasks if task.type == type.value]
    return PendingTaskListResponse(tasks=tasks, count=manager.count)


@router.post("", response_model=PendingTaskCreated, status_code=201)
async def create_pending_task(
    draft: DraftUnion = Body(..., discriminator="type"),
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    manager.refresh_tasks()
    task_id = manager.add_pending_task(draft)
    return PendingTaskCreated(
        id=task_id,
        message="La tarea se ha guardado como pendiente.",
        count=manager.count
    )


@router.get("/{task_id}", response_model=PendingTask, response_model_exclude_unset=True)
async def get_pending_task(task_id: str, manager: PendingTaskManager = Depends(get_pending_task_manager)):
    task = manager.get_pending_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=TASK_NOT_FOUND)
    return task


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_pending_task(task_id: str, manager: PendingTaskManager = Depends(get_pending_task_manager)):
    """Discard a draft. Unknown ids are not an error."""
    manager.remove_pending_task(task_id)
    return MessageResponse(message="La tarea pendiente ha sido eliminada.")


@router.get("/{task_type}/{task_id}/resume", response_model=PendingTaskResume, response_model_exclude_unset=True)
async def resume_pending_task(
    task_type: str,
    task_id: str,
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    """
    Draft ready to prefill the create form of its type.

    Unknown type, missing draft or a type that does not match the stored one
    is a 404; stored formData that no longer fits the form is a 422. Both
    carry `backHref` to the pending list.
    """
    try:
        kind = DraftType(task_type)
    except ValueError:
        return _resume_error(404, TASK_NOT_FOUND)

    try:
        task = manager.get_pending_task(task_id)
    except MalformedDraftError as e:
        return _resume_error(422, e.message)

    if task is None or task.type != kind.value:
        return _resume_error(404, TASK_NOT_FOUND)

    return PendingTaskResume(
        task=task,
        title=f"Continuar registro: {task.title}",
        description=f"Completa el registro pendiente de {TYPE_TITLES[kind]}",
        back_href=BACK_HREF
    )
