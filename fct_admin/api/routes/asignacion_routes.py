"""
Asignacion Routes

GET /asignaciones - List assignments with student and company names (optional ?q=)
GET /asignaciones/recent - Paginated, newest fechaInicio first
POST /asignaciones - Create assignment (optionally consuming a pending draft)
GET /asignaciones/{id} - Get assignment
PUT /asignaciones/{id} - Update assignment
DELETE /asignaciones/{id} - Delete assignment

The referenced estudiante and empresa must exist (422 otherwise).
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from fct_admin.api.deps import get_current_identity, get_pending_task_manager
from fct_admin.core.session import Identity
from fct_admin.services.mongo_service import AsignacionService
from fct_admin.services.pending_tasks import PendingTaskManager
from fct_admin.schemas.schemas import (
    AsignacionCreate, AsignacionListResponse, AsignacionResponse, AsignacionUpdate,
    DraftType, MessageResponse
)

router = APIRouter(prefix="/asignaciones", tags=["Asignaciones"])


def _stored_date(value: Optional[str]) -> Optional[date]:
    try:
        return date.fromisoformat(value) if value else None
    except ValueError:
        return None


def _check_dates(fecha_inicio, fecha_fin) -> None:
    if fecha_inicio and fecha_fin and fecha_fin < fecha_inicio:
        raise HTTPException(
            status_code=422,
            detail="La fecha de fin no puede ser anterior a la fecha de inicio"
        )


@router.get("", response_model=List[AsignacionResponse])
async def list_asignaciones(
    q: Optional[str] = Query(None, description="Search student, company or dates"),
    identity: Identity = Depends(get_current_identity)
):
    return AsignacionService().search(q)


@router.get("/recent", response_model=AsignacionListResponse)
async def recent_asignaciones(
    page: int = Query(1, ge=1),
    page_size: int = Query(5, ge=1, le=100, alias="pageSize"),
    identity: Identity = Depends(get_current_identity)
):
    asignaciones, total = AsignacionService().recent(page, page_size)
    return AsignacionListResponse(asignaciones=asignaciones, total=total, page=page, page_size=page_size)


@router.post("", response_model=AsignacionResponse, status_code=201)
async def create_asignacion(
    data: AsignacionCreate,
    pending_task_id: Optional[str] = Query(None, alias="pendingTaskId"),
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    """
    Create an assignment.

    Both the estudiante and the empresa are looked up first; a missing one is
    a 422 with the message the form shows.
    """
    _check_dates(data.fecha_inicio, data.fecha_fin)

    service = AsignacionService()
    payload = data.model_dump(by_alias=True, mode="json")
    if pending_task_id:
        asignacion_id = manager.complete_pending_task(DraftType.asignacion, service, payload, pending_task_id)
    else:
        asignacion_id = service.insert(payload)
    return service.enrich([service.get_or_404(asignacion_id)])[0]


@router.get("/{asignacion_id}", response_model=AsignacionResponse)
async def get_asignacion(asignacion_id: str, identity: Identity = Depends(get_current_identity)):
    service = AsignacionService()
    return service.enrich([service.get_or_404(asignacion_id)])[0]


@router.put("/{asignacion_id}", response_model=AsignacionResponse)
async def update_asignacion(
    asignacion_id: str,
    data: AsignacionUpdate,
    identity: Identity = Depends(get_current_identity)
):
    changes = data.model_dump(by_alias=True, mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No hay campos para actualizar")
    service = AsignacionService()

    fecha_inicio, fecha_fin = data.fecha_inicio, data.fecha_fin
    if (fecha_inicio is None) != (fecha_fin is None):
        # compare against the stored date the request leaves unchanged
        stored = service.get_or_404(asignacion_id)
        fecha_inicio = fecha_inicio or _stored_date(stored.get("fechaInicio"))
        fecha_fin = fecha_fin or _stored_date(stored.get("fechaFin"))
    _check_dates(fecha_inicio, fecha_fin)
    return service.enrich([service.update(asignacion_id, changes)])[0]


@router.delete("/{asignacion_id}", response_model=MessageResponse)
async def delete_asignacion(asignacion_id: str, identity: Identity = Depends(get_current_identity)):
    if not AsignacionService().delete(asignacion_id):
        raise HTTPException(status_code=404, detail="No se encontró la asignación.")
    return MessageResponse(message="Asignación eliminada")
