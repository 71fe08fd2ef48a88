"""
Estudiante Routes

GET /estudiantes - List students with their ciclo name (optional ?q=)
POST /estudiantes - Create student (optionally consuming a pending draft)
GET /estudiantes/{id} - Get student
PUT /estudiantes/{id} - Update student
DELETE /estudiantes/{id} - Delete student
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from fct_admin.api.deps import get_current_identity, get_pending_task_manager
from fct_admin.core.errors import MissingReferenceError
from fct_admin.core.session import Identity
from fct_admin.services.mongo_service import CicloService, EstudianteService
from fct_admin.services.pending_tasks import PendingTaskManager
from fct_admin.schemas.schemas import (
    DraftType, EstudianteCreate, EstudianteResponse, EstudianteUpdate, MessageResponse
)

router = APIRouter(prefix="/estudiantes", tags=["Estudiantes"])


def _check_ciclo(ciclo_id: Optional[str]) -> None:
    if ciclo_id and not CicloService().exists(ciclo_id):
        raise MissingReferenceError("El ciclo formativo seleccionado no existe")


def _with_ciclo_name(doc: dict) -> dict:
    ciclo_id = doc.get("cicloFormativoId")
    if ciclo_id:
        ciclo = CicloService().get_by_id(ciclo_id)
        doc["cicloFormativoNombre"] = ciclo.get("nombre") if ciclo else None
    return doc


@router.get("", response_model=List[EstudianteResponse])
async def list_estudiantes(
    q: Optional[str] = Query(None, description="Search nombre, apellidos, dni, email or ciclo"),
    identity: Identity = Depends(get_current_identity)
):
    return EstudianteService().search(q)


@router.post("", response_model=EstudianteResponse, status_code=201)
async def create_estudiante(
    data: EstudianteCreate,
    pending_task_id: Optional[str] = Query(None, alias="pendingTaskId"),
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    _check_ciclo(data.ciclo_formativo_id)

    service = EstudianteService()
    payload = data.model_dump(by_alias=True, mode="json")
    if pending_task_id:
        estudiante_id = manager.complete_pending_task(DraftType.estudiante, service, payload, pending_task_id)
    else:
        estudiante_id = service.insert(payload)
    return _with_ciclo_name(service.get_or_404(estudiante_id))


@router.get("/{estudiante_id}", response_model=EstudianteResponse)
async def get_estudiante(estudiante_id: str, identity: Identity = Depends(get_current_identity)):
    return _with_ciclo_name(EstudianteService().get_or_404(estudiante_id))


@router.put("/{estudiante_id}", response_model=EstudianteResponse)
async def update_estudiante(
    estudiante_id: str,
    data: EstudianteUpdate,
    identity: Identity = Depends(get_current_identity)
):
    changes = data.model_dump(by_alias=True, mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No hay campos para actualizar")
    _check_ciclo(changes.get("cicloFormativoId"))
    return _with_ciclo_name(EstudianteService().update(estudiante_id, changes))


@router.delete("/{estudiante_id}", response_model=MessageResponse)
async def delete_estudiante(estudiante_id: str, identity: Identity = Depends(get_current_identity)):
    if not EstudianteService().delete(estudiante_id):
        raise HTTPException(status_code=404, detail="No se encontró el estudiante.")
    return MessageResponse(message="Estudiante eliminado")
