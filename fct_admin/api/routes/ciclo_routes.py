"""
Ciclo Formativo Routes

GET /ciclos - List ciclos (optional ?q=)
GET /ciclos/overview - Paginated overview ordered by familia, nombre
POST /ciclos - Create ciclo (optionally consuming a pending draft)
POST /ciclos/seed - Insert the catalog ciclos that are missing
GET /ciclos/{id} - Get ciclo
PUT /ciclos/{id} - Update ciclo
DELETE /ciclos/{id} - Delete ciclo
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from fct_admin.api.deps import get_current_identity, get_pending_task_manager
from fct_admin.core.session import Identity
from fct_admin.services.ciclos_catalog import seed_ciclos
from fct_admin.services.mongo_service import CicloService
from fct_admin.services.pending_tasks import PendingTaskManager
from fct_admin.schemas.schemas import (
    CicloCreate, CicloListResponse, CicloResponse, CicloUpdate,
    DraftType, MessageResponse, SeedResult
)

router = APIRouter(prefix="/ciclos", tags=["Ciclos Formativos"])


def _to_store(values: dict) -> dict:
    # duracion is kept as a string in ciclosFormativos
    if values.get("duracion") is not None:
        values["duracion"] = str(values["duracion"])
    return values


@router.get("", response_model=List[CicloResponse])
async def list_ciclos(
    q: Optional[str] = Query(None, description="Search nombre, familia or nivel"),
    identity: Identity = Depends(get_current_identity)
):
    return CicloService().search(q)


@router.get("/overview", response_model=CicloListResponse)
async def ciclos_overview(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100, alias="pageSize"),
    identity: Identity = Depends(get_current_identity)
):
    ciclos, total = CicloService().page(page, page_size)
    return CicloListResponse(ciclos=ciclos, total=total, page=page, page_size=page_size)


@router.post("", response_model=CicloResponse, status_code=201)
async def create_ciclo(
    data: CicloCreate,
    pending_task_id: Optional[str] = Query(None, alias="pendingTaskId"),
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    service = CicloService()
    payload = _to_store(data.model_dump(by_alias=True, mode="json"))
    if pending_task_id:
        ciclo_id = manager.complete_pending_task(DraftType.ciclo, service, payload, pending_task_id)
    else:
        ciclo_id = service.insert(payload)
    return service.get_or_404(ciclo_id)


@router.post("/seed", response_model=SeedResult)
async def seed(identity: Identity = Depends(get_current_identity)):
    """Add the catalog ciclos not yet stored; existing (nombre, familia) pairs are skipped."""
    return seed_ciclos()


@router.get("/{ciclo_id}", response_model=CicloResponse)
async def get_ciclo(ciclo_id: str, identity: Identity = Depends(get_current_identity)):
    return CicloService().get_or_404(ciclo_id)


@router.put("/{ciclo_id}", response_model=CicloResponse)
async def update_ciclo(
    ciclo_id: str,
    data: CicloUpdate,
    identity: Identity = Depends(get_current_identity)
):
    changes = _to_store(data.model_dump(by_alias=True, mode="json", exclude_unset=True))
    if not changes:
        raise HTTPException(status_code=400, detail="No hay campos para actualizar")
    return CicloService().update(ciclo_id, changes)


@router.delete("/{ciclo_id}", response_model=MessageResponse)
async def delete_ciclo(ciclo_id: str, identity: Identity = Depends(get_current_identity)):
    if not CicloService().delete(ciclo_id):
        raise HTTPException(status_code=404, detail="No se encontró el ciclo formativo.")
    return MessageResponse(message="Ciclo formativo eliminado")
