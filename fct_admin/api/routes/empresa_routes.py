"""
Empresa Routes

GET /empresas - List companies (optional free-text ?q=)
POST /empresas - Create company (optionally consuming a pending draft)
GET /empresas/{id} - Get company
PUT /empresas/{id} - Update company
DELETE /empresas/{id} - Delete company
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from fct_admin.api.deps import get_current_identity, get_pending_task_manager
from fct_admin.core.session import Identity
from fct_admin.services.mongo_service import EmpresaService
from fct_admin.services.pending_tasks import PendingTaskManager
from fct_admin.schemas.schemas import (
    DraftType, EmpresaCreate, EmpresaResponse, EmpresaUpdate, MessageResponse
)

router = APIRouter(prefix="/empresas", tags=["Empresas"])


@router.get("", response_model=List[EmpresaResponse])
async def list_empresas(
    q: Optional[str] = Query(None, description="Search nombre, cif, localidad or contacto"),
    identity: Identity = Depends(get_current_identity)
):
    return EmpresaService().search(q)


@router.post("", response_model=EmpresaResponse, status_code=201)
async def create_empresa(
    data: EmpresaCreate,
    pending_task_id: Optional[str] = Query(None, alias="pendingTaskId"),
    manager: PendingTaskManager = Depends(get_pending_task_manager)
):
    """
    Create a company.

    With `pendingTaskId` the draft it was resumed from is deleted together
    with the insert.
    """
    service = EmpresaService()
    payload = data.model_dump(by_alias=True, mode="json")
    if pending_task_id:
        empresa_id = manager.complete_pending_task(DraftType.empresa, service, payload, pending_task_id)
    else:
        empresa_id = service.insert(payload)
    return service.get_or_404(empresa_id)


@router.get("/{empresa_id}", response_model=EmpresaResponse)
async def get_empresa(empresa_id: str, identity: Identity = Depends(get_current_identity)):
    return EmpresaService().get_or_404(empresa_id)


@router.put("/{empresa_id}", response_model=EmpresaResponse)
async def update_empresa(
    empresa_id: str,
    data: EmpresaUpdate,
    identity: Identity = Depends(get_current_identity)
):
    changes = data.model_dump(by_alias=True, mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No hay campos para actualizar")
    return EmpresaService().update(empresa_id, changes)


@router.delete("/{empresa_id}", response_model=MessageResponse)
async def delete_empresa(empresa_id: str, identity: Identity = Depends(get_current_identity)):
    if not EmpresaService().delete(empresa_id):
        raise HTTPException(status_code=404, detail="No se encontró la empresa.")
    return MessageResponse(message="Empresa eliminada")
