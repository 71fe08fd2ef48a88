"""
Dashboard Routes

GET /dashboard/stats - Document count per collection
GET /dashboard/navigation - Side navigation entries visible to the caller
GET /dashboard/actions - Action buttons visible to the caller
GET /dashboard/recent-assignments - Latest assignments, paginated

Navigation and actions only decide what the dashboard shows; the entity
routes do not check roles.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from fct_admin.api.deps import get_auth_session, get_current_identity
from fct_admin.core.permissions import PermissionGate
from fct_admin.core.session import AuthSession, Identity
from fct_admin.services.mongo_service import (
    AsignacionService, CicloService, EmpresaService, EstudianteService
)
from fct_admin.schemas.schemas import (
    ActionItem, AsignacionListResponse, NavItem, StatsResponse
)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


# (key, label, href, permission or None for always visible)
NAVIGATION = [
    ("dashboard", "Dashboard", "/dashboard", None),
    ("empresas", "Empresas", "/dashboard/empresas", None),
    ("estudiantes", "Estudiantes", "/dashboard/estudiantes", None),
    ("asignaciones", "Asignaciones", "/dashboard/asignaciones", None),
    ("ciclos", "Ciclos Formativos", "/dashboard/ciclos", None),
    ("pendientes", "Pendientes", "/dashboard/pendientes", "canViewPendingTasks"),
    ("usuarios", "Usuarios", "/dashboard/usuarios", "canManageUsers"),
    ("configuracion", "Configuración", "/dashboard/configuracion", None),
]

# section -> label of its create button
SECTIONS = {
    "empresas": "Nueva Empresa",
    "estudiantes": "Nuevo Estudiante",
    "asignaciones": "Nueva Asignación",
    "ciclos": "Nuevo Ciclo Formativo",
}

ACTION_VERBS = [
    ("create", None, "canCreate"),
    ("edit", "Editar", "canEdit"),
    ("delete", "Eliminar", "canDelete"),
]


def visible_navigation(session: AuthSession) -> List[NavItem]:
    gate = PermissionGate(session)
    items = []
    for key, label, href, permission in NAVIGATION:
        item = NavItem(key=key, label=label, href=href)
        if permission is not None:
            item = gate.render(permission, item)
        elif session.loading:
            item = None
        if item is not None:
            items.append(item)
    return items


def visible_actions(session: AuthSession, section: Optional[str] = None) -> List[ActionItem]:
    gate = PermissionGate(session)
    items = []
    for name, create_label in SECTIONS.items():
        if section and section != name:
            continue
        for verb, label, permission in ACTION_VERBS:
            item = gate.render(permission, ActionItem(
                key=f"{name}.{verb}",
                label=label or create_label,
                section=name,
                permission=permission
            ))
            if item is not None:
                items.append(item)

    user_action = gate.render("canManageUsers", ActionItem(
        key="usuarios.create", label="Añadir Usuario", section="usuarios", permission="canManageUsers"
    ))
    if user_action is not None and (not section or section == "usuarios"):
        items.append(user_action)
    return items


@router.get("/stats", response_model=StatsResponse)
async def get_stats(identity: Identity = Depends(get_current_identity)):
    return StatsResponse(
        empresas=EmpresaService().count(),
        estudiantes=EstudianteService().count(),
        asignaciones=AsignacionService().count(),
        ciclos=CicloService().count()
    )


@router.get("/navigation", response_model=List[NavItem])
async def get_navigation(session: AuthSession = Depends(get_auth_session)):
    return visible_navigation(session)


@router.get("/actions", response_model=List[ActionItem])
async def get_actions(
    section: Optional[str] = Query(None, description="empresas, estudiantes, asignaciones, ciclos or usuarios"),
    session: AuthSession = Depends(get_auth_session)
):
    return visible_actions(session, section)


@router.get("/recent-assignments", response_model=AsignacionListResponse)
async def recent_assignments(
    page: int = Query(1, ge=1),
    page_size: int = Query(5, ge=1, le=50, alias="pageSize"),
    identity: Identity = Depends(get_current_identity)
):
    asignaciones, total = AsignacionService().recent(page, page_size)
    return AsignacionListResponse(asignaciones=asignaciones, total=total, page=page, page_size=page_size)
