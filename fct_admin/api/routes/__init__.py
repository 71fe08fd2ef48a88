"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from fct_admin.api.routes.auth_routes import router as auth_router
from fct_admin.api.routes.user_routes import router as user_router
from fct_admin.api.routes.empresa_routes import router as empresa_router
from fct_admin.api.routes.estudiante_routes import router as estudiante_router
from fct_admin.api.routes.ciclo_routes import router as ciclo_router
from fct_admin.api.routes.asignacion_routes import router as asignacion_router
from fct_admin.api.routes.pending_task_routes import router as pending_task_router
from fct_admin.api.routes.dashboard_routes import router as dashboard_router

# Main API router
api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(empresa_router)
api_router.include_router(estudiante_router)
api_router.include_router(ciclo_router)
api_router.include_router(asignacion_router)
api_router.include_router(pending_task_router)
api_router.include_router(dashboard_router)
