"""
User Management Routes

GET /users - List users with their role
POST /users - Create account + role assignment
PUT /users/{uid}/role - Change role
DELETE /users/{uid} - Delete role assignment and account

The dashboard only shows these screens to canManageUsers.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends

from fct_admin.api.deps import get_current_identity
from fct_admin.core.session import Identity
from fct_admin.services.identity_service import get_identity_service
from fct_admin.services.mongo_service import RoleAssignmentService
from fct_admin.schemas.schemas import MessageResponse, RoleUpdate, UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=List[UserResponse])
async def list_users(identity: Identity = Depends(get_current_identity)):
    """All users; users without a stored role are listed as registrador."""
    return RoleAssignmentService().list()


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(data: UserCreate, identity: Identity = Depends(get_current_identity)):
    """Create an account and its role document."""
    if data.password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Las contraseñas no coinciden.")

    account = get_identity_service().create_account(
        data.email, data.password, display_name=f"{data.nombre} {data.apellido}".strip()
    )
    try:
        return RoleAssignmentService().assign(
            account.uid, account.email, data.role.value, nombre=data.nombre, apellido=data.apellido
        )
    except Exception:
        # an account without a role document could sign in without any access
        get_identity_service().delete_account(account.uid)
        raise


@router.put("/{uid}/role", response_model=MessageResponse)
async def update_role(uid: str, data: RoleUpdate, identity: Identity = Depends(get_current_identity)):
    """Change another user's role."""
    if not RoleAssignmentService().update_role(uid, data.role.value):
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return MessageResponse(message=f"Rol actualizado a '{data.role.value}'")


@router.delete("/{uid}", response_model=MessageResponse)
async def delete_user(uid: str, identity: Identity = Depends(get_current_identity)):
    """Delete the role document and the account."""
    if uid == identity.uid:
        raise HTTPException(status_code=400, detail="No puedes eliminar tu propio usuario.")

    roles_deleted = RoleAssignmentService().delete(uid)
    account_deleted = get_identity_service().delete_account(uid)
    if not roles_deleted and not account_deleted:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    return MessageResponse(message="Usuario eliminado")
