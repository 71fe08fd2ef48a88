"""
Authentication Routes

POST /auth/login - Sign in and get JWT token + resolved role
POST /auth/logout - Sign out
GET /auth/me - Current identity, role and permissions
PUT /auth/profile - Update display name, email or password
POST /auth/bootstrap-admin - Create the first administrator
"""

from fastapi import APIRouter, HTTPException, Depends

from fct_admin.api.deps import get_auth_session, get_current_identity
from fct_admin.core.auth import create_access_token
from fct_admin.core.permissions import RoleResolver
from fct_admin.core.session import AuthSession, Identity
from fct_admin.services.identity_service import get_identity_service
from fct_admin.services.mongo_service import RoleAssignmentService
from fct_admin.schemas.schemas import (
    BootstrapAdminRequest, LoginRequest, MeResponse, MessageResponse,
    ProfileUpdate, TokenResponse, UserRole
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _me(session: AuthSession) -> MeResponse:
    identity = session.identity
    return MeResponse(
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        role=session.role,
        role_name=session.role_name,
        permissions=session.permissions
    )


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Sign in with email and password.

    The response already carries the resolved role and permissions so the
    dashboard can render without a second round trip.
    Include token in requests: Authorization: Bearer <token>
    """
    identity_service = get_identity_service()
    session = AuthSession(RoleResolver())
    unsubscribe = identity_service.on_identity_changed(session.on_identity_changed)
    try:
        identity = identity_service.sign_in(request.email, request.password)
    finally:
        unsubscribe()

    token = create_access_token(data={"sub": identity.uid})

    return TokenResponse(
        access_token=token,
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        role=session.role,
        permissions=session.permissions
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(identity: Identity = Depends(get_current_identity)):
    """Sign out. The client discards its token."""
    get_identity_service().sign_out(identity.uid)
    return MessageResponse(message="Sesión cerrada")


@router.get("/me", response_model=MeResponse)
async def get_me(session: AuthSession = Depends(get_auth_session)):
    """Get current identity with its role and permission set."""
    return _me(session)


@router.put("/profile", response_model=MeResponse)
async def update_profile(data: ProfileUpdate, session: AuthSession = Depends(get_auth_session)):
    """
    Update own profile.

    Email and password changes need `currentPassword`.
    """
    identity_service = get_identity_service()
    unsubscribe = identity_service.on_identity_changed(session.on_identity_changed)
    try:
        identity = identity_service.update_profile(
            session.identity.uid,
            display_name=data.display_name,
            email=data.email,
            current_password=data.current_password,
            new_password=data.new_password
        )
    finally:
        unsubscribe()

    RoleAssignmentService().update_contact(identity.uid, identity.email)
    return _me(session)


@router.post("/bootstrap-admin", response_model=MessageResponse, status_code=201)
async def bootstrap_admin(request: BootstrapAdminRequest):
    """
    Create the first administrator account.

    Only allowed while no admin role assignment exists.
    """
    roles = RoleAssignmentService()
    if roles.has_admin():
        raise HTTPException(status_code=409, detail="Ya existe un usuario administrador.")

    identity = get_identity_service().create_account(
        request.email, request.password, display_name=request.display_name
    )
    roles.assign(
        identity.uid,
        identity.email,
        UserRole.admin.value,
        nombre=request.display_name or ""
    )

    return MessageResponse(message="El usuario administrador se ha creado correctamente.")
