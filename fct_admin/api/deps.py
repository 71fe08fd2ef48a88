"""
FastAPI dependencies shared by the route modules.

    @router.get("/protected")
    async def route(session: AuthSession = Depends(get_auth_session)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from fct_admin.core.auth import decode_token
from fct_admin.core.permissions import RoleResolver
from fct_admin.core.session import AuthSession, Identity
from fct_admin.services.identity_service import get_identity_service
from fct_admin.services.pending_tasks import PendingTaskManager

# Bearer token extractor
bearer_scheme = HTTPBearer()


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)
) -> Identity:
    """Identity carried by the bearer token; 401 if the token or the account is not valid."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Sesión no válida o caducada. Inicia sesión de nuevo.",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise credentials_exception

    identity = get_identity_service().get_identity(payload["sub"])

    if identity is None:
        raise credentials_exception
    return identity


def get_role_resolver() -> RoleResolver:
    return RoleResolver()


async def get_auth_session(
    identity: Identity = Depends(get_current_identity),
    resolver: RoleResolver = Depends(get_role_resolver)
) -> AuthSession:
    """Fresh session for this request, resolved from the token's identity."""
    session = AuthSession(resolver)
    session.on_identity_changed(identity)
    return session


async def get_pending_task_manager(
    identity: Identity = Depends(get_current_identity)
) -> PendingTaskManager:
    return PendingTaskManager(identity)
