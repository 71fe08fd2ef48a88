"""
Error types and their HTTP mapping.

Every failure that reaches the dashboard is turned into a short Spanish
message the front-end shows as a toast; raw driver/provider errors are logged
but never returned.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ============================================================
# IDENTITY ERRORS
# ============================================================

IDENTITY_MESSAGES = {
    "user-not-found": "No existe ningún usuario con este correo electrónico.",
    "wrong-password": "Contraseña incorrecta.",
    "invalid-email": "El formato del correo electrónico no es válido.",
    "invalid-credential": "Credenciales inválidas. El usuario no existe o la contraseña es incorrecta.",
    "user-disabled": "Esta cuenta ha sido desactivada.",
    "configuration-not-found": "Error de configuración del servicio de identidad. Por favor, verifica la configuración.",
    "operation-not-allowed": "La autenticación por email/password no está habilitada.",
    "too-many-requests": "Demasiados intentos fallidos. Por favor, inténtalo más tarde.",
    "email-already-in-use": "El correo electrónico ya está en uso.",
    "weak-password": "La contraseña es demasiado débil. Debe tener al menos 6 caracteres.",
    "requires-recent-login": "Esta operación es sensible y requiere una autenticación reciente. Inicia sesión de nuevo.",
}

IDENTITY_STATUS = {
    "user-not-found": 401,
    "wrong-password": 401,
    "invalid-credential": 401,
    "requires-recent-login": 401,
    "invalid-email": 400,
    "weak-password": 400,
    "user-disabled": 403,
    "operation-not-allowed": 403,
    "too-many-requests": 429,
    "email-already-in-use": 409,
    "configuration-not-found": 503,
}

DEFAULT_IDENTITY_MESSAGE = "No se ha podido iniciar sesión. Verifica tus credenciales."


class IdentityError(Exception):
    """Raised by the identity service; `code` selects the user-facing message."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code

    @property
    def message(self) -> str:
        return IDENTITY_MESSAGES.get(self.code, DEFAULT_IDENTITY_MESSAGE)

    @property
    def status_code(self) -> int:
        return IDENTITY_STATUS.get(self.code, 400)


# ============================================================
# DOCUMENT STORE ERRORS
# ============================================================

class StoreError(Exception):
    """A read/write against MongoDB failed. `message` is safe to show."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class NotFoundError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingReferenceError(Exception):
    """A referenced document (student, company, ciclo) does not exist."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PendingTaskError(StoreError):
    """A draft operation failed; the in-memory draft list was not touched."""


class MalformedDraftError(Exception):
    """A stored draft no longer matches the form shape of its type."""

    def __init__(self, message: str = "Error al cargar la tarea pendiente"):
        super().__init__(message)
        self.message = message


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to JSON responses with a `detail` message."""

    @app.exception_handler(IdentityError)
    async def identity_error_handler(request: Request, exc: IdentityError):
        logger.info("Identity error on %s: %s", request.url.path, exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code}
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("Store error on %s: %s (%r)", request.url.path, exc.message, exc.cause)
        return JSONResponse(status_code=503, content={"detail": exc.message})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(MalformedDraftError)
    async def malformed_draft_handler(request: Request, exc: MalformedDraftError):
        return JSONResponse(status_code=422, content={"detail": exc.message})

    @app.exception_handler(MissingReferenceError)
    async def missing_reference_handler(request: Request, exc: MissingReferenceError):
        return JSONResponse(status_code=422, content={"detail": exc.message})
