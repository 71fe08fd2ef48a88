"""
FCT Admin - Main Application

FastAPI backend with:
- PostgreSQL for identity accounts
- MongoDB for roles, drafts and domain documents
- JWT authentication
- Dashboard front-end served from /frontend when present

Run: uvicorn fct_admin.main:app --reload
"""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

from fct_admin.api.routes import api_router
from fct_admin.core.config import get_settings
from fct_admin.core.errors import register_exception_handlers
from fct_admin.db.mongodb import init_mongo_indexes, test_mongo_connection
from fct_admin.db.postgres import init_identity_schema, test_postgres_connection
from fct_admin.schemas.schemas import DiagnosticsResponse

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Get the project root directory
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
FRONTEND_DIR = os.path.join(PROJECT_ROOT, "frontend", "public")

app = FastAPI(
    title="FCT Admin",
    description="""
    Administration backend for FCT internship placements.

    ## Features
    - **Authentication**: email/password sign-in, JWT bearer tokens, lockout
    - **Roles**: admin, coordinador, registrador with a fixed permission table
    - **Entities**: empresas, estudiantes, ciclos formativos, asignaciones
    - **Pending tasks**: save a half-filled form and resume it later
    - **Dashboard**: stats, recent assignments, role-aware navigation

    ## Databases
    - PostgreSQL: identity accounts
    - MongoDB: users (roles), pendingTasks and the domain collections
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api")

if os.path.exists(FRONTEND_DIR):
    app.mount("/static", StaticFiles(directory=FRONTEND_DIR), name="static")


@app.on_event("startup")
async def startup_event():
    """Create indexes and the accounts table; a database that is down only degrades the app."""
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)

    try:
        init_identity_schema()
        logger.info("Identity schema initialized")
    except Exception as e:
        logger.warning("Identity schema initialization failed: %s", e)

    for name, state in settings.missing_values().items():
        logger.warning("Configuration value %s is %s", name, state)


@app.get("/", tags=["Frontend"])
async def serve_frontend():
    """Serve the dashboard front-end."""
    index_path = os.path.join(FRONTEND_DIR, "index.html")
    if os.path.exists(index_path):
        return FileResponse(index_path)
    return {"status": "healthy", "app": "FCT Admin", "message": "Frontend not found. API is running."}


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }


@app.get("/diagnostics", response_model=DiagnosticsResponse, tags=["Health"])
async def diagnostics():
    """
    Configuration and connectivity report.

    `config` lists values that are missing or still on their placeholder;
    any of those, or a database that does not answer, makes the status
    "degraded".
    """
    config = get_settings().missing_values()
    postgres = "connected" if test_postgres_connection() else "disconnected"
    mongodb = "connected" if test_mongo_connection() else "disconnected"
    degraded = config or postgres != "connected" or mongodb != "connected"
    return DiagnosticsResponse(
        status="degraded" if degraded else "ok",
        postgres=postgres,
        mongodb=mongodb,
        config=config
    )
