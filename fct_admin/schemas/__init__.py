"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in schemas.py; import from there:
    from fct_admin.schemas.schemas import EmpresaCreate, PendingTask
"""
