"""
FCT Admin
Role-based administration backend for FCT internship placements.

Architecture:
- PostgreSQL: identity accounts (email/password, lockout)
- MongoDB: role assignments, pending drafts and the domain documents
  (empresas, estudiantes, ciclosFormativos, asignaciones)
"""

__version__ = "1.0.0"
