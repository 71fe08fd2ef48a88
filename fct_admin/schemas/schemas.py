"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.

Field names are snake_case in Python and camelCase on the wire and in
MongoDB (`estudiante_id` <-> `estudianteId`), matching the documents the
dashboard front-end already reads.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    admin = "admin"
    coordinador = "coordinador"
    registrador = "registrador"


class DraftType(str, Enum):
    empresa = "empresa"
    estudiante = "estudiante"
    asignacion = "asignacion"
    ciclo = "ciclo"


class NivelCiclo(str, Enum):
    basico = "Básico"
    medio = "Medio"
    superior = "Superior"


class Curso(str, Enum):
    primero = "1"
    segundo = "2"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class LoginRequest(BaseModel):
    # plain str: malformed emails are reported by the identity service
    email: str
    password: str


class PermissionSet(CamelModel):
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_manage_users: bool = False
    can_view_pending_tasks: bool = False


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    uid: str
    email: str
    display_name: Optional[str] = None
    role: Optional[UserRole] = None
    permissions: PermissionSet


class MeResponse(CamelModel):
    uid: str
    email: str
    display_name: Optional[str] = None
    role: Optional[UserRole] = None
    role_name: Optional[str] = None
    permissions: PermissionSet


class ProfileUpdate(CamelModel):
    display_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class BootstrapAdminRequest(CamelModel):
    email: str
    password: str
    display_name: Optional[str] = Field(None, max_length=200)


# ============================================================
# USER MANAGEMENT SCHEMAS
# ============================================================

class UserCreate(CamelModel):
    nombre: str = Field(..., min_length=1, max_length=100)
    apellido: str = Field("", max_length=100)
    email: str
    password: str
    confirm_password: str
    role: UserRole = UserRole.registrador


class RoleUpdate(CamelModel):
    role: UserRole


class UserResponse(CamelModel):
    id: str
    email: Optional[str] = None
    nombre: Optional[str] = None
    apellido: Optional[str] = None
    nombre_completo: Optional[str] = None
    role: UserRole
    created_at: Optional[str] = None


# ============================================================
# EMPRESA SCHEMAS
# ============================================================

class EmpresaCreate(CamelModel):
    nombre: str = Field(..., min_length=1, max_length=200)
    cif: str = Field(..., min_length=1, max_length=20)
    direccion: str = Field(..., min_length=1)
    localidad: str = Field(..., min_length=1)
    contacto_nombre: Optional[str] = None
    contacto_email: Optional[str] = None
    contacto_telefono: Optional[str] = None
    descripcion: Optional[str] = None


class EmpresaUpdate(CamelModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=200)
    cif: Optional[str] = Field(None, min_length=1, max_length=20)
    direccion: Optional[str] = None
    localidad: Optional[str] = None
    contacto_nombre: Optional[str] = None
    contacto_email: Optional[str] = None
    contacto_telefono: Optional[str] = None
    descripcion: Optional[str] = None


class EmpresaResponse(CamelModel):
    id: str
    nombre: str
    cif: Optional[str] = None
    direccion: Optional[str] = None
    localidad: Optional[str] = None
    contacto_nombre: Optional[str] = None
    contacto_email: Optional[str] = None
    contacto_telefono: Optional[str] = None
    descripcion: Optional[str] = None
    created_at: Optional[str] = None


# ============================================================
# ESTUDIANTE SCHEMAS
# ============================================================

class EstudianteCreate(CamelModel):
    nombre: str = Field(..., min_length=1, max_length=100)
    apellidos: str = Field(..., min_length=1, max_length=200)
    dni: str = Field(..., min_length=1, max_length=20)
    email: EmailStr
    telefono: Optional[str] = None
    ciclo_formativo_id: Optional[str] = None
    curso: Optional[Curso] = None


class EstudianteUpdate(CamelModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=100)
    apellidos: Optional[str] = Field(None, min_length=1, max_length=200)
    dni: Optional[str] = Field(None, min_length=1, max_length=20)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = None
    ciclo_formativo_id: Optional[str] = None
    curso: Optional[Curso] = None


class EstudianteResponse(CamelModel):
    id: str
    nombre: str
    apellidos: str = ""
    dni: str = ""
    email: str = ""
    telefono: Optional[str] = None
    ciclo_formativo_id: Optional[str] = None
    ciclo_formativo_nombre: Optional[str] = None
    curso: Optional[str] = None
    created_at: Optional[str] = None


# ============================================================
# CICLO FORMATIVO SCHEMAS
# ============================================================

class CicloCreate(CamelModel):
    nombre: str = Field(..., min_length=1, max_length=200)
    nivel: NivelCiclo
    familia: str = Field(..., min_length=1, max_length=200)
    duracion: int = Field(..., ge=0)


class CicloUpdate(CamelModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=200)
    nivel: Optional[NivelCiclo] = None
    familia: Optional[str] = Field(None, min_length=1, max_length=200)
    duracion: Optional[int] = Field(None, ge=0)


class CicloResponse(CamelModel):
    id: str
    nombre: str
    nivel: Optional[str] = None
    familia: Optional[str] = None
    duracion: Optional[str] = None
    created_at: Optional[str] = None


class CicloListResponse(BaseModel):
    ciclos: List[CicloResponse]
    total: int
    page: int
    page_size: int


class SeedResult(BaseModel):
    message: str
    added: int
    existing: int
    details: List[str] = []


# ============================================================
# ASIGNACION SCHEMAS
# ============================================================

class AsignacionCreate(CamelModel):
    estudiante_id: str = Field(..., min_length=1)
    empresa_id: str = Field(..., min_length=1)
    fecha_inicio: date
    fecha_fin: date
    horas: int = Field(0, ge=0)


class AsignacionUpdate(CamelModel):
    estudiante_id: Optional[str] = Field(None, min_length=1)
    empresa_id: Optional[str] = Field(None, min_length=1)
    fecha_inicio: Optional[date] = None
    fecha_fin: Optional[date] = None
    horas: Optional[int] = Field(None, ge=0)


class EstudianteRef(BaseModel):
    nombre: str = "Desconocido"
    apellidos: str = ""


class EmpresaRef(BaseModel):
    nombre: str = "Desconocida"
    entidad: str = ""


class AsignacionResponse(CamelModel):
    id: str
    estudiante_id: str
    empresa_id: str
    fecha_inicio: str
    fecha_fin: str
    horas: int = 0
    created_at: Optional[str] = None
    estudiante: EstudianteRef = EstudianteRef()
    empresa: EmpresaRef = EmpresaRef()


class AsignacionListResponse(BaseModel):
    asignaciones: List[AsignacionResponse]
    total: int
    page: int
    page_size: int


# ============================================================
# PENDING TASK (DRAFT) SCHEMAS
# One partial form shape per draft type; every field is optional
# because the user saved before finishing the form.
# ============================================================

class _FormData(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EmpresaFormData(_FormData):
    nombre: Optional[str] = None
    cif: Optional[str] = None
    direccion: Optional[str] = None
    localidad: Optional[str] = None
    contacto_nombre: Optional[str] = None
    contacto_email: Optional[str] = None
    contacto_telefono: Optional[str] = None
    descripcion: Optional[str] = None


class EstudianteFormData(_FormData):
    nombre: Optional[str] = None
    apellidos: Optional[str] = None
    dni: Optional[str] = None
    email: Optional[str] = None
    telefono: Optional[str] = None
    ciclo_formativo_id: Optional[str] = None
    curso: Optional[str] = None


class CicloFormData(_FormData):
    nombre: Optional[str] = None
    nivel: Optional[str] = None
    familia: Optional[str] = None
    duracion: Optional[str] = None

    @field_validator("duracion", mode="before")
    @classmethod
    def duracion_as_text(cls, value: Any):
        # the create form sends hours as a number
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class AsignacionFormData(_FormData):
    estudiante_id: Optional[str] = None
    empresa_id: Optional[str] = None
    fecha_inicio: Optional[str] = None
    fecha_fin: Optional[str] = None
    horas: Optional[int] = Field(None, ge=0)

    @field_validator("horas", mode="before")
    @classmethod
    def blank_horas(cls, value: Any):
        if value == "":
            return None
        return value


class _DraftBase(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""


class EmpresaDraft(_DraftBase):
    type: Literal["empresa"] = "empresa"
    form_data: EmpresaFormData = Field(default_factory=EmpresaFormData)


class EstudianteDraft(_DraftBase):
    type: Literal["estudiante"] = "estudiante"
    form_data: EstudianteFormData = Field(default_factory=EstudianteFormData)


class AsignacionDraft(_DraftBase):
    type: Literal["asignacion"] = "asignacion"
    form_data: AsignacionFormData = Field(default_factory=AsignacionFormData)


class CicloDraft(_DraftBase):
    type: Literal["ciclo"] = "ciclo"
    form_data: CicloFormData = Field(default_factory=CicloFormData)


DraftUnion = Union[EmpresaDraft, EstudianteDraft, AsignacionDraft, CicloDraft]

DraftInput = Annotated[DraftUnion, Field(discriminator="type")]


class _Stored(CamelModel):
    id: str
    user_id: str
    created_at: str


class EmpresaTask(EmpresaDraft, _Stored):
    pass


class EstudianteTask(EstudianteDraft, _Stored):
    pass


class AsignacionTask(AsignacionDraft, _Stored):
    pass


class CicloTask(CicloDraft, _Stored):
    pass


PendingTask = Annotated[
    Union[EmpresaTask, EstudianteTask, AsignacionTask, CicloTask],
    Field(discriminator="type")
]

DRAFT_ADAPTER = TypeAdapter(DraftInput)
PENDING_TASK_ADAPTER = TypeAdapter(PendingTask)


class PendingTaskListResponse(BaseModel):
    tasks: List[PendingTask]
    count: int


class PendingTaskCreated(BaseModel):
    id: str
    message: str
    count: int


class PendingTaskResume(CamelModel):
    task: PendingTask
    title: str
    description: str
    back_href: str = "/dashboard/pendientes"


# ============================================================
# DASHBOARD SCHEMAS
# ============================================================

class StatsResponse(BaseModel):
    empresas: int
    estudiantes: int
    asignaciones: int
    ciclos: int


class NavItem(BaseModel):
    key: str
    label: str
    href: str


class ActionItem(BaseModel):
    key: str
    label: str
    section: str
    permission: str


class DiagnosticsResponse(BaseModel):
    status: str
    postgres: str
    mongodb: str
    config: dict = {}


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    detail: str
