"""
MongoDB Service - CRUD operations for the dashboard collections.

Collections:
1. users             - role assignment per account (_id = account uid)
2. empresas          - host companies
3. estudiantes       - students
4. ciclosFormativos  - training cycles
5. asignaciones      - student -> company placements

Every entity document carries `createdAt` (ISO-8601). References between
documents are plain string ids (asignacion.estudianteId -> estudiantes._id);
the only integrity check is the existence check made before an asignacion
is inserted.

Driver errors are wrapped in StoreError with a message the dashboard can show.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from fct_admin.core.errors import MissingReferenceError, NotFoundError, StoreError
from fct_admin.core.permissions import coerce_role
from fct_admin.db.mongodb import get_collection, COLLECTIONS

logger = logging.getLogger(__name__)


# ============================================================
# HELPERS
# ============================================================

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to a JSON-serializable dict with a string `id`."""
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def serialize_docs(docs: Iterable[dict]) -> List[dict]:
    return [serialize_doc(doc) for doc in docs]


def parse_object_id(value: str) -> Optional[ObjectId]:
    """ObjectId for a string id, or None when the string is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


def matches(doc: dict, term: str, fields: Iterable[str]) -> bool:
    """Case-insensitive substring search over the given (dotted) fields."""
    term = term.strip().lower()
    if not term:
        return True
    for field in fields:
        value: Any = doc
        for part in field.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if isinstance(value, str) and term in value.lower():
            return True
    return False


# ============================================================
# BASE SERVICE
# ============================================================

class GuardedStore:
    """Wraps driver errors of one collection into StoreError using `messages`."""

    collection: Collection
    messages: Dict[str, str] = {}
    error_class = StoreError

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except PyMongoError as e:
            logger.error("%s %s failed: %s", self.collection.name, operation, e)
            raise self.error_class(self.messages.get(operation, "Error de base de datos."), e) from e


class EntityService(GuardedStore):
    """
    Generic CRUD over one collection with ObjectId keys.

    Subclasses set `collection_key`, `search_fields` and `messages`
    (create/read/update/delete/not_found).
    """

    collection_key: str = ""
    search_fields: Tuple[str, ...] = ()

    def __init__(self, collection: Collection = None):
        self.collection = (
            collection if collection is not None else get_collection(COLLECTIONS[self.collection_key])
        )

    def insert(self, data: dict, session=None) -> str:
        doc = {**data, "createdAt": utc_now_iso()}
        with self._guard("create"):
            result = self.collection.insert_one(doc, session=session)
        return str(result.inserted_id)

    def get_by_id(self, doc_id: str) -> Optional[dict]:
        oid = parse_object_id(doc_id)
        if oid is None:
            return None
        with self._guard("read"):
            doc = self.collection.find_one({"_id": oid})
        return serialize_doc(doc)

    def get_or_404(self, doc_id: str) -> dict:
        doc = self.get_by_id(doc_id)
        if doc is None:
            raise NotFoundError(self.messages.get("not_found", "No encontrado."))
        return doc

    def exists(self, doc_id: str) -> bool:
        oid = parse_object_id(doc_id)
        if oid is None:
            return False
        with self._guard("read"):
            return self.collection.count_documents({"_id": oid}, limit=1) > 0

    def list(self, query: Optional[dict] = None, sort: Optional[List[tuple]] = None) -> List[dict]:
        with self._guard("read"):
            cursor = self.collection.find(query or {})
            if sort:
                cursor = cursor.sort(sort)
            return serialize_docs(cursor)

    def search(self, term: Optional[str] = None) -> List[dict]:
        docs = self.list(sort=[("createdAt", DESCENDING)])
        if term:
            docs = [doc for doc in docs if matches(doc, term, self.search_fields)]
        return docs

    def update(self, doc_id: str, changes: dict) -> dict:
        """Apply `changes` ($set) and return the updated document; 404 if missing."""
        oid = parse_object_id(doc_id)
        if oid is None:
            raise NotFoundError(self.messages.get("not_found", "No encontrado."))
        with self._guard("update"):
            result = self.collection.update_one({"_id": oid}, {"$set": changes}) if changes else None
            if result is not None and result.matched_count == 0:
                raise NotFoundError(self.messages.get("not_found", "No encontrado."))
        return self.get_or_404(doc_id)

    def delete(self, doc_id: str, session=None) -> bool:
        oid = parse_object_id(doc_id)
        if oid is None:
            return False
        with self._guard("delete"):
            result = self.collection.delete_one({"_id": oid}, session=session)
        return result.deleted_count > 0

    def count(self) -> int:
        with self._guard("read"):
            return self.collection.count_documents({})


# ============================================================
# DOMAIN ENTITIES
# ============================================================

class EmpresaService(EntityService):
    collection_key = "empresas"
    search_fields = ("nombre", "cif", "localidad", "contactoNombre")
    messages = {
        "create": "No se pudo crear la empresa. Inténtalo de nuevo.",
        "read": "No se pudieron cargar las empresas.",
        "update": "No se pudo actualizar la empresa.",
        "delete": "No se pudo eliminar la empresa.",
        "not_found": "No se encontró la empresa.",
    }


class CicloService(EntityService):
    collection_key = "ciclos"
    search_fields = ("nombre", "familia", "nivel")
    messages = {
        "create": "No se pudo crear el ciclo formativo. Inténtalo de nuevo.",
        "read": "No se pudieron cargar los ciclos formativos.",
        "update": "No se pudo actualizar el ciclo formativo.",
        "delete": "No se pudo eliminar el ciclo formativo.",
        "not_found": "No se encontró el ciclo formativo.",
    }

    def find_by_nombre_familia(self, nombre: str, familia: str) -> Optional[dict]:
        with self._guard("read"):
            return serialize_doc(self.collection.find_one({"nombre": nombre, "familia": familia}))

    def names_by_id(self) -> Dict[str, str]:
        with self._guard("read"):
            return {str(doc["_id"]): doc.get("nombre", "") for doc in self.collection.find({}, {"nombre": 1})}

    def page(self, page: int, page_size: int) -> Tuple[List[dict], int]:
        docs = self.list(sort=[("familia", ASCENDING), ("nombre", ASCENDING)])
        start = (page - 1) * page_size
        return docs[start:start + page_size], len(docs)


class EstudianteService(EntityService):
    collection_key = "estudiantes"
    search_fields = ("nombre", "apellidos", "dni", "email", "cicloFormativoNombre")
    messages = {
        "create": "No se pudo crear el estudiante. Inténtalo de nuevo.",
        "read": "No se pudieron cargar los estudiantes.",
        "update": "No se pudo actualizar el estudiante.",
        "delete": "No se pudo eliminar el estudiante.",
        "not_found": "No se encontró el estudiante.",
    }

    def __init__(self, collection: Collection = None, ciclos: CicloService = None):
        super().__init__(collection)
        self.ciclos = ciclos or CicloService()

    def search(self, term: Optional[str] = None) -> List[dict]:
        """Students with `cicloFormativoNombre` filled in from ciclosFormativos."""
        names = self.ciclos.names_by_id()
        docs = self.list(sort=[("apellidos", ASCENDING), ("nombre", ASCENDING)])
        for doc in docs:
            doc["cicloFormativoNombre"] = names.get(doc.get("cicloFormativoId") or "")
        if term:
            docs = [doc for doc in docs if matches(doc, term, self.search_fields)]
        return docs


class AsignacionService(EntityService):
    collection_key = "asignaciones"
    search_fields = (
        "estudiante.nombre", "estudiante.apellidos",
        "empresa.nombre", "empresa.entidad",
        "fechaInicio", "fechaFin",
    )
    messages = {
        "create": "No se pudo crear la asignación. Inténtalo de nuevo.",
        "read": "No se pudieron cargar las asignaciones.",
        "update": "No se pudo actualizar la asignación.",
        "delete": "No se pudo eliminar la asignación.",
        "not_found": "No se encontró la asignación.",
    }

    def __init__(
        self,
        collection: Collection = None,
        estudiantes: EstudianteService = None,
        empresas: EmpresaService = None
    ):
        super().__init__(collection)
        self.estudiantes = estudiantes or EstudianteService()
        self.empresas = empresas or EmpresaService()

    def check_references(self, estudiante_id: Optional[str], empresa_id: Optional[str]) -> None:
        """Raise MissingReferenceError unless both referenced documents exist."""
        if estudiante_id is not None and not self.estudiantes.exists(estudiante_id):
            raise MissingReferenceError("El estudiante seleccionado no existe")
        if empresa_id is not None and not self.empresas.exists(empresa_id):
            raise MissingReferenceError("La empresa seleccionada no existe")

    def insert(self, data: dict, session=None) -> str:
        self.check_references(data.get("estudianteId"), data.get("empresaId"))
        return super().insert(data, session=session)

    def update(self, doc_id: str, changes: dict) -> dict:
        self.check_references(changes.get("estudianteId"), changes.get("empresaId"))
        return super().update(doc_id, changes)

    def enrich(self, docs: List[dict]) -> List[dict]:
        """Attach `estudiante` and `empresa` display names to each assignment."""
        for doc in docs:
            estudiante = {"nombre": "Desconocido", "apellidos": ""}
            empresa = {"nombre": "Desconocida", "entidad": ""}
            try:
                found = self.estudiantes.get_by_id(doc.get("estudianteId"))
                if found:
                    estudiante = {
                        "nombre": found.get("nombre") or "Desconocido",
                        "apellidos": found.get("apellidos") or "",
                    }
            except StoreError as e:
                logger.warning("Could not load estudiante %s: %s", doc.get("estudianteId"), e.cause)
            try:
                found = self.empresas.get_by_id(doc.get("empresaId"))
                if found:
                    empresa = {
                        "nombre": found.get("nombre") or found.get("entidad") or "Desconocida",
                        "entidad": found.get("entidad") or "",
                    }
            except StoreError as e:
                logger.warning("Could not load empresa %s: %s", doc.get("empresaId"), e.cause)
            doc["estudiante"] = estudiante
            doc["empresa"] = empresa
        return docs

    def search(self, term: Optional[str] = None) -> List[dict]:
        docs = self.enrich(self.list(sort=[("fechaInicio", DESCENDING)]))
        if term:
            docs = [doc for doc in docs if matches(doc, term, self.search_fields)]
        return docs

    def recent(self, page: int, page_size: int) -> Tuple[List[dict], int]:
        """One page of assignments, newest fechaInicio first."""
        with self._guard("read"):
            total = self.collection.count_documents({})
            cursor = (
                self.collection.find({})
                .sort([("fechaInicio", DESCENDING)])
                .skip((page - 1) * page_size)
                .limit(page_size)
            )
            docs = serialize_docs(cursor)
        return self.enrich(docs), total


# ============================================================
# ROLE ASSIGNMENTS (users collection)
# ============================================================

class RoleAssignmentService(GuardedStore):
    """
    Role documents keyed by account uid.

    Only admins write here (through the user management routes); the
    RoleResolver reads the same documents.
    """

    messages = {
        "create": "No se pudo crear el usuario. Inténtalo de nuevo.",
        "read": "No se pudieron cargar los usuarios.",
        "update": "No se pudo actualizar el rol del usuario.",
        "delete": "No se pudo eliminar el usuario.",
    }

    def __init__(self, collection: Collection = None):
        self.collection = (
            collection if collection is not None else get_collection(COLLECTIONS["users"])
        )

    def assign(self, uid: str, email: str, role: str, nombre: str = "", apellido: str = "") -> dict:
        doc = {
            "_id": uid,
            "email": email,
            "nombre": nombre,
            "apellido": apellido,
            "nombreCompleto": f"{nombre} {apellido}".strip(),
            "role": role,
            "createdAt": utc_now_iso(),
        }
        with self._guard("create"):
            self.collection.replace_one({"_id": uid}, doc, upsert=True)
        return serialize_doc(doc)

    def get(self, uid: str) -> Optional[dict]:
        with self._guard("read"):
            return serialize_doc(self.collection.find_one({"_id": uid}))

    def list(self) -> List[dict]:
        """All users; an empty or unknown role is reported as registrador."""
        with self._guard("read"):
            docs = serialize_docs(self.collection.find({}).sort([("email", ASCENDING)]))
        for doc in docs:
            doc["role"] = coerce_role(doc.get("role")).value
        return docs

    def update_role(self, uid: str, role: str) -> bool:
        with self._guard("update"):
            result = self.collection.update_one({"_id": uid}, {"$set": {"role": role}})
        return result.matched_count > 0

    def update_contact(self, uid: str, email: str) -> None:
        """Keep the role document's email in step with the account."""
        with self._guard("update"):
            self.collection.update_one({"_id": uid}, {"$set": {"email": email}})

    def delete(self, uid: str) -> bool:
        with self._guard("delete"):
            result = self.collection.delete_one({"_id": uid})
        return result.deleted_count > 0

    def has_admin(self) -> bool:
        with self._guard("read"):
            return self.collection.count_documents({"role": "admin"}, limit=1) > 0
