"""
Pending Tasks - drafts saved with "guardar como pendiente".

A pending task is an immutable snapshot of a half-filled create form:
    {id, userId, type, title, description, formData, createdAt}

Lifecycle: created -> read (any number of times, to resume) -> deleted,
either discarded by the user or consumed when the real entity is created.
There are no partial updates.

Two layers:
- PendingTaskService: the `pendingTasks` collection, always scoped by owner
- PendingTaskManager: one identity's view with a cached, newest-first list
  and its count (the notification badge)
"""

import logging
from typing import List, Optional, Union

from pydantic import ValidationError
from pymongo import DESCENDING
from pymongo.collection import Collection

from fct_admin.core.config import get_settings
from fct_admin.core.errors import MalformedDraftError, NotFoundError, PendingTaskError
from fct_admin.core.session import Identity
from fct_admin.db.mongodb import get_collection, COLLECTIONS
from fct_admin.schemas.schemas import DRAFT_ADAPTER, PENDING_TASK_ADAPTER, DraftType, PendingTask
from fct_admin.services.mongo_service import (
    EntityService, GuardedStore, parse_object_id, serialize_doc, serialize_docs, utc_now_iso
)

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "No se encontró la tarea pendiente"


class PendingTaskService(GuardedStore):
    """Owner-scoped CRUD over `pendingTasks`; nothing here reads another user's drafts."""

    error_class = PendingTaskError
    messages = {
        "create": "No se pudo guardar la tarea pendiente.",
        "read": "No se pudieron cargar las tareas pendientes.",
        "delete": "No se pudo eliminar la tarea pendiente.",
    }

    def __init__(self, collection: Collection = None):
        self.collection = (
            collection if collection is not None else get_collection(COLLECTIONS["pending_tasks"])
        )

    def insert(self, doc: dict) -> str:
        with self._guard("create"):
            result = self.collection.insert_one(dict(doc))
        return str(result.inserted_id)

    def get(self, task_id: str, user_id: str) -> Optional[dict]:
        oid = parse_object_id(task_id)
        if oid is None:
            return None
        with self._guard("read"):
            return serialize_doc(self.collection.find_one({"_id": oid, "userId": user_id}))

    def list_for_user(self, user_id: str) -> List[dict]:
        """Drafts of one owner, newest first."""
        with self._guard("read"):
            cursor = self.collection.find({"userId": user_id}).sort([("createdAt", DESCENDING)])
            return serialize_docs(cursor)

    def delete(self, task_id: str, user_id: str, session=None) -> bool:
        oid = parse_object_id(task_id)
        if oid is None:
            return False
        with self._guard("delete"):
            result = self.collection.delete_one({"_id": oid, "userId": user_id}, session=session)
        return result.deleted_count > 0


def load_task(doc: dict) -> PendingTask:
    """Stored document -> typed pending task; MalformedDraftError if formData does not fit its type."""
    try:
        return PENDING_TASK_ADAPTER.validate_python(doc)
    except ValidationError as e:
        logger.warning("Malformed pending task %s: %s", doc.get("id"), e.error_count())
        raise MalformedDraftError() from e


class PendingTaskManager:
    """
    Pending tasks of one identity.

    `tasks` only changes after the store confirmed a write; on any store
    failure a PendingTaskError propagates and the cache stays as it was.

    Usage:
        manager = PendingTaskManager(identity)
        manager.refresh_tasks()
        task_id = manager.add_pending_task({"type": "empresa", "title": "ACME", "formData": {...}})
        manager.count
    """

    def __init__(self, identity: Optional[Identity], service: PendingTaskService = None):
        self.identity = identity
        self.service = service or PendingTaskService()
        self.tasks: List[PendingTask] = []
        self.loading = True

    @property
    def count(self) -> int:
        return len(self.tasks)

    def _require_identity(self) -> Identity:
        if self.identity is None:
            raise PendingTaskError("Debes iniciar sesión para gestionar tareas pendientes.")
        return self.identity

    def refresh_tasks(self) -> List[PendingTask]:
        if self.identity is None:
            self.tasks = []
            self.loading = False
            return self.tasks

        self.loading = True
        try:
            docs = self.service.list_for_user(self.identity.uid)
        finally:
            self.loading = False

        tasks = []
        for doc in docs:
            try:
                tasks.append(load_task(doc))
            except MalformedDraftError:
                continue
        # newest first
        tasks.sort(key=lambda task: task.created_at, reverse=True)
        self.tasks = tasks
        return self.tasks

    def add_pending_task(self, draft: Union[dict, object]) -> str:
        identity = self._require_identity()
        if isinstance(draft, dict):
            draft = DRAFT_ADAPTER.validate_python(draft)

        doc = {
            "userId": identity.uid,
            "type": draft.type,
            "title": draft.title,
            "description": draft.description,
            "formData": draft.form_data.model_dump(by_alias=True, exclude_unset=True),
            "createdAt": utc_now_iso(),
        }
        task_id = self.service.insert(doc)

        self.tasks.insert(0, load_task({"id": task_id, **doc}))
        logger.info("Saved pending %s task %s for %s", draft.type, task_id, identity.uid)
        return task_id

    def remove_pending_task(self, task_id: str) -> None:
        identity = self._require_identity()
        # no existence check: deleting an unknown id is a no-op
        self.service.delete(task_id, identity.uid)
        self.tasks = [task for task in self.tasks if task.id != task_id]

    def get_pending_task(self, task_id: str) -> Optional[PendingTask]:
        """
        The draft, or None when it does not exist (or belongs to someone else,
        or cannot be read right now). Raises MalformedDraftError when the
        stored formData no longer fits its type.
        """
        if self.identity is None:
            return None
        try:
            doc = self.service.get(task_id, self.identity.uid)
        except PendingTaskError as e:
            logger.error("Could not read pending task %s: %s", task_id, e.cause)
            return None
        if doc is None:
            return None
        return load_task(doc)

    def complete_pending_task(
        self,
        kind: DraftType,
        entity_service: EntityService,
        payload: dict,
        task_id: str
    ) -> str:
        """
        Create the real entity from a resumed draft and delete the draft.

        Both writes happen or neither does: inside a transaction when the
        deployment supports it (MONGODB_USE_TRANSACTIONS), otherwise the new
        entity is deleted again if the draft cannot be removed.
        Returns the id of the new entity.
        """
        identity = self._require_identity()
        # read failures propagate as PendingTaskError, not as a missing draft
        doc = self.service.get(task_id, identity.uid)
        if doc is None or doc.get("type") != DraftType(kind).value:
            raise NotFoundError(TASK_NOT_FOUND)

        if get_settings().mongodb_use_transactions:
            entity_id = self._complete_in_transaction(entity_service, payload, task_id, identity.uid)
        else:
            entity_id = entity_service.insert(payload)
            try:
                self.service.delete(task_id, identity.uid)
            except PendingTaskError:
                logger.error("Rolling back %s %s: draft %s could not be deleted",
                             entity_service.collection.name, entity_id, task_id)
                entity_service.delete(entity_id)
                raise

        self.tasks = [t for t in self.tasks if t.id != task_id]
        logger.info("Completed pending task %s as %s %s", task_id, entity_service.collection.name, entity_id)
        return entity_id

    def _complete_in_transaction(
        self,
        entity_service: EntityService,
        payload: dict,
        task_id: str,
        uid: str
    ) -> str:
        client = self.service.collection.database.client

        def run(session):
            entity_id = entity_service.insert(payload, session=session)
            if not self.service.delete(task_id, uid, session=session):
                raise NotFoundError(TASK_NOT_FOUND)
            return entity_id

        with client.start_session() as session:
            return session.with_transaction(run)
