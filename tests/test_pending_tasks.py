"""PendingTaskManager over a mongomock pendingTasks collection."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect

from fct_admin.core.errors import MalformedDraftError, NotFoundError, PendingTaskError
from fct_admin.core.session import Identity
from fct_admin.schemas.schemas import DraftType, EmpresaDraft, EmpresaFormData
from fct_admin.services.mongo_service import EmpresaService
from fct_admin.services.pending_tasks import PendingTaskManager, PendingTaskService

ANA = Identity(uid="u-ana", email="ana@example.com")
LUIS = Identity(uid="u-luis", email="luis@example.com")

ASIGNACION_DRAFT = {
    "type": "asignacion",
    "title": "Prácticas de Marta",
    "description": "Falta confirmar la fecha de fin",
    "formData": {
        "estudianteId": "6650f1aa0000000000000001",
        "empresaId": "6650f1aa0000000000000002",
        "fechaInicio": "2024-03-01",
        "horas": 370,
    },
}


def _stored(user_id, created_at, title="t", type="empresa", form_data=None):
    return {
        "userId": user_id,
        "type": type,
        "title": title,
        "description": "",
        "formData": form_data if form_data is not None else {"nombre": title},
        "createdAt": created_at,
    }


def test_add_then_get_returns_same_form_data():
    manager = PendingTaskManager(ANA)
    before = datetime.now(timezone.utc)

    task_id = manager.add_pending_task(ASIGNACION_DRAFT)
    task = manager.get_pending_task(task_id)

    assert task.type == "asignacion"
    assert task.user_id == ANA.uid
    assert task.title == ASIGNACION_DRAFT["title"]
    assert task.form_data.model_dump(by_alias=True, exclude_unset=True) == ASIGNACION_DRAFT["formData"]
    assert datetime.fromisoformat(task.created_at) >= before


def test_add_puts_new_task_first_and_updates_count(collections):
    collections["pending_tasks"].insert_one(_stored(ANA.uid, "2024-01-01T00:00:00+00:00"))
    manager = PendingTaskManager(ANA)
    manager.refresh_tasks()

    task_id = manager.add_pending_task(EmpresaDraft(title="ACME", form_data=EmpresaFormData(nombre="ACME")))

    assert manager.count == 2
    assert manager.tasks[0].id == task_id


def test_add_requires_identity():
    with pytest.raises(PendingTaskError):
        PendingTaskManager(None).add_pending_task(ASIGNACION_DRAFT)


def test_remove_then_get_returns_none():
    manager = PendingTaskManager(ANA)
    task_id = manager.add_pending_task(ASIGNACION_DRAFT)

    manager.remove_pending_task(task_id)

    assert manager.get_pending_task(task_id) is None
    assert manager.count == 0


def test_remove_unknown_id_is_a_no_op():
    manager = PendingTaskManager(ANA)
    manager.remove_pending_task(str(ObjectId()))
    manager.remove_pending_task("not-an-object-id")


def test_refresh_orders_newest_first(collections):
    t1 = collections["pending_tasks"].insert_one(_stored(ANA.uid, "2024-01-01T08:00:00+00:00")).inserted_id
    t3 = collections["pending_tasks"].insert_one(_stored(ANA.uid, "2024-01-03T08:00:00+00:00")).inserted_id
    t2 = collections["pending_tasks"].insert_one(_stored(ANA.uid, "2024-01-02T08:00:00+00:00")).inserted_id
    manager = PendingTaskManager(ANA)

    tasks = manager.refresh_tasks()

    assert [task.id for task in tasks] == [str(t3), str(t2), str(t1)]
    assert manager.count == 3


def test_drafts_are_scoped_to_their_owner(collections):
    theirs = collections["pending_tasks"].insert_one(
        _stored(LUIS.uid, "2024-01-01T08:00:00+00:00")
    ).inserted_id
    manager = PendingTaskManager(ANA)

    assert manager.refresh_tasks() == []
    assert manager.get_pending_task(str(theirs)) is None

    manager.remove_pending_task(str(theirs))
    assert collections["pending_tasks"].count_documents({"_id": theirs}) == 1


def test_malformed_draft_is_skipped_in_list_and_reported_on_get(collections):
    bad = collections["pending_tasks"].insert_one(
        _stored(ANA.uid, "2024-01-01T08:00:00+00:00", type="ciclo", form_data={"salario": 1000})
    ).inserted_id
    collections["pending_tasks"].insert_one(_stored(ANA.uid, "2024-01-02T08:00:00+00:00"))
    manager = PendingTaskManager(ANA)

    assert manager.count == 0
    assert len(manager.refresh_tasks()) == 1
    with pytest.raises(MalformedDraftError):
        manager.get_pending_task(str(bad))


def test_store_failure_leaves_cache_unchanged():
    collection = MagicMock()
    collection.name = "pendingTasks"
    collection.find.return_value.sort.return_value = []
    collection.insert_one.side_effect = AutoReconnect("connection lost")
    manager = PendingTaskManager(ANA, PendingTaskService(collection))
    manager.refresh_tasks()

    with pytest.raises(PendingTaskError) as excinfo:
        manager.add_pending_task(ASIGNACION_DRAFT)

    assert excinfo.value.message == "No se pudo guardar la tarea pendiente."
    assert manager.tasks == []


def test_get_returns_none_when_store_unreadable():
    collection = MagicMock()
    collection.name = "pendingTasks"
    collection.find_one.side_effect = AutoReconnect("connection lost")
    manager = PendingTaskManager(ANA, PendingTaskService(collection))

    assert manager.get_pending_task(str(ObjectId())) is None


def test_complete_creates_entity_and_deletes_draft(collections):
    manager = PendingTaskManager(ANA)
    task_id = manager.add_pending_task({"type": "empresa", "title": "ACME", "formData": {"nombre": "ACME"}})
    payload = {"nombre": "ACME", "cif": "B12345678", "direccion": "Calle Mayor 1", "localidad": "Madrid"}

    empresa_id = manager.complete_pending_task(DraftType.empresa, EmpresaService(), payload, task_id)

    assert collections["empresas"].count_documents({"_id": ObjectId(empresa_id)}) == 1
    assert collections["pending_tasks"].count_documents({}) == 0
    assert manager.count == 0


def test_complete_rolls_back_entity_when_draft_delete_fails(collections):
    manager = PendingTaskManager(ANA)
    task_id = manager.add_pending_task({"type": "empresa", "title": "ACME"})
    payload = {"nombre": "ACME", "cif": "B1", "direccion": "x", "localidad": "y"}

    with patch.object(manager.service, "delete", side_effect=PendingTaskError("No se pudo eliminar la tarea pendiente.")):
        with pytest.raises(PendingTaskError):
            manager.complete_pending_task(DraftType.empresa, EmpresaService(), payload, task_id)

    assert collections["empresas"].count_documents({}) == 0
    assert collections["pending_tasks"].count_documents({}) == 1
    assert manager.count == 1


def test_complete_with_wrong_type_is_not_found(collections):
    manager = PendingTaskManager(ANA)
    task_id = manager.add_pending_task({"type": "empresa", "title": "ACME"})

    with pytest.raises(NotFoundError):
        manager.complete_pending_task(DraftType.ciclo, EmpresaService(), {"nombre": "x"}, task_id)

    assert collections["empresas"].count_documents({}) == 0


def test_complete_uses_transaction_when_enabled(monkeypatch):
    from fct_admin.core.config import get_settings

    monkeypatch.setenv("MONGODB_USE_TRANSACTIONS", "true")
    get_settings.cache_clear()
    manager = PendingTaskManager(ANA)
    task_id = manager.add_pending_task({"type": "empresa", "title": "ACME"})

    with patch.object(PendingTaskManager, "_complete_in_transaction", return_value="new-id") as in_tx:
        entity_id = manager.complete_pending_task(DraftType.empresa, EmpresaService(), {"nombre": "ACME"}, task_id)

    assert entity_id == "new-id"
    in_tx.assert_called_once()
    assert manager.count == 0


def test_transaction_runs_both_writes_in_one_session():
    session = MagicMock()
    session.with_transaction.side_effect = lambda callback: callback(session)
    client = MagicMock()
    client.start_session.return_value.__enter__.return_value = session

    service = MagicMock()
    service.collection.database.client = client
    service.delete.return_value = True
    entity_service = MagicMock()
    entity_service.insert.return_value = "new-id"

    manager = PendingTaskManager(ANA, service)
    entity_id = manager._complete_in_transaction(entity_service, {"nombre": "ACME"}, "task-1", ANA.uid)

    assert entity_id == "new-id"
    entity_service.insert.assert_called_once_with({"nombre": "ACME"}, session=session)
    service.delete.assert_called_once_with("task-1", ANA.uid, session=session)


def test_complete_propagates_store_read_failure():
    collection = MagicMock()
    collection.name = "pendingTasks"
    collection.find_one.side_effect = AutoReconnect("connection lost")
    entity_service = MagicMock()
    manager = PendingTaskManager(ANA, PendingTaskService(collection))

    with pytest.raises(PendingTaskError):
        manager.complete_pending_task(DraftType.empresa, entity_service, {"nombre": "ACME"}, str(ObjectId()))

    entity_service.insert.assert_not_called()
