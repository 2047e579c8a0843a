"""Tests for persistence-backed workflows."""

import logging
from datetime import date, datetime

import pytest

from maintenance_tracker.db import fetch_activities, fetch_audit_entries, fetch_batch
from maintenance_tracker.models import ActivityStatus, ImportMapping, Recurrence
from maintenance_tracker.service import (
    create_activity,
    delete_import_batch,
    generate_recurrences,
    import_rows,
    reimport_batch,
    remove_activity,
    update_status,
)

pytestmark = pytest.mark.integration

NOW = datetime(2024, 3, 1, 9, 30)

ROWS = [
    {"Descrição": "Limpeza de filtro", "Início": "08:00", "Fim": "09:30", "Executantes": "Ana;Bruno"},
    {"Descrição": "", "Início": "10:00", "Fim": "11:00", "Executantes": "Carla"},
    {"Descrição": "Inspeção", "Início": "13:00", "Fim": "", "Executantes": "Davi"},
]
HEADERS = ["Descrição", "Início", "Fim", "Executantes"]


def _mapping(**overrides):
    values = dict(
        description="Descrição",
        start_time="Início",
        end_time="Fim",
        responsible="Executantes",
        responsible_separator=";",
    )
    values.update(overrides)
    return ImportMapping(**values)


class TestCreateActivity:
    def test_creates_template_and_occurrences(self, conn, make_activity):
        template = make_activity(recurrence=Recurrence.WEEKLY, duration="")

        created = create_activity(conn, template, recurrence_limit=date(2024, 1, 22), user="Ana")

        assert [item.id for item in created] == ["act_1", "act_1_1", "act_1_2", "act_1_3"]
        assert created[0].duration == "1:00"
        assert len(fetch_activities(conn)) == 4
        [entry] = fetch_audit_entries(conn)
        assert entry.action == "CRIAR"
        assert entry.details == "Criou 4 atividades"
        assert entry.user == "Ana"

    def test_caller_activity_is_not_modified(self, conn, make_activity):
        activity = make_activity(duration="9:99")

        [created] = create_activity(conn, activity)

        assert created.duration == "1:00"
        assert activity.duration == "9:99"
        assert created is not activity

    def test_without_limit_only_stores_template(self, conn, make_activity):
        created = create_activity(conn, make_activity(recurrence=Recurrence.DAILY))
        assert len(created) == 1

    def test_rejects_inverted_times(self, conn, make_activity):
        activity = make_activity(end_time=datetime(2024, 1, 1, 7, 0))
        with pytest.raises(ValueError):
            create_activity(conn, activity)
        assert fetch_activities(conn) == []


class TestRecurrences:
    def test_generates_from_stored_activity(self, conn, make_activity):
        create_activity(conn, make_activity(recurrence=Recurrence.MONTHLY))

        generated = generate_recurrences(conn, "act_1", date(2024, 6, 30))

        assert len(generated) == 5
        assert len(fetch_activities(conn)) == 6
        assert fetch_audit_entries(conn)[0].details == "Gerou 5 ocorrências de TC-101"

    def test_unknown_activity(self, conn):
        with pytest.raises(ValueError):
            generate_recurrences(conn, "missing", date(2024, 6, 30))


class TestImports:
    def test_import_creates_batch(self, conn):
        batch, activities = import_rows(
            conn, ROWS, HEADERS, _mapping(), batch_id="b1", now=NOW
        )

        assert batch.count == 2
        assert [activity.id for activity in activities] == ["imported_b1_0", "imported_b1_2"]
        assert activities[0].responsible == "Ana / Bruno"
        assert activities[1].end_time == datetime(2024, 3, 1, 14, 0)
        assert fetch_batch(conn, "b1").rows == ROWS
        assert fetch_audit_entries(conn)[0].action == "IMPORTAR"

    def test_default_batch_id_is_epoch_millis(self, conn):
        batch, activities = import_rows(conn, ROWS, HEADERS, _mapping(), now=NOW)

        assert batch.id == str(int(NOW.timestamp() * 1000))
        assert all(activity.id.startswith(f"imported_{batch.id}_") for activity in activities)

    def test_reimport_replaces_previous_instances(self, conn, make_activity):
        create_activity(conn, make_activity(id="manual"))
        import_rows(conn, ROWS, HEADERS, _mapping(), batch_id="b1", now=NOW)

        batch, activities = reimport_batch(
            conn, "b1", _mapping(description="Executantes"), now=NOW
        )

        stored_ids = sorted(activity.id for activity in fetch_activities(conn))
        assert stored_ids == ["imported_b1_0", "imported_b1_1", "imported_b1_2", "manual"]
        assert batch.count == 3
        assert fetch_batch(conn, "b1").mapping.description == "Executantes"
        assert fetch_batch(conn, "b1").created_at == NOW.replace(microsecond=0)

    def test_reimport_unknown_batch(self, conn):
        with pytest.raises(ValueError):
            reimport_batch(conn, "nope", _mapping())

    def test_delete_batch(self, conn, make_activity):
        create_activity(conn, make_activity(id="manual"))
        import_rows(conn, ROWS, HEADERS, _mapping(), batch_id="b1", now=NOW)

        removed = delete_import_batch(conn, "b1", user="Ana")

        assert removed == 2
        assert [activity.id for activity in fetch_activities(conn)] == ["manual"]
        assert fetch_batch(conn, "b1") is None
        assert fetch_audit_entries(conn)[0].action == "EXCLUIR"

    def test_delete_unknown_batch(self, conn):
        with pytest.raises(ValueError):
            delete_import_batch(conn, "nope")

    def test_warns_on_mass_rejection(self, conn, caplog):
        rows = [{"Descrição": ""}, {"Descrição": "-"}, {"Descrição": "Ok"}]

        with caplog.at_level(logging.WARNING, logger="maintenance_tracker.service"):
            import_rows(conn, rows, ["Descrição"], _mapping(), batch_id="b2", now=NOW)

        assert "2 of 3 rows" in caplog.text


class TestStatusAndRemoval:
    def test_update_status(self, conn, make_activity):
        create_activity(conn, make_activity())

        activity = update_status(conn, "act_1", ActivityStatus.PARTIALLY_EXECUTED)

        assert activity.status is ActivityStatus.PARTIALLY_EXECUTED
        assert activity.start_time == datetime(2024, 1, 1, 8, 0)

    def test_remove_activity(self, conn, make_activity):
        create_activity(conn, make_activity())

        remove_activity(conn, "act_1")

        assert fetch_activities(conn) == []
        with pytest.raises(ValueError):
            remove_activity(conn, "act_1")
