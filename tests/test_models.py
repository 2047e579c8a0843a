"""Tests for activity records and their stored shape."""

from datetime import datetime

import pytest

from maintenance_tracker.models import (
    Activity,
    ActivityStatus,
    Criticality,
    DateFormat,
    ImportMapping,
    Recurrence,
)

pytestmark = pytest.mark.unit


def _record(**overrides):
    record = {
        "id": "act_1",
        "tag": "BB-02",
        "descricao": "Troca de rolamento",
        "periodicidade": "Mensal",
        "horaInicio": "2024-01-01T08:00:00",
        "horaFim": "2024-01-01T09:30:00",
        "duracao": "1:30",
        "criticidade": "alta",
        "status": "EM PROGRESSO",
        "r eletrico": True,
    }
    record.update(overrides)
    return record


class TestActivityRecord:
    def test_from_record(self):
        activity = Activity.from_record(_record())

        assert activity.recurrence is Recurrence.MONTHLY
        assert activity.status is ActivityStatus.IN_PROGRESS
        assert activity.criticality is Criticality.HIGH
        assert activity.electrical_risk is True
        assert activity.duration_minutes == 90
        assert activity.before_images == []

    def test_round_trip_keeps_interchange_keys(self):
        record = Activity.from_record(_record()).to_record()

        assert record["horaInicio"] == "2024-01-01T08:00:00"
        assert record["horaFimReal"] is None
        assert record["periodicidade"] == "Mensal"
        assert record["r eletrico"] is True
        assert Activity.from_record(record).to_record() == record

    def test_single_photo_becomes_list(self):
        photo = {"id": "p1", "name": "antes.jpg", "type": "image", "url": "https://x/antes.jpg"}

        activity = Activity.from_record(_record(beforeImage=photo, afterImage=[photo, photo]))

        assert [item.name for item in activity.before_images] == ["antes.jpg"]
        assert len(activity.after_images) == 2

    def test_utc_timestamps_become_naive(self):
        activity = Activity.from_record(_record(horaInicio="2024-01-01T11:00:00.000Z"))

        assert activity.start_time.tzinfo is None

    def test_unknown_enums_fall_back(self):
        activity = Activity.from_record(_record(periodicidade="Anual", status="???"))

        assert activity.recurrence is Recurrence.NONE
        assert activity.status is ActivityStatus.OPEN

    def test_missing_times(self):
        with pytest.raises(ValueError):
            Activity.from_record(_record(horaFim=None))

    def test_copy_does_not_share_lists(self):
        activity = Activity.from_record(_record())
        clone = activity.copy(start_time=datetime(2024, 2, 1, 8, 0))

        clone.attachments.append("x")

        assert activity.attachments == []
        assert activity.start_time == datetime(2024, 1, 1, 8, 0)


class TestImportMappingRecord:
    def test_round_trip(self):
        mapping = ImportMapping(
            description="Atividade",
            responsible="Executantes",
            date="Data",
            start_time="Início",
            responsible_separator=";",
            date_format=DateFormat.DMON_Y,
        )

        restored = ImportMapping.from_record(mapping.to_record())

        assert restored == mapping

    def test_from_original_keys(self):
        mapping = ImportMapping.from_record(
            {"descricao": "Desc", "horaInicio": "Início", "horaFim": "", "dateFormat": "AAAA-MM-DD"}
        )

        assert mapping.description == "Desc"
        assert mapping.start_time == "Início"
        assert mapping.end_time is None
        assert mapping.responsible_separator == "/"
        assert mapping.date_format is DateFormat.YMD
