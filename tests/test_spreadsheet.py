"""Tests for reading workbooks into import rows."""

from datetime import date, datetime, time, timedelta
from pathlib import Path

import openpyxl
import pytest

from maintenance_tracker.importer import normalize
from maintenance_tracker.models import ImportMapping
from maintenance_tracker.spreadsheet import SpreadsheetError, read_workbook

pytestmark = pytest.mark.integration


def _write_workbook(path: Path, rows, title: str = "Plano") -> Path:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = title
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


class TestReadWorkbook:
    def test_headers_and_native_values(self, tmp_path):
        path = _write_workbook(
            tmp_path / "plano.xlsx",
            [
                ["Descrição", "Data", "Início", "Horas", "Executantes"],
                ["Limpeza", datetime(2024, 3, 5), time(8, 30), 0.0625, "Ana;Bruno"],
                [None, None, None, None, None],
                ["Inspeção", "06/03/2024", "14:00", None, "Carla"],
            ],
        )

        headers, rows = read_workbook(path)

        assert headers == ["Descrição", "Data", "Início", "Horas", "Executantes"]
        assert len(rows) == 2
        assert rows[0]["Data"] == datetime(2024, 3, 5)
        assert rows[0]["Horas"] == 0.0625
        assert rows[1]["Horas"] == ""
        assert rows[1]["Data"] == "06/03/2024"

    def test_rows_feed_the_normalizer(self, tmp_path):
        path = _write_workbook(
            tmp_path / "plano.xlsx",
            [
                ["Descrição", "Data", "Início", "Duração", "Executantes"],
                ["Limpeza", datetime(2024, 3, 5), time(8, 30), 0.0625, "Ana;Bruno"],
                ["Inspeção", "06/03/2024", "14:00", "0:45", "Carla"],
            ],
        )
        mapping = ImportMapping(
            description="Descrição",
            date="Data",
            start_time="Início",
            duration="Duração",
            responsible="Executantes",
            responsible_separator=";",
        )

        _, rows = read_workbook(path)
        first, second = normalize(rows, mapping, "xl", today=date(2024, 1, 1))

        assert first.start_time == datetime(2024, 3, 5, 8, 30)
        assert first.end_time == datetime(2024, 3, 5, 10, 0)
        assert first.responsible == "Ana / Bruno"
        assert second.start_time == datetime(2024, 3, 6, 14, 0)
        assert second.duration == "0:45"

    def test_elapsed_time_cells_feed_the_normalizer(self, tmp_path):
        path = _write_workbook(
            tmp_path / "turnos.xlsx",
            [
                ["Descrição", "Início", "Fim"],
                ["Troca de rolete", timedelta(hours=8), timedelta(hours=10)],
            ],
        )
        mapping = ImportMapping(description="Descrição", start_time="Início", end_time="Fim")

        _, rows = read_workbook(path)
        [activity] = normalize(rows, mapping, "xl", today=date(2024, 3, 1))

        assert activity.start_time == datetime(2024, 3, 1, 8, 0)
        assert activity.end_time == datetime(2024, 3, 1, 10, 0)

    def test_blank_and_duplicate_headers(self, tmp_path):
        path = _write_workbook(
            tmp_path / "plano.xlsx",
            [["Descrição", None, "Descrição"], ["a", "b", "c"]],
        )

        headers, rows = read_workbook(path)

        assert headers == ["Descrição", "Coluna 2", "Coluna 3"]
        assert rows == [{"Descrição": "a", "Coluna 2": "b", "Coluna 3": "c"}]

    def test_named_sheet(self, tmp_path):
        path = _write_workbook(tmp_path / "plano.xlsx", [["A"], [1]], title="Semana 10")

        headers, _ = read_workbook(path, sheet="Semana 10")
        assert headers == ["A"]

        with pytest.raises(SpreadsheetError):
            read_workbook(path, sheet="Semana 11")

    def test_no_data_rows(self, tmp_path):
        path = _write_workbook(tmp_path / "vazio.xlsx", [["Descrição", "Início"]])

        with pytest.raises(SpreadsheetError):
            read_workbook(path)

    def test_not_a_workbook(self, tmp_path):
        path = tmp_path / "texto.xlsx"
        path.write_text("isto não é uma planilha")

        with pytest.raises(SpreadsheetError):
            read_workbook(path)
