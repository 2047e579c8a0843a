from datetime import date, datetime
from pathlib import Path
from typing import Callable

import pytest

from maintenance_tracker.db import database_connection
from maintenance_tracker.models import Activity, ImportMapping, Recurrence


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "activities.sqlite3"


@pytest.fixture
def conn(db_path: Path):
    with database_connection(db_path) as connection:
        yield connection


@pytest.fixture
def make_activity() -> Callable[..., Activity]:
    """Factory for activities with a one-hour slot on 2024-01-01."""

    def _make(**overrides) -> Activity:
        values = dict(
            id="act_1",
            start_time=datetime(2024, 1, 1, 8, 0),
            end_time=datetime(2024, 1, 1, 9, 0),
            duration="1:00",
            description="Inspeção da correia transportadora",
            tag="TC-101",
            recurrence=Recurrence.NONE,
            responsible="Ana / Bruno",
        )
        values.update(overrides)
        return Activity(**values)

    return _make


@pytest.fixture
def basic_mapping() -> ImportMapping:
    return ImportMapping(
        description="Descrição",
        tag="TAG",
        responsible="Executantes",
        date="Data",
        start_time="Início",
        end_time="Fim",
        criticality="Criticidade",
        responsible_separator=";",
    )


@pytest.fixture
def today() -> date:
    return date(2024, 3, 1)
