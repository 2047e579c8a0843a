"""Tests for free-text cell cleanup."""

import pytest

from maintenance_tracker.normalization import (
    clean_cell_text,
    is_missing_text,
    normalize_responsible,
    split_responsible,
)

pytestmark = pytest.mark.unit


class TestNormalizeResponsible:
    def test_semicolon_separator(self):
        assert normalize_responsible("Ana;Bruno; Carla", ";") == "Ana / Bruno / Carla"

    def test_drops_empty_names(self):
        assert normalize_responsible("Ana,, Bruno ,", ",") == "Ana / Bruno"

    def test_slash_separator_without_spaces(self):
        assert normalize_responsible("Ana/Bruno", "/") == "Ana / Bruno"

    @pytest.mark.parametrize("separator", [";", ",", "/", " / ", " ", "  ", None])
    def test_idempotent_on_canonical_strings(self, separator):
        canonical = "Ana / Bruno / Carla"
        once = normalize_responsible(canonical, separator)
        assert once == canonical
        assert normalize_responsible(once, separator) == once

    def test_whitespace_separator_is_stable(self):
        once = normalize_responsible("Ana Bruno", " ")

        assert once == "Ana / Bruno"
        assert normalize_responsible(once, " ") == once

    def test_no_separator_keeps_text(self):
        assert normalize_responsible("  Equipe   elétrica ", None) == "Equipe elétrica"

    def test_missing_and_numeric_cells(self):
        assert normalize_responsible(None, ";") == ""
        assert normalize_responsible(42, ";") == "42"


class TestHelpers:
    def test_split_responsible(self):
        assert split_responsible("Ana / Bruno") == ["Ana", "Bruno"]
        assert split_responsible("") == []
        assert split_responsible(None) == []

    def test_clean_cell_text(self):
        assert clean_cell_text(12.0) == "12"
        assert clean_cell_text(12.5) == "12.5"
        assert clean_cell_text(" a   b ") == "a b"
        assert clean_cell_text(None) == ""

    def test_is_missing_text(self):
        assert is_missing_text(None)
        assert is_missing_text("  ")
        assert is_missing_text("N/A")
        assert not is_missing_text("Limpar bomba")
