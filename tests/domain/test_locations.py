"""Tests for location code parsing and slot ids."""

import pytest
from core.errors import InvalidLocationText
from core.locations import (
    Location,
    ParsedPlace,
    location_from_path,
    location_from_slot_id,
    parse_place,
    parse_place_or_raise,
    safe_doc_id,
    slot_id_for,
)


class TestParsePlace:
    def test_shelf_only_lowercase(self):
        assert parse_place("c1") == ParsedPlace(shelf="C1", level=None)

    def test_shelf_with_level(self):
        assert parse_place("C1-L5") == ParsedPlace(shelf="C1", level=5)

    @pytest.mark.parametrize("text", ["C1 L5", "C1_L5", "C1L5", "  c1-l5  "])
    def test_separators_are_equivalent(self, text):
        assert parse_place(text) == ParsedPlace(shelf="C1", level=5)

    def test_two_digit_shelf(self):
        assert parse_place("c12") == ParsedPlace(shelf="C12", level=None)

    def test_leading_zero_is_dropped(self):
        assert parse_place("C07-L2") == ParsedPlace(shelf="C7", level=2)

    @pytest.mark.parametrize("text", ["Z9", "", "   ", None, "C", "C123", "C1-L", "C1-L12", "L5", "C1--L5", "shelf C1"])
    def test_invalid(self, text):
        assert parse_place(text) is None

    def test_parse_or_raise_rejects_invalid(self):
        with pytest.raises(InvalidLocationText) as exc_info:
            parse_place_or_raise("Z9")
        assert "Z9" in exc_info.value.message

    def test_at_fills_level(self):
        assert parse_place("C3").at(4) == Location("C3", 4)


class TestLocation:
    def test_equality_by_shelf_and_level(self):
        assert Location("C1", 5) == Location("C1", 5)
        assert Location("C1", 5) != Location("C1", 4)
        assert Location("C1", 5) != Location("C2", 5)

    def test_slot_id(self):
        assert Location("C7", 3).slot_id == "C7_L3"
        assert slot_id_for("C7", "3") == "C7_L3"

    def test_str(self):
        assert str(Location("C7", 3)) == "C7-L3"


class TestSlotIds:
    def test_location_from_slot_id(self):
        assert location_from_slot_id("C12_L4") == Location("C12", 4)

    def test_location_from_bad_slot_id(self):
        assert location_from_slot_id("C12-L4") is None
        assert location_from_slot_id(None) is None

    def test_location_from_path(self):
        path = "artifacts/app/public/data/slots/C5_L1/items/ABC"
        assert location_from_path(path) == Location("C5", 1)

    def test_location_from_path_without_slots(self):
        assert location_from_path("artifacts/app/items/ABC") is None

    def test_location_from_path_ending_at_slots(self):
        assert location_from_path("artifacts/app/slots") is None

    def test_safe_doc_id(self):
        assert safe_doc_id(" A/B/C ") == "A_B_C"
        assert safe_doc_id(None) == ""
