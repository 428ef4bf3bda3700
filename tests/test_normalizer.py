"""Tests for inventory payload normalization and validation."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from stockwatch.inventory.normalizer import (
    InventoryChangeRecord,
    normalize_payload,
    parse_inventory_change,
)

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=20),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=12,
)


class TestNormalizePayload:
    def test_json_string_decoded(self):
        assert normalize_payload('{"inventory_item_id": 999, "available": 5}') == {
            "inventory_item_id": 999,
            "available": 5,
        }

    def test_json_bytes_decoded(self):
        assert normalize_payload(b'{"available": 1}') == {"available": 1}

    def test_none_is_none(self):
        assert normalize_payload(None) is None

    def test_malformed_json_is_none(self):
        assert normalize_payload('{"inventory_item_id": 999,') is None

    def test_empty_string_is_none(self):
        assert normalize_payload("") is None

    def test_invalid_utf8_is_none(self):
        assert normalize_payload(b"\xff\xfe\x00") is None

    def test_structured_value_passes_through_unchanged(self):
        payload = {"inventory_item_id": 1, "available": 2}
        assert normalize_payload(payload) is payload

    @given(st.lists(json_values) | st.dictionaries(st.text(max_size=8), json_values))
    def test_structured_input_is_idempotent(self, value):
        assert normalize_payload(value) is value
        assert normalize_payload(normalize_payload(value)) is value

    @given(st.text())
    def test_never_raises_on_text(self, text):
        normalize_payload(text)

    def test_nan_literal_rejected(self):
        assert normalize_payload('{"available": NaN}') is None


class TestParseInventoryChange:
    def test_valid_payload(self):
        record = parse_inventory_change(
            {"inventory_item_id": 999, "available": 5, "location_id": 1}
        )
        assert record == InventoryChangeRecord(inventory_item_id="999", available=5)

    def test_string_item_id(self):
        record = parse_inventory_change({"inventory_item_id": "999", "available": 0})
        assert record == InventoryChangeRecord(inventory_item_id="999", available=0)

    def test_negative_available_is_valid(self):
        record = parse_inventory_change({"inventory_item_id": 1, "available": -3})
        assert record is not None
        assert record.available == -3

    def test_missing_available(self):
        assert parse_inventory_change({"inventory_item_id": 1}) is None

    def test_null_available(self):
        assert parse_inventory_change({"inventory_item_id": 1, "available": None}) is None

    def test_non_numeric_available(self):
        assert parse_inventory_change({"inventory_item_id": 1, "available": "lots"}) is None

    def test_fractional_available(self):
        assert parse_inventory_change({"inventory_item_id": 1, "available": 2.5}) is None

    def test_boolean_available(self):
        assert parse_inventory_change({"inventory_item_id": 1, "available": True}) is None

    def test_missing_item_id(self):
        assert parse_inventory_change({"available": 5}) is None

    def test_blank_item_id(self):
        assert parse_inventory_change({"inventory_item_id": "  ", "available": 5}) is None

    def test_non_object_payload(self):
        assert parse_inventory_change([1, 2, 3]) is None
        assert parse_inventory_change("text") is None
