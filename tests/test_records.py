"""
Tests for Records

Covers:
    - Target identifier validation
    - Target list normalisation
    - RecordSet immutability and field ordering
    - Collection results
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hwinventory.errors import InvalidTargetIdentifier, ProbeError
from hwinventory.records import (
    CollectionResult,
    Failure,
    RecordSet,
    split_targets,
    validate_target,
)


class TestValidateTarget:
    """Tests for target identifier syntax."""

    @pytest.mark.parametrize("target", [
        "web01",
        "db-02.example.com",
        "10.0.0.15",
        "A",
        "x" * 254,
    ])
    def test_valid_targets(self, target):
        assert validate_target(target) == target

    def test_strips_whitespace(self):
        assert validate_target("  web01 ") == "web01"

    @pytest.mark.parametrize("target", [
        "",
        "   ",
        "web01; rm -rf /",
        "host name",
        "-leading",
        "trailing.",
        "user@host",
        "$(whoami)",
        "x" * 255,
    ])
    def test_invalid_targets(self, target):
        with pytest.raises(InvalidTargetIdentifier):
            validate_target(target)

    def test_non_string_rejected(self):
        with pytest.raises(InvalidTargetIdentifier):
            validate_target(None)

    def test_error_is_value_error(self):
        """Invalid targets can be caught as ValueError too."""
        with pytest.raises(ValueError):
            validate_target("bad host")


class TestSplitTargets:
    """Tests for target list normalisation."""

    def test_comma_separated(self):
        assert split_targets("a, b,c") == ["a", "b", "c"]

    def test_keeps_order_and_drops_duplicates(self):
        assert split_targets(["b", "a", "B", "b", "c"]) == ["b", "a", "c"]

    def test_empty_entries_dropped(self):
        assert split_targets("a,,b,") == ["a", "b"]

    def test_none(self):
        assert split_targets(None) == []


class TestRecordSet:
    """Tests for RecordSet."""

    def test_order_preserved(self):
        records = RecordSet([{"n": 1}, {"n": 2}, {"n": 3}])
        assert [r["n"] for r in records] == [1, 2, 3]

    def test_records_are_read_only(self):
        records = RecordSet([{"Name": "A"}])
        with pytest.raises(TypeError):
            records[0]["Name"] = "B"

    def test_source_changes_do_not_leak_in(self):
        source = [{"Name": "A"}]
        records = RecordSet(source)
        source[0]["Name"] = "changed"
        source.append({"Name": "B"})
        assert len(records) == 1
        assert records[0]["Name"] == "A"

    def test_to_list_returns_copies(self):
        records = RecordSet([{"Name": "A"}])
        copy = records.to_list()
        copy[0]["Name"] = "B"
        assert records[0]["Name"] == "A"

    def test_field_names_union_first_seen(self):
        records = RecordSet([{"a": 1, "b": 2}, {"b": 3, "c": 4}, {"a": 5, "d": None}])
        assert records.field_names() == ["a", "b", "c", "d"]

    def test_equality_with_list(self):
        assert RecordSet([{"a": 1}]) == [{"a": 1}]

    def test_slice_returns_recordset(self):
        records = RecordSet([{"n": 1}, {"n": 2}])
        assert isinstance(records[:1], RecordSet)
        assert len(records[:1]) == 1


class TestCollectionResult:
    """Tests for CollectionResult."""

    def test_all_failed(self):
        failure = Failure("a", ProbeError("x"))
        result = CollectionResult(RecordSet(), [failure], ["a"])
        assert result.all_failed
        assert result.failure_for("a") is failure

    def test_partial_failure_is_not_all_failed(self):
        result = CollectionResult(RecordSet([{"n": 1}]), [Failure("b", ProbeError("x"))], ["a", "b"])
        assert not result.all_failed
        assert result.failure_for("a") is None
