"""Tests for the ApiVeritas comparison engine."""

import json

import pytest
from apiveritas import (
    EMPTY,
    ComparisonOptions,
    DiffKind,
    HtmlReporter,
    PayloadComparer,
    SchemaInferencer,
    SchemaPipeline,
    SchemaStrictifier,
    SchemaValidator,
    Severity,
    StructuralDiffer,
    compare_latest,
)
from apiveritas.models import FileComparisonResult, DifferenceRecord
from apiveritas.utils import parse_payload


SUITE = "bookings"
OLD = "2025.01.01.000000"
NEW = "2025.01.02.000000"


def write_snapshot(root, folder, files, suite=SUITE):
    """Write a snapshot folder; dict/list values are JSON-encoded, strings written raw."""
    path = root / suite / folder
    path.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        text = content if isinstance(content, str) else json.dumps(content)
        (path / name).write_text(text, encoding="utf-8")
    return path


def all_options():
    return [
        ComparisonOptions(strict_schema=s, strict_values=v, tolerate_empty_responses=t)
        for s in (True, False)
        for v in (True, False)
        for t in (True, False)
    ]


def kinds(result):
    return [d.kind for d in result.differences]


class TestStructuralDiffer:
    """Test key-by-key structural diffing."""

    def setup_method(self):
        self.differ = StructuralDiffer(strict_values=True)

    def test_identical_payloads(self):
        """Test that identical payloads produce no differences."""
        payload = {"id": 1, "user": {"name": "Ada", "tags": ["a", "b"]}, "note": None}
        assert self.differ.compare(payload, json.loads(json.dumps(payload))) == []

    def test_missing_key(self):
        """Test a key absent from the new payload is reported at its path."""
        diffs = self.differ.compare({"a": 1, "b": 2}, {"a": 1})
        assert len(diffs) == 1
        assert diffs[0].kind == DiffKind.MISSING_KEY
        assert diffs[0].path == "b"
        assert diffs[0].severity == Severity.BLOCKING

    def test_missing_key_does_not_recurse(self):
        """Test a missing object is reported once, not per descendant."""
        diffs = self.differ.compare({"user": {"id": 1, "name": "x"}}, {})
        assert [d.path for d in diffs] == ["user"]

    def test_nested_paths_are_dot_delimited(self):
        """Test nested differences are flattened with dotted paths."""
        old = {"user": {"address": {"city": "London"}}}
        new = {"user": {"address": {"city": "Paris"}}}
        diffs = self.differ.compare(old, new)
        assert len(diffs) == 1
        assert diffs[0].path == "user.address.city"
        assert diffs[0].kind == DiffKind.VALUE_MISMATCH

    def test_type_mismatch(self):
        """Test number vs string is a type mismatch."""
        diffs = self.differ.compare({"a": 1}, {"a": "1"})
        assert len(diffs) == 1
        assert diffs[0].kind == DiffKind.TYPE_MISMATCH
        assert "expected number, got string" in diffs[0].message

    def test_null_vs_object_is_type_mismatch(self):
        """Test null and object are distinct JSON types."""
        diffs = self.differ.compare({"a": None}, {"a": {}})
        assert [d.kind for d in diffs] == [DiffKind.TYPE_MISMATCH]

    def test_array_vs_object_is_type_mismatch(self):
        """Test array and object are distinct JSON types."""
        diffs = self.differ.compare({"a": [1]}, {"a": {"0": 1}})
        assert [d.kind for d in diffs] == [DiffKind.TYPE_MISMATCH]

    def test_int_and_float_share_number_type(self):
        """Test 1 and 1.0 are the same type and value."""
        assert self.differ.compare({"a": 1}, {"a": 1.0}) == []

    def test_boolean_is_not_number(self):
        """Test true vs 1 is a type mismatch."""
        diffs = self.differ.compare({"a": True}, {"a": 1})
        assert diffs[0].kind == DiffKind.TYPE_MISMATCH

    def test_loose_values_are_informational(self):
        """Test value mismatches are informational without strict values."""
        differ = StructuralDiffer(strict_values=False)
        diffs = differ.compare({"a": 1}, {"a": 2})
        assert len(diffs) == 1
        assert diffs[0].kind == DiffKind.VALUE_MISMATCH
        assert diffs[0].severity == Severity.INFORMATIONAL

    def test_new_keys_are_ignored(self):
        """Test keys only present in the new payload are not reported."""
        assert self.differ.compare({"a": 1}, {"a": 1, "b": 2}) == []

    def test_arrays_compared_by_index(self):
        """Test reordered arrays register as mismatches."""
        diffs = self.differ.compare({"items": ["a", "b"]}, {"items": ["b", "a"]})
        assert [d.path for d in diffs] == ["items.0", "items.1"]
        assert all(d.kind == DiffKind.VALUE_MISMATCH for d in diffs)

    def test_shorter_array_reports_missing_index(self):
        """Test a missing array element is a missing key at its index."""
        diffs = self.differ.compare({"items": [1, 2]}, {"items": [1]})
        assert len(diffs) == 1
        assert diffs[0].kind == DiffKind.MISSING_KEY
        assert diffs[0].path == "items.1"

    def test_root_arrays(self):
        """Test array roots are walked by index."""
        diffs = self.differ.compare([{"id": 1}], [{"id": 2}])
        assert [d.path for d in diffs] == ["0.id"]

    def test_scalar_root_equal(self):
        """Test equal scalar roots produce no differences."""
        assert self.differ.compare("ok", "ok") == []

    def test_scalar_root_differs(self):
        """Test a scalar root mismatch is reported once at '#'."""
        diffs = self.differ.compare(5, 6)
        assert len(diffs) == 1
        assert diffs[0].path == "#"
        assert diffs[0].kind == DiffKind.VALUE_MISMATCH

    def test_root_type_change(self):
        """Test an object root replaced by a scalar is a root type mismatch."""
        diffs = self.differ.compare({"a": 1}, "oops")
        assert len(diffs) == 1
        assert diffs[0].path == "#"
        assert diffs[0].kind == DiffKind.TYPE_MISMATCH

    def test_path_prefix(self):
        """Test a path prefix is prepended to child paths."""
        diffs = self.differ.compare({"a": 1}, {}, path_prefix="body")
        assert diffs[0].path == "body.a"


class TestSchemaInferencer:
    """Test schema inference from a baseline payload."""

    def setup_method(self):
        self.inferencer = SchemaInferencer()

    def test_object_shape(self):
        """Test every key becomes a property with its JSON type."""
        schema = self.inferencer.infer({"a": 1, "b": "x", "c": True, "d": None, "e": 1.5})
        assert schema["$schema"] == "http://json-schema.org/draft-07/schema#"
        assert schema["type"] == "object"
        assert schema["properties"] == {
            "a": {"type": "number"},
            "b": {"type": "string"},
            "c": {"type": "boolean"},
            "d": {"type": "null"},
            "e": {"type": "number"},
        }
        assert "required" not in schema

    def test_nested_objects_and_arrays(self):
        """Test nested shapes are described recursively."""
        schema = self.inferencer.infer({"user": {"tags": ["a", "b"]}})
        user = schema["properties"]["user"]
        assert user["type"] == "object"
        assert user["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}

    def test_array_objects_are_merged(self):
        """Test object items contribute the union of their keys."""
        schema = self.inferencer.infer([{"a": 1}, {"b": "x"}])
        assert schema["items"] == {
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "string"}},
        }

    def test_mixed_array_items_use_any_of(self):
        """Test heterogeneous items become anyOf."""
        schema = self.inferencer.infer([1, "x", 2])
        assert schema["items"] == {"anyOf": [{"type": "number"}, {"type": "string"}]}

    def test_empty_array(self):
        """Test an empty array accepts any items."""
        schema = self.inferencer.infer({"list": []})
        assert schema["properties"]["list"] == {"type": "array", "items": {}}

    def test_deterministic(self):
        """Test inference is stable for the same input."""
        payload = {"a": [{"x": 1}, {"y": [1, "z"]}], "b": {"c": None}}
        assert self.inferencer.infer(payload) == self.inferencer.infer(payload)


class TestSchemaStrictifier:
    """Test additionalProperties enforcement."""

    def test_sets_additional_properties_on_all_objects(self):
        """Test nested object schemas are all closed."""
        schema = SchemaInferencer().infer({"a": {"b": {"c": 1}}, "list": [{"id": 1}]})
        SchemaStrictifier.enforce_no_additional_properties(schema)

        assert schema["additionalProperties"] is False
        a = schema["properties"]["a"]
        assert a["additionalProperties"] is False
        assert a["properties"]["b"]["additionalProperties"] is False
        assert schema["properties"]["list"]["items"]["additionalProperties"] is False

    def test_walks_lists_of_schemas(self):
        """Test schemas inside anyOf lists are closed too."""
        schema = {"anyOf": [{"type": "object", "properties": {}}, {"type": "string"}]}
        SchemaStrictifier.enforce_no_additional_properties(schema)
        assert schema["anyOf"][0]["additionalProperties"] is False
        assert "additionalProperties" not in schema["anyOf"][1]

    def test_idempotent(self):
        """Test applying twice equals applying once."""
        once = SchemaStrictifier.enforce_no_additional_properties(
            SchemaInferencer().infer({"a": [{"b": {}}]})
        )
        twice = SchemaStrictifier.enforce_no_additional_properties(
            SchemaStrictifier.enforce_no_additional_properties(
                SchemaInferencer().infer({"a": [{"b": {}}]})
            )
        )
        assert once == twice


class TestSchemaValidator:
    """Test validation and error formatting."""

    def setup_method(self):
        self.validator = SchemaValidator()

    def _strict_schema(self, sample):
        return SchemaStrictifier.enforce_no_additional_properties(SchemaInferencer().infer(sample))

    def test_valid_payload(self):
        """Test a conforming payload validates with no errors."""
        assert self.validator.validate(self._strict_schema({"a": 1}), {"a": 2}) is True
        assert self.validator.get_errors() == []

    def test_unexpected_property_at_root(self):
        """Test an additional property is named explicitly."""
        assert self.validator.validate(self._strict_schema({"a": 1}), {"a": 1, "b": 2}) is False
        errors = self.validator.get_errors()
        assert len(errors) == 1
        assert errors[0].startswith('Unexpected property "b" at #')
        diff = self.validator.get_differences()[0]
        assert diff.kind == DiffKind.ADDITIONAL_PROPERTY
        assert diff.path == "b"

    def test_unexpected_property_nested(self):
        """Test nested additional properties carry the instance path."""
        schema = self._strict_schema({"items": [{"id": 1}]})
        self.validator.validate(schema, {"items": [{"id": 1, "extra": True}]})
        errors = self.validator.get_errors()
        assert errors == [
            'Unexpected property "extra" at /items/0. Schema does not allow additional properties.'
        ]
        assert self.validator.get_differences()[0].path == "items.0.extra"

    def test_collects_all_errors(self):
        """Test every violation is reported in one pass."""
        schema = self._strict_schema({"a": 1, "b": "x"})
        self.validator.validate(schema, {"a": "1", "b": 2, "c": 3, "d": 4})
        differences = self.validator.get_differences()
        assert len(differences) == 4
        violations = [d for d in differences if d.kind == DiffKind.SCHEMA_VIOLATION]
        assert {d.path for d in violations} == {"a", "b"}
        assert all("Schema validation error at /" in d.message for d in violations)

    def test_unknown_keywords_tolerated(self):
        """Test schemas with non-standard keywords still validate."""
        schema = {"type": "object", "x-origin": "inferred", "properties": {"a": {"type": "number", "x-note": 1}}}
        assert self.validator.validate(schema, {"a": 1}) is True

    def test_errors_reset_between_runs(self):
        """Test get_errors reflects only the latest validation."""
        schema = self._strict_schema({"a": 1})
        self.validator.validate(schema, {"a": "x"})
        assert self.validator.get_errors()
        self.validator.validate(schema, {"a": 3})
        assert self.validator.get_errors() == []

    def test_unexpected_property_in_mixed_array(self):
        """Test added properties inside anyOf item branches are still named."""
        schema = self._strict_schema({"items": [1, {"a": 1}]})
        assert self.validator.validate(schema, {"items": [1, {"a": 1, "b": 2}]}) is False
        assert self.validator.get_errors() == [
            'Unexpected property "b" at /items/1. Schema does not allow additional properties.'
        ]
        diff = self.validator.get_differences()[0]
        assert diff.kind == DiffKind.ADDITIONAL_PROPERTY
        assert diff.path == "items.1.b"

    def test_mixed_array_type_error_stays_generic(self):
        """Test an item matching no branch keeps the generic anyOf message."""
        schema = self._strict_schema({"items": [1, {"a": 1}]})
        self.validator.validate(schema, {"items": [True]})
        differences = self.validator.get_differences()
        assert [d.kind for d in differences] == [DiffKind.SCHEMA_VIOLATION]
        assert differences[0].path == "items.0"


class TestSchemaPipeline:
    """Test the infer, strictify and validate sequence."""

    def test_strict_rejects_new_property(self):
        """Test strict pipeline reports added properties."""
        diffs = SchemaPipeline(strict_schema=True).check({"a": 1}, {"a": 1, "b": 2})
        assert [d.kind for d in diffs] == [DiffKind.ADDITIONAL_PROPERTY]

    def test_loose_allows_new_property(self):
        """Test loose pipeline accepts added properties."""
        assert SchemaPipeline(strict_schema=False).check({"a": 1}, {"a": 1, "b": 2}) == []


class TestPayloadNormalization:
    """Test loading of raw payload text."""

    @pytest.mark.parametrize("raw", ["", "   ", '""', "null", " null \n", "{not json"])
    def test_empty_variants(self, raw):
        """Test blank, null and invalid content normalize to EMPTY."""
        assert parse_payload(raw) is EMPTY

    def test_falsy_json_is_not_empty(self):
        """Test false, 0 and {} are real payloads."""
        assert parse_payload("false") is False
        assert parse_payload("0") == 0
        assert parse_payload("{}") == {}

    @pytest.mark.parametrize("raw", ['{"x": NaN}', "Infinity", "[1, -Infinity]"])
    def test_non_json_constants(self, raw):
        """Test NaN and Infinity tokens are rejected as invalid JSON."""
        assert parse_payload(raw) is EMPTY

    def test_excessive_nesting(self):
        """Test nesting beyond the parser's depth normalizes to EMPTY."""
        assert parse_payload("[" * 100000) is EMPTY


class TestFileComparisonResult:
    """Test result construction invariants."""

    def test_blocking_first_and_matched_flag(self):
        """Test ordering puts blocking records first and derives matched."""
        info = DifferenceRecord("a", DiffKind.VALUE_MISMATCH, "info", Severity.INFORMATIONAL)
        block = DifferenceRecord("b", DiffKind.MISSING_KEY, "block")
        result = FileComparisonResult.from_differences("f.json", [info, block])
        assert result.differences == (block, info)
        assert result.matched is False

    def test_informational_only_is_matched(self):
        """Test a result with only informational records matches."""
        info = DifferenceRecord("a", DiffKind.VALUE_MISMATCH, "info", Severity.INFORMATIONAL)
        assert FileComparisonResult.from_differences("f.json", [info]).matched is True


class TestComparePayloads:
    """Test per-file classification in the comparer."""

    def test_strict_values_toggle(self):
        """Test value mismatch severity follows strict_values."""
        strict = PayloadComparer(ComparisonOptions(strict_values=True))
        result = strict.compare_payloads("f.json", {"a": 1}, {"a": 2})
        assert result.matched is False
        assert kinds(result) == [DiffKind.VALUE_MISMATCH]
        assert result.differences[0].severity == Severity.BLOCKING

        loose = PayloadComparer(ComparisonOptions(strict_values=False))
        result = loose.compare_payloads("f.json", {"a": 1}, {"a": 2})
        assert result.matched is True
        assert kinds(result) == [DiffKind.VALUE_MISMATCH]
        assert result.differences[0].severity == Severity.INFORMATIONAL

    def test_strict_schema_toggle(self):
        """Test added properties only fail with strict_schema."""
        strict = PayloadComparer(ComparisonOptions(strict_schema=True))
        result = strict.compare_payloads("f.json", {"a": 1}, {"a": 1, "b": 2})
        assert result.matched is False
        assert kinds(result) == [DiffKind.ADDITIONAL_PROPERTY]
        assert 'Unexpected property "b"' in result.differences[0].message

        loose = PayloadComparer(ComparisonOptions(strict_schema=False))
        assert loose.compare_payloads("f.json", {"a": 1}, {"a": 1, "b": 2}).matched is True

    @pytest.mark.parametrize("options", all_options())
    def test_missing_key_always_blocking(self, options):
        """Test missing keys fail under every configuration."""
        result = PayloadComparer(options).compare_payloads("f.json", {"a": 1, "b": 2}, {"a": 1})
        assert result.matched is False
        missing = [d for d in result.differences if d.kind == DiffKind.MISSING_KEY]
        assert [d.path for d in missing] == ["b"]

    @pytest.mark.parametrize("options", all_options())
    def test_type_mismatch_always_blocking(self, options):
        """Test type changes fail under every configuration."""
        result = PayloadComparer(options).compare_payloads("f.json", {"a": 1}, {"a": "1"})
        assert result.matched is False
        mismatches = [d for d in result.differences if d.kind == DiffKind.TYPE_MISMATCH]
        assert [d.path for d in mismatches] == ["a"]

    def test_result_order(self):
        """Test structural, then schema, then informational records."""
        comparer = PayloadComparer(ComparisonOptions(strict_values=False, strict_schema=True))
        result = comparer.compare_payloads("f.json", {"a": 1, "b": 2}, {"a": 5, "c": 3})
        assert kinds(result) == [
            DiffKind.MISSING_KEY,
            DiffKind.ADDITIONAL_PROPERTY,
            DiffKind.VALUE_MISMATCH,
        ]
        assert result.differences[-1].severity == Severity.INFORMATIONAL

    def test_empty_tolerated(self):
        """Test empty payloads match with a note when tolerated."""
        comparer = PayloadComparer(ComparisonOptions(tolerate_empty_responses=True))
        result = comparer.compare_payloads("f.json", EMPTY, {"a": 1})
        assert result.matched is True
        assert kinds(result) == [DiffKind.EMPTY_PAYLOAD]
        assert result.differences[0].severity == Severity.INFORMATIONAL

    def test_empty_not_tolerated(self):
        """Test empty payloads are blocking when not tolerated."""
        comparer = PayloadComparer(ComparisonOptions(tolerate_empty_responses=False))
        result = comparer.compare_payloads("f.json", EMPTY, {"a": 1})
        assert result.matched is False
        assert kinds(result) == [DiffKind.EMPTY_PAYLOAD]
        assert result.differences[0].message.startswith("Old data")

    def test_both_empty_not_tolerated(self):
        """Test each empty side is reported."""
        comparer = PayloadComparer(ComparisonOptions(tolerate_empty_responses=False))
        result = comparer.compare_payloads("f.json", EMPTY, EMPTY)
        assert kinds(result) == [DiffKind.EMPTY_PAYLOAD, DiffKind.EMPTY_PAYLOAD]

    @pytest.mark.parametrize("strict_schema", [True, False])
    def test_type_change_reported_once(self, strict_schema):
        """Test a type change yields only the structural record."""
        comparer = PayloadComparer(ComparisonOptions(strict_schema=strict_schema))
        result = comparer.compare_payloads("f.json", {"a": 1, "b": {"c": 1}}, {"a": "1", "b": []})
        assert kinds(result) == [DiffKind.TYPE_MISMATCH, DiffKind.TYPE_MISMATCH]
        assert [d.path for d in result.differences] == ["a", "b"]

    def test_structural_failure_is_per_file(self):
        """Test a crashing differ becomes one blocking record for the file."""
        comparer = PayloadComparer()

        def broken(old, new, path_prefix=""):
            raise RecursionError("maximum recursion depth exceeded")

        comparer.differ.compare = broken
        result = comparer.compare_payloads("f.json", {"a": 1}, {"a": 1})
        assert result.matched is False
        assert kinds(result) == [DiffKind.TYPE_MISMATCH]
        assert result.differences[0].path == "#"
        assert "Structural comparison failed" in result.differences[0].message

    def test_schema_failure_is_per_file(self):
        """Test a crashing schema step becomes a blocking schema violation."""
        comparer = PayloadComparer()

        def broken(baseline):
            raise RuntimeError("inference exploded")

        comparer.schema_pipeline.build_schema = broken
        result = comparer.compare_payloads("f.json", {"a": 1}, {"a": 1})
        assert result.matched is False
        assert kinds(result) == [DiffKind.SCHEMA_VIOLATION]
        assert "inference exploded" in result.differences[0].message


class TestFolderSelection:
    """Test discovery of the two latest snapshot folders."""

    def test_latest_two(self, tmp_path):
        """Test the two most recent folders are returned as (previous, latest)."""
        for name in ["2025.01.01.000000", "2025.01.03.000000", "2025.01.02.000000"]:
            write_snapshot(tmp_path, name, {})
        (tmp_path / SUITE / "notes.txt").write_text("not a folder")

        comparer = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path)
        assert comparer.get_latest_two_payload_folders() == ("2025.01.02.000000", "2025.01.03.000000")

    def test_fewer_than_two(self, tmp_path):
        """Test one folder is not enough to compare."""
        write_snapshot(tmp_path, OLD, {})
        comparer = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path)
        assert comparer.get_latest_two_payload_folders() is None

    def test_missing_suite_dir(self, tmp_path):
        """Test a missing suite directory yields no folders."""
        comparer = PayloadComparer(test_suite="unknown", payloads_root=tmp_path)
        assert comparer.get_latest_two_payload_folders() is None


class TestCompareFolders:
    """Test full snapshot folder comparisons."""

    def setup_method(self):
        self.payload = {
            "id": 7,
            "user": {"name": "Ada", "roles": ["admin", "dev"], "manager": None},
            "orders": [{"id": 1, "total": 9.5}, {"id": 2, "coupon": "X"}],
            "mixed": [1, "two", {"three": 3}, [4]],
        }

    @pytest.mark.parametrize("options", all_options())
    def test_folder_against_itself(self, tmp_path, options):
        """Test a folder compared with itself never has blocking differences."""
        write_snapshot(tmp_path, OLD, {
            "a.json": self.payload,
            "b.json": [1, 2, 3],
            "c.json": "42",
            "d.json": '"hello"',
        })
        comparer = PayloadComparer(options, SUITE, tmp_path)
        verdict = comparer.compare_folders(OLD, OLD)
        assert verdict.total_files == 4
        assert verdict.any_differences is False
        for result in verdict.results:
            assert result.blocking == []

    def test_aggregation(self, tmp_path):
        """Test counts are per file, not per difference."""
        write_snapshot(tmp_path, OLD, {
            "1.json": {"a": 1},
            "2.json": {"a": 1},
            "3.json": {"a": 1},
            "4.json": {"a": 1, "b": 2, "c": 3},
            "5.json": {"a": 1},
        })
        write_snapshot(tmp_path, NEW, {
            "1.json": {"a": 1},
            "2.json": {"a": 1},
            "3.json": {"a": 1},
            "4.json": {"a": 1},
        })
        verdict = PayloadComparer(ComparisonOptions(), SUITE, tmp_path).compare_folders(OLD, NEW)
        assert verdict.matched_count == 3
        assert verdict.diff_count == 2
        assert verdict.total_files == 5
        assert verdict.any_differences is True

    def test_file_missing(self, tmp_path):
        """Test a baseline file without counterpart is a blocking file-missing."""
        write_snapshot(tmp_path, OLD, {"gone.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {})
        verdict = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path).compare_folders(OLD, NEW)
        result = verdict.results[0]
        assert result.matched is False
        assert kinds(result) == [DiffKind.FILE_MISSING]
        assert result.old_content == {"a": 1}
        assert result.new_content is None

    def test_new_only_files_ignored(self, tmp_path):
        """Test files only in the newer folder are not compared."""
        write_snapshot(tmp_path, OLD, {"a.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 1}, "extra.json": {"x": 1}})
        verdict = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path).compare_folders(OLD, NEW)
        assert [r.file_name for r in verdict.results] == ["a.json"]
        assert verdict.any_differences is False

    def test_malformed_json_is_recoverable(self, tmp_path):
        """Test an unparsable file degrades to an empty payload and the run continues."""
        write_snapshot(tmp_path, OLD, {"bad.json": {"a": 1}, "good.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"bad.json": "{oops", "good.json": {"a": 1}})
        verdict = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path).compare_folders(OLD, NEW)
        results = {r.file_name: r for r in verdict.results}
        assert results["bad.json"].matched is False
        assert kinds(results["bad.json"]) == [DiffKind.EMPTY_PAYLOAD]
        assert results["good.json"].matched is True

    def test_empty_tolerance_from_disk(self, tmp_path):
        """Test null-equivalent baseline files honor empty tolerance."""
        write_snapshot(tmp_path, OLD, {"a.json": "null"})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 1}})

        tolerant = PayloadComparer(ComparisonOptions(tolerate_empty_responses=True), SUITE, tmp_path)
        assert tolerant.compare_folders(OLD, NEW).any_differences is False

        strict = PayloadComparer(ComparisonOptions(tolerate_empty_responses=False), SUITE, tmp_path)
        assert strict.compare_folders(OLD, NEW).any_differences is True

    def test_missing_folder(self, tmp_path):
        """Test a missing snapshot folder yields no verdict."""
        write_snapshot(tmp_path, OLD, {"a.json": {"a": 1}})
        comparer = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path)
        assert comparer.compare_folders(OLD, "2030.01.01.000000") is None

    def test_report_generated(self, tmp_path):
        """Test the reporter is invoked and its path recorded."""
        write_snapshot(tmp_path, OLD, {"a.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 2}})
        reporter = HtmlReporter(tmp_path / "reports")
        verdict = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path, reporter=reporter).compare_folders(OLD, NEW)
        assert verdict.report_path is not None
        html = open(verdict.report_path, encoding="utf-8").read()
        assert "a.json" in html
        assert "DIFFERENCES FOUND" in html

    def test_deeply_nested_file_does_not_abort_run(self, tmp_path):
        """Test an over-nested file is reported and the other files are still compared."""
        write_snapshot(tmp_path, OLD, {"a.json": "[" * 100000, "b.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 1}, "b.json": {"a": 1}})
        verdict = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path).compare_folders(OLD, NEW)
        assert verdict.total_files == 2
        results = {r.file_name: r for r in verdict.results}
        assert kinds(results["a.json"]) == [DiffKind.EMPTY_PAYLOAD]
        assert results["b.json"].matched is True

    @pytest.mark.parametrize("options", all_options())
    def test_non_json_constant_never_value_mismatch(self, tmp_path, options):
        """Test a NaN payload compared with itself is an empty payload, not a value mismatch."""
        write_snapshot(tmp_path, OLD, {"a.json": '{"x": NaN}'})
        verdict = PayloadComparer(options, SUITE, tmp_path).compare_folders(OLD, OLD)
        assert kinds(verdict.results[0]) == [DiffKind.EMPTY_PAYLOAD] * (
            1 if options.tolerate_empty_responses else 2
        )

    def test_report_failure_keeps_verdict(self, tmp_path):
        """Test a failing reporter does not lose the comparison outcome."""
        write_snapshot(tmp_path, OLD, {"a.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 2}})

        class BrokenReporter:
            def generate_report(self, old_folder, new_folder, results):
                raise OSError("disk full")

        comparer = PayloadComparer(test_suite=SUITE, payloads_root=tmp_path, reporter=BrokenReporter())
        verdict = comparer.compare_folders(OLD, NEW)
        assert verdict is not None
        assert verdict.report_path is None
        assert verdict.diff_count == 1

    def test_snapshots_not_modified(self, tmp_path):
        """Test comparison leaves snapshot files untouched."""
        old_dir = write_snapshot(tmp_path, OLD, {"a.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 1, "b": 2}})
        before = sorted(p.name for p in old_dir.iterdir())
        PayloadComparer(test_suite=SUITE, payloads_root=tmp_path).compare_folders(OLD, NEW)
        assert sorted(p.name for p in old_dir.iterdir()) == before

    def test_compare_latest(self, tmp_path):
        """Test the convenience function picks and compares the latest folders."""
        write_snapshot(tmp_path, OLD, {"a.json": {"a": 1}})
        write_snapshot(tmp_path, NEW, {"a.json": {"a": 1}})
        verdict = compare_latest(SUITE, tmp_path)
        assert (verdict.old_folder, verdict.new_folder) == (OLD, NEW)
        assert verdict.to_dict()["summary"]["matched"] == 1

    def test_compare_latest_nothing_to_compare(self, tmp_path):
        """Test the convenience function signals absence distinctly."""
        assert compare_latest(SUITE, tmp_path) is None
