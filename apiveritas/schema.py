"""Schema inference, strictification and validation for ApiVeritas."""

from __future__ import annotations

import json
from typing import Any, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError
from jsonschema.validators import validator_for

from .exceptions import SchemaInferenceError
from .models import DifferenceRecord, DiffKind, JsonType
from .utils import (
    get_json_type,
    build_path,
    pointer_to_path,
    instance_pointer,
    ROOT_PATH,
)

DRAFT_07 = "http://json-schema.org/draft-07/schema#"


class SchemaInferencer:
    """
    Derives a draft-07 JSON Schema from the shape of a sample payload.

    Every key of every object becomes a property. No key is marked as
    required: a key missing from the candidate is reported by the
    structural differ instead. Array items are merged into one shape;
    items of different JSON types become an ``anyOf``.
    """

    def __init__(self, title: str = "Response"):
        self.title = title

    def infer(self, sample: Any) -> dict:
        """
        Infer a schema for a sample value.

        Args:
            sample: A parsed, non-empty JSON value

        Returns:
            A new schema dictionary
        """
        schema = {"$schema": DRAFT_07, "title": self.title}
        schema.update(self._infer_node(sample, ROOT_PATH))
        return schema

    def _infer_node(self, value: Any, path: str) -> dict:
        try:
            json_type = get_json_type(value)
        except TypeError:
            raise SchemaInferenceError(path, type(value).__name__)

        if json_type == JsonType.OBJECT:
            return {
                "type": "object",
                "properties": {
                    str(key): self._infer_node(child, build_path(path, key))
                    for key, child in value.items()
                },
            }

        if json_type == JsonType.ARRAY:
            item_schemas = [
                self._infer_node(item, build_path(path, i))
                for i, item in enumerate(value)
            ]
            return {"type": "array", "items": self._merge_items(item_schemas)}

        return {"type": json_type.value}

    def _merge_items(self, schemas: list[dict]) -> dict:
        """Fold item schemas into a single items schema."""
        merged: list[dict] = []
        for schema in self._flatten_any_of(schemas):
            for i, existing in enumerate(merged):
                if existing.get("type") == schema.get("type"):
                    merged[i] = self._merge(existing, schema)
                    break
            else:
                merged.append(schema)

        if not merged:
            return {}
        if len(merged) == 1:
            return merged[0]
        return {"anyOf": merged}

    def _merge(self, left: dict, right: dict) -> dict:
        """Merge two schemas of the same type."""
        if left.get("type") == "object":
            properties = dict(left.get("properties", {}))
            for key, schema in right.get("properties", {}).items():
                if key in properties:
                    properties[key] = self._merge_items([properties[key], schema])
                else:
                    properties[key] = schema
            return {"type": "object", "properties": properties}

        if left.get("type") == "array":
            items = [s for s in (left.get("items"), right.get("items")) if s]
            return {"type": "array", "items": self._merge_items(items)}

        return left

    @staticmethod
    def _flatten_any_of(schemas: list[dict]) -> list[dict]:
        flat = []
        for schema in schemas:
            if "anyOf" in schema and len(schema) == 1:
                flat.extend(schema["anyOf"])
            else:
                flat.append(schema)
        return flat


class SchemaStrictifier:
    """Forbids undeclared properties on every object schema."""

    @staticmethod
    def enforce_no_additional_properties(schema: Any) -> Any:
        """
        Set ``additionalProperties: false`` on each object-typed subschema.

        Walks nested dictionaries and lists of schemas, mutating them in
        place. Applying it twice has the same effect as applying it once.

        Returns:
            The same schema object, for chaining
        """
        if isinstance(schema, list):
            for item in schema:
                SchemaStrictifier.enforce_no_additional_properties(item)
        elif isinstance(schema, dict):
            if schema.get("type") == "object":
                schema["additionalProperties"] = False

            for value in schema.values():
                SchemaStrictifier.enforce_no_additional_properties(value)

        return schema


class SchemaValidator:
    """
    Validates payloads against a JSON Schema and reports every violation.

    The schema itself is not meta-validated, so unknown keywords are
    tolerated. Undeclared properties are reported one per property.
    """

    def __init__(self):
        self._last_errors: list[JsonSchemaValidationError] = []
        self._last_differences: list[DifferenceRecord] = []

    def validate(self, schema: dict, data: Any) -> bool:
        """
        Validate data, keeping all violations for ``get_errors``.

        Returns:
            True if data conforms to schema
        """
        validator_cls = validator_for(schema, default=Draft7Validator)
        validator = validator_cls(schema)

        self._last_errors = list(validator.iter_errors(data))
        self._last_differences = []
        for error in self._last_errors:
            self._last_differences.extend(self._to_differences(error))

        return not self._last_errors

    def get_errors(self) -> list[str]:
        """Human-readable messages for the most recent validation."""
        return [d.message for d in self._last_differences]

    def get_differences(self) -> list[DifferenceRecord]:
        """Difference records for the most recent validation."""
        return list(self._last_differences)

    def _to_differences(self, error: JsonSchemaValidationError) -> list[DifferenceRecord]:
        parts = list(error.absolute_path)
        pointer = instance_pointer(parts)

        if error.validator == "additionalProperties":
            unexpected = self._unexpected_properties(error)
            if unexpected:
                return [
                    DifferenceRecord(
                        path=pointer_to_path(parts + [prop]),
                        kind=DiffKind.ADDITIONAL_PROPERTY,
                        message=(
                            f'Unexpected property "{prop}" at {pointer}. '
                            f"Schema does not allow additional properties."
                        ),
                    )
                    for prop in unexpected
                ]

        if error.validator in ("anyOf", "oneOf"):
            # Surface unexpected properties from the branches.
            branch_differences = []
            for sub_error in error.context or []:
                for diff in self._to_differences(sub_error):
                    if diff.kind == DiffKind.ADDITIONAL_PROPERTY and diff not in branch_differences:
                        branch_differences.append(diff)
            if branch_differences:
                return branch_differences

        return [DifferenceRecord(
            path=pointer_to_path(parts),
            kind=DiffKind.SCHEMA_VIOLATION,
            message=f"Schema validation error at {pointer}: {error.message}",
        )]

    @staticmethod
    def _unexpected_properties(error: JsonSchemaValidationError) -> list[str]:
        instance = error.instance
        if not isinstance(instance, dict):
            return []
        declared = error.schema.get("properties", {}) if isinstance(error.schema, dict) else {}
        patterns = error.schema.get("patternProperties", {}) if isinstance(error.schema, dict) else {}
        if patterns:
            # Leave pattern-matched keys to jsonschema's own message.
            return []
        return [key for key in instance if key not in declared]


class SchemaPipeline:
    """Infers a schema from the baseline and validates the candidate with it."""

    def __init__(self, strict_schema: bool = True, inferencer: Optional[SchemaInferencer] = None):
        self.strict_schema = strict_schema
        self.inferencer = inferencer or SchemaInferencer()
        self.validator = SchemaValidator()

    def build_schema(self, baseline: Any) -> dict:
        schema = self.inferencer.infer(baseline)
        if self.strict_schema:
            SchemaStrictifier.enforce_no_additional_properties(schema)
        return schema

    def check(self, baseline: Any, candidate: Any) -> list[DifferenceRecord]:
        """Return schema differences of candidate against baseline's shape."""
        schema = self.build_schema(baseline)
        if self.validator.validate(schema, candidate):
            return []
        return self.validator.get_differences()


def dump_schema(schema: dict) -> str:
    return json.dumps(schema, indent=2, sort_keys=True)
