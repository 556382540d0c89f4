from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from ruamel.yaml import YAML

from odmjson.schema.meta_schema import MODELS_DOCUMENT_META_SCHEMA
from odmjson.schema.model import FieldDescriptor, Schema

_yaml = YAML(typ="safe")

_MAX_NESTING = 32


class ModelLoadError(RuntimeError):
    pass


def load_models(path: Path) -> dict[str, Schema]:
    """Read a model document and build one :class:`Schema` per model."""
    if not path.exists():
        raise ModelLoadError(f"Model document not found: {path}")

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        document = _load_yaml_mapping(path)
    else:
        document = _load_json_mapping(path)

    validate_models_document(document)
    return {
        name: build_schema(model["fields"], path=f"models.{name}.fields")
        for name, model in document["models"].items()
    }


def validate_models_document(document: dict[str, Any]) -> None:
    if not isinstance(document, dict):
        raise ModelLoadError("Model document must be a mapping at the top level.")

    try:
        Draft202012Validator.check_schema(MODELS_DOCUMENT_META_SCHEMA)
    except SchemaError as exc:
        raise ModelLoadError(f"Internal model meta-schema is invalid: {exc.message}") from exc

    validator = Draft202012Validator(MODELS_DOCUMENT_META_SCHEMA)
    try:
        errors = sorted(validator.iter_errors(document), key=lambda err: list(err.absolute_path))
    except RecursionError as exc:
        raise ModelLoadError("Model document is cyclic or nested too deeply.") from exc
    if not errors:
        return

    first = errors[0]
    path = _format_error_path(first.absolute_path)
    raise ModelLoadError(f"Model document validation failed at {path}: {first.message}")


def build_schema(fields: Mapping[str, Any], *, path: str = "fields") -> Schema:
    return Schema.from_fields(_build_fields(fields, prefix="", path=path, depth=0))


def _build_fields(
    entries: Any,
    *,
    prefix: str,
    path: str,
    depth: int,
) -> list[FieldDescriptor]:
    if depth > _MAX_NESTING:
        raise ModelLoadError(f"{path} nests deeper than {_MAX_NESTING} levels.")
    if not isinstance(entries, Mapping):
        raise ModelLoadError(f"{path} must be a mapping.")

    descriptors: list[FieldDescriptor] = []
    for name, entry in entries.items():
        if not isinstance(name, str) or not name:
            raise ModelLoadError(f"{path} contains an invalid field name.")
        full_name = f"{prefix}.{name}" if prefix else name
        entry_path = f"{path}.{name}"
        if isinstance(entry, Mapping) and "type" not in entry and "fields" in entry:
            descriptors.extend(
                _build_fields(
                    entry["fields"],
                    prefix=full_name,
                    path=f"{entry_path}.fields",
                    depth=depth + 1,
                )
            )
            continue
        descriptors.append(_build_field(full_name, entry, path=entry_path, depth=depth))
    return descriptors


def _build_field(name: str, entry: Any, *, path: str, depth: int) -> FieldDescriptor:
    if isinstance(entry, Mapping):
        if "type" not in entry:
            raise ModelLoadError(f"{path} must define either 'type' or 'fields'.")
        declared = _build_type(entry["type"], path=f"{path}.type", depth=depth)
        options = {key: value for key, value in entry.items() if key != "type"}
    else:
        declared = _build_type(entry, path=path, depth=depth)
        options = {}
    return FieldDescriptor(
        path=name,
        declared_type=declared,
        options=options,
        schema=_nested_schema(declared),
    )


def _build_type(value: Any, *, path: str, depth: int) -> Any:
    if depth > _MAX_NESTING:
        raise ModelLoadError(f"{path} nests deeper than {_MAX_NESTING} levels.")
    if isinstance(value, str):
        if not value.strip():
            raise ModelLoadError(f"{path} must be a non-empty type name.")
        return value.strip()
    if isinstance(value, list):
        if len(value) > 1:
            raise ModelLoadError(f"{path} must declare at most one element type.")
        return [_build_type(item, path=f"{path}[0]", depth=depth + 1) for item in value]
    if isinstance(value, Mapping):
        if "type" not in value and "fields" in value:
            return Schema.from_fields(
                _build_fields(value["fields"], prefix="", path=f"{path}.fields", depth=depth + 1)
            )
        if "type" in value:
            element = dict(value)
            element["type"] = _build_type(value["type"], path=f"{path}.type", depth=depth + 1)
            return element
    raise ModelLoadError(f"{path} is not a supported type declaration.")


def _nested_schema(declared: Any) -> Schema | None:
    if isinstance(declared, Schema):
        return declared
    if isinstance(declared, list) and declared:
        item = declared[0]
        if isinstance(item, Schema):
            return item
        if isinstance(item, Mapping) and isinstance(item.get("type"), Schema):
            return item["type"]
    return None


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        parsed = _yaml.load(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ModelLoadError(f"Failed to parse model YAML: {path}") from exc
    if not isinstance(parsed, dict):
        raise ModelLoadError("Model document must be a mapping at the top level.")
    return parsed


def _load_json_mapping(path: Path) -> dict[str, Any]:
    try:
        parsed = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ModelLoadError(f"Invalid JSON model document: {path}") from exc
    if not isinstance(parsed, dict):
        raise ModelLoadError("Model document must be a mapping at the top level.")
    return parsed


def _format_error_path(path_parts: Any) -> str:
    parts = [str(part) for part in path_parts]
    if not parts:
        return "root"
    return "root." + ".".join(parts)
