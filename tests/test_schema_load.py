from __future__ import annotations

import json
from pathlib import Path

import pytest

from odmjson.schema import (
    ModelLoadError,
    Schema,
    build_schema,
    load_models,
    validate_models_document,
)


def test_load_models_builds_one_schema_per_model(sample_project: Path) -> None:
    models = load_models(sample_project / "models" / "blog.yaml")

    assert list(models) == ["User", "Post"]
    user = models["User"]
    assert list(user) == ["_id", "email", "password", "role", "active"]
    assert user["_id"].declared_type == "ObjectId"
    assert user["email"].is_required
    assert user["password"].options == {"select": False}
    assert user["role"].options["enum"] == ["admin", "editor", "reader"]


def test_nested_paths_are_flattened_into_dotted_names(sample_project: Path) -> None:
    post = load_models(sample_project / "models" / "blog.yaml")["Post"]

    assert "meta" not in post
    assert post["meta.views"].declared_type == "Number"
    assert post["meta.views"].is_required
    assert post["meta.likes"].declared_type == "Number"


def test_document_arrays_carry_their_sub_schema(sample_project: Path) -> None:
    post = load_models(sample_project / "models" / "blog.yaml")["Post"]
    comments = post["comments"]

    assert isinstance(comments.schema, Schema)
    assert list(comments.schema) == ["body", "author"]

    element = comments.element()
    assert element is not None
    assert element.schema is comments.schema
    assert element.path == "comments"


def test_array_element_options_are_kept(sample_project: Path) -> None:
    post = load_models(sample_project / "models" / "blog.yaml")["Post"]

    assert post["tags"].declared_type == ["String"]
    element = post["readers"].element()
    assert element is not None
    assert element.declared_type == "ObjectId"
    assert element.options == {"ref": "User"}


def test_load_models_reads_json_documents(tmp_path: Path) -> None:
    path = tmp_path / "models.json"
    path.write_text(
        json.dumps({"models": {"Tag": {"fields": {"label": {"type": "String", "required": True}}}}}),
        encoding="utf-8",
    )

    models = load_models(path)

    assert list(models) == ["Tag"]
    assert models["Tag"]["label"].is_required


def test_load_models_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ModelLoadError, match="Model document not found"):
        load_models(tmp_path / "missing.yaml")


def test_load_models_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ModelLoadError, match="Invalid JSON model document"):
        load_models(path)


def test_validate_models_document_reports_first_error_path() -> None:
    document = {"models": {"User": {"fields": {"email": 5}}}}

    with pytest.raises(ModelLoadError, match=r"validation failed at root\.models\.User\.fields\.email"):
        validate_models_document(document)


def test_validate_models_document_requires_models() -> None:
    with pytest.raises(ModelLoadError, match="'models' is a required property"):
        validate_models_document({})


def test_validate_models_document_rejects_multi_element_arrays() -> None:
    document = {"models": {"User": {"fields": {"tags": ["String", "Number"]}}}}

    with pytest.raises(ModelLoadError, match="validation failed"):
        validate_models_document(document)


def test_build_schema_sub_document_type() -> None:
    schema = build_schema(
        {"location": {"type": {"fields": {"lat": "Number", "lng": "Number"}}, "required": True}}
    )

    location = schema["location"]
    assert isinstance(location.declared_type, Schema)
    assert location.schema is location.declared_type
    assert list(location.schema) == ["lat", "lng"]
    assert location.options == {"required": True}


def test_build_schema_rejects_unsupported_declarations() -> None:
    with pytest.raises(ModelLoadError, match=r"fields\.count is not a supported type declaration"):
        build_schema({"count": 3})

    with pytest.raises(ModelLoadError, match="must be a non-empty type name"):
        build_schema({"name": "  "})
