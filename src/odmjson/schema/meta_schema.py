from __future__ import annotations

from typing import Any

_OPTION_PROPERTIES: dict[str, Any] = {
    "required": {"type": "boolean"},
    "enum": {"type": "array"},
    "min": {"type": "number"},
    "max": {"type": "number"},
    "ref": {"type": "string", "minLength": 1},
    "select": {"type": "boolean"},
    "hidden": {"type": "boolean"},
    "description": {"type": "string"},
}

MODELS_DOCUMENT_META_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://odmjson.dev/schema/models/v1",
    "title": "odmjson model document (v1)",
    "type": "object",
    "additionalProperties": False,
    "required": ["models"],
    "properties": {
        "models": {
            "type": "object",
            "minProperties": 1,
            "propertyNames": {"minLength": 1},
            "additionalProperties": {"$ref": "#/$defs/model"},
        },
    },
    "$defs": {
        "model": {
            "type": "object",
            "additionalProperties": False,
            "required": ["fields"],
            "properties": {
                "description": {"type": "string"},
                "fields": {"$ref": "#/$defs/fields"},
            },
        },
        "fields": {
            "type": "object",
            "propertyNames": {"minLength": 1},
            "additionalProperties": {"$ref": "#/$defs/field"},
        },
        "field": {
            "anyOf": [
                {"$ref": "#/$defs/typeToken"},
                {"$ref": "#/$defs/arrayType"},
                {"$ref": "#/$defs/fieldOptions"},
                {"$ref": "#/$defs/nestedPaths"},
            ]
        },
        "typeToken": {"type": "string", "minLength": 1},
        "arrayType": {
            "type": "array",
            "maxItems": 1,
            "items": {"$ref": "#/$defs/elementType"},
        },
        "subDocument": {
            "type": "object",
            "additionalProperties": False,
            "required": ["fields"],
            "properties": {
                "fields": {"$ref": "#/$defs/fields"},
            },
        },
        "typeSpec": {
            "anyOf": [
                {"$ref": "#/$defs/typeToken"},
                {"$ref": "#/$defs/arrayType"},
                {"$ref": "#/$defs/subDocument"},
            ]
        },
        "elementType": {
            "anyOf": [
                {"$ref": "#/$defs/typeToken"},
                {"$ref": "#/$defs/arrayType"},
                {"$ref": "#/$defs/subDocument"},
                {"$ref": "#/$defs/fieldOptions"},
            ]
        },
        "fieldOptions": {
            "type": "object",
            "required": ["type"],
            "not": {"required": ["fields"]},
            "properties": {
                "type": {"$ref": "#/$defs/typeSpec"},
                **_OPTION_PROPERTIES,
            },
        },
        "nestedPaths": {
            "type": "object",
            "additionalProperties": False,
            "required": ["fields"],
            "properties": {
                "fields": {"$ref": "#/$defs/fields"},
                "description": {"type": "string"},
            },
        },
    },
}
