from __future__ import annotations

import datetime
import decimal
from typing import Any, Iterable, Mapping, Protocol

from odmjson.schema.model import FieldDescriptor, Schema


class SchemaClassifier(Protocol):
    def classify_type(self, declared_type: Any) -> str: ...

    def is_included(self, name: str, options: Mapping[str, Any]) -> bool: ...

    def embedded_group_name(self, name: str) -> str | None: ...

    def find_embedded_groups(self, schema: Schema) -> dict[str, list[FieldDescriptor]]: ...


_TYPE_ALIASES = {
    "string": "String",
    "str": "String",
    "number": "Number",
    "int": "Number",
    "int32": "Number",
    "integer": "Number",
    "bigint": "Number",
    "long": "Number",
    "float": "Number",
    "double": "Number",
    "decimal": "Number",
    "decimal128": "Number",
    "boolean": "Boolean",
    "bool": "Boolean",
    "date": "Date",
    "datetime": "Date",
    "uuid": "String",
    "objectid": "ObjectId",
    "oid": "ObjectId",
    "array": "Array",
    "list": "Array",
    "mixed": "Mixed",
    "object": "Mixed",
    "map": "Mixed",
    "dict": "Mixed",
    "buffer": "Buffer",
    "bytes": "Buffer",
}

_PYTHON_TYPES: list[tuple[type, str]] = [
    (bool, "Boolean"),
    (str, "String"),
    (int, "Number"),
    (float, "Number"),
    (decimal.Decimal, "Number"),
    (datetime.datetime, "Date"),
    (datetime.date, "Date"),
    (list, "Array"),
    (tuple, "Array"),
    (dict, "Mixed"),
    (bytes, "Buffer"),
]

_TOKEN_PREFIXES = ("mongoose.Schema.Types.", "Schema.Types.", "Types.")


class MongooseClassifier:
    """Classifies Mongoose-style type tokens and filters fields.

    Nested paths use dotted names (``address.city``); the first segment is the
    embedded group. Fields are dropped when their options set ``select: false``
    or ``hidden: true``, or when they are listed in ``exclude``. When
    ``include`` is given, only the listed names survive. Unknown settings
    raise ``TypeError``.
    """

    def __init__(
        self,
        *,
        include: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ):
        self.include = set(include) if include is not None else None
        self.exclude = set(exclude or ())

    def classify_type(self, declared_type: Any) -> str:
        if declared_type is None:
            return "Mixed"
        if isinstance(declared_type, Schema):
            return "Embedded"
        if isinstance(declared_type, (list, tuple)):
            return "Array"
        if isinstance(declared_type, Mapping):
            if "type" in declared_type:
                return self.classify_type(declared_type["type"])
            return "Mixed"
        if isinstance(declared_type, type):
            for python_type, canonical in _PYTHON_TYPES:
                if issubclass(declared_type, python_type):
                    return canonical
            return declared_type.__name__
        if isinstance(declared_type, str):
            return _normalize_token(declared_type)
        return type(declared_type).__name__

    def is_included(self, name: str, options: Mapping[str, Any]) -> bool:
        if name in self.exclude:
            return False
        if self.include is not None and name not in self.include:
            return False
        if options.get("select") is False:
            return False
        return options.get("hidden") is not True

    def embedded_group_name(self, name: str) -> str | None:
        head, sep, rest = name.partition(".")
        if not sep or not head or not rest:
            return None
        return head

    def find_embedded_groups(self, schema: Schema) -> dict[str, list[FieldDescriptor]]:
        groups: dict[str, list[FieldDescriptor]] = {}
        for name, descriptor in schema.items():
            group = self.embedded_group_name(name)
            if group is None:
                continue
            groups.setdefault(group, []).append(descriptor.relocated(name[len(group) + 1 :]))
        return groups


def _normalize_token(token: str) -> str:
    token = token.strip()
    for prefix in _TOKEN_PREFIXES:
        if token.startswith(prefix):
            token = token[len(prefix) :]
            break
    return _TYPE_ALIASES.get(token.lower(), token)
