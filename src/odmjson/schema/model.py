from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, Mapping


@dataclass(frozen=True)
class FieldDescriptor:
    """One schema path: its name, declared type and options bag.

    ``declared_type`` is a type token (``"String"``, ``str``, ...), a
    one-element list for arrays, or a :class:`Schema` for a sub-document.
    ``schema`` carries the nested schema for sub-documents and document arrays.
    """

    path: str
    declared_type: Any = None
    options: Mapping[str, Any] = field(default_factory=dict)
    schema: Schema | None = None

    @property
    def is_required(self) -> bool:
        return self.options.get("required") is True

    def element(self) -> FieldDescriptor | None:
        declared = self.declared_type
        if not isinstance(declared, (list, tuple)) or not declared:
            return None
        item = declared[0]
        if isinstance(item, Schema):
            return FieldDescriptor(path=self.path, declared_type=item, schema=item)
        if isinstance(item, Mapping):
            options = {key: value for key, value in item.items() if key != "type"}
            item_type = item.get("type")
            nested = item_type if isinstance(item_type, Schema) else None
            return FieldDescriptor(
                path=self.path,
                declared_type=item_type,
                options=options,
                schema=nested,
            )
        return FieldDescriptor(path=self.path, declared_type=item)

    def relocated(self, path: str) -> FieldDescriptor:
        return replace(self, path=path)


@dataclass(frozen=True)
class Schema:
    paths: Mapping[str, FieldDescriptor] = field(default_factory=dict)

    @classmethod
    def from_fields(cls, fields: Iterable[FieldDescriptor]) -> Schema:
        return cls(paths={item.path: item for item in fields})

    def items(self) -> Iterator[tuple[str, FieldDescriptor]]:
        return iter(self.paths.items())

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __getitem__(self, name: str) -> FieldDescriptor:
        return self.paths[name]

