from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from odmjson.projection.classifier import MongooseClassifier, SchemaClassifier
from odmjson.schema.model import FieldDescriptor, Schema

DEFAULT_MAX_DEPTH = 32
DEFINITIONS_PREFIX = "#/definitions/"

Definition = dict[str, Any]
FallbackHook = Callable[[str, str], None]


class ProjectionDepthError(RuntimeError):
    pass


@dataclass(frozen=True)
class Projection:
    definition: Definition
    object_refs: list[tuple[str, Definition]] = field(default_factory=list)

    def ref_table(self) -> dict[str, Definition]:
        return dict(self.object_refs)


@dataclass
class _Scope:
    projector: SchemaProjector
    by_reference: bool
    prefix: str | None
    depth: int
    trail: tuple[str, ...]
    object_refs: list[tuple[str, Definition]]

    def nested(
        self,
        name: str,
        prefix: str | None,
        object_refs: list[tuple[str, Definition]] | None = None,
    ) -> _Scope:
        return _Scope(
            projector=self.projector,
            by_reference=self.by_reference,
            prefix=prefix,
            depth=self.depth + 1,
            trail=self.trail + (name,),
            object_refs=self.object_refs if object_refs is None else object_refs,
        )

    def hoisted(self, name: str) -> Definition | None:
        for ref_name, definition in reversed(self.object_refs):
            if ref_name == name:
                return definition
        return None

    def location(self, name: str | None = None) -> str:
        parts = self.trail + ((name,) if name else ())
        return ".".join(parts) or "<root>"


class SchemaProjector:
    """Projects a :class:`Schema` into a Swagger-style model definition.

    Field inclusion, type naming and embedded-group detection all come from the
    injected classifier. In reference mode, embedded groups are hoisted into
    named definitions (``<prefix>_<group>``) and referenced with ``$ref``
    instead of being inlined.
    """

    def __init__(
        self,
        classifier: SchemaClassifier,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        on_fallback: FallbackHook | None = None,
    ):
        self.classifier = classifier
        self.max_depth = max_depth
        self.on_fallback = on_fallback

    def project(
        self,
        schema: Schema,
        schema_id: str | None = None,
        *,
        by_reference: bool = False,
    ) -> Projection:
        object_refs: list[tuple[str, Definition]] = []
        scope = _Scope(
            projector=self,
            by_reference=by_reference,
            prefix=schema_id,
            depth=0,
            trail=(),
            object_refs=object_refs,
        )
        definition = self._project_schema(schema, scope, definition_id=schema_id)
        return Projection(definition=definition, object_refs=object_refs)

    def generate(
        self,
        schema: Schema,
        schema_id: str | None = None,
        object_refs: dict[str, Definition] | None = None,
    ) -> Definition:
        projection = self.project(schema, schema_id, by_reference=object_refs is not None)
        if object_refs is not None:
            object_refs.update(projection.object_refs)
        return projection.definition

    def _project_schema(
        self,
        schema: Schema,
        scope: _Scope,
        *,
        definition_id: str | None,
    ) -> Definition:
        if scope.depth > self.max_depth:
            raise ProjectionDepthError(
                f"Embedding depth exceeds {self.max_depth} at {scope.location()}"
            )
        classifier = self.classifier
        properties: dict[str, Any] = {}
        required: list[str] = []
        for name, descriptor in schema.items():
            if classifier.embedded_group_name(name):
                continue
            # private fields
            if name.startswith("_") or not classifier.is_included(name, descriptor.options):
                continue
            properties[name] = self._generate_property(descriptor, scope)
            if descriptor.is_required:
                required.append(descriptor.path)

        for group, members in classifier.find_embedded_groups(schema).items():
            prop, bubbled = self._resolve_embedded(
                group,
                Schema.from_fields(members),
                scope,
                bubble=True,
            )
            properties[group] = prop
            if bubbled and bubbled not in required:
                required.append(bubbled)

        definition: Definition = {}
        if definition_id:
            definition["id"] = definition_id
        definition["properties"] = properties
        if required:
            definition["required"] = required
        return definition

    def _generate_property(self, descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
        canonical = self.classifier.classify_type(descriptor.declared_type)
        generator = _PROPERTY_GENERATORS.get(canonical)
        if generator is None:
            if self.on_fallback is not None:
                self.on_fallback(scope.location(descriptor.path), canonical)
            return _opaque_property(descriptor, scope)
        return generator(descriptor, scope)

    def _generate_item(self, element: FieldDescriptor, scope: _Scope) -> dict[str, Any] | None:
        canonical = self.classifier.classify_type(element.declared_type)
        generator = _ITEM_GENERATORS.get(canonical)
        if generator is None:
            return None
        return generator(element, scope)

    def _resolve_embedded(
        self,
        name: str,
        sub_schema: Schema,
        scope: _Scope,
        *,
        bubble: bool,
    ) -> tuple[dict[str, Any], str | None]:
        """Inline ``sub_schema`` or hoist it into the scope's ref list.

        A hoisted name already taken by a different definition (``a_b`` next
        to a nested ``a.b``) gets a numeric suffix, so every ``$ref`` keeps
        pointing at its own definition. Returns the property plus the name to
        add to the parent's ``required`` list, if any.
        """
        if not scope.by_reference:
            definition = self._project_schema(
                sub_schema,
                scope.nested(name, None),
                definition_id=None,
            )
            return {"type": "object", **definition}, None

        base_name = _ref_name(scope.prefix, name)
        ref_name = base_name
        suffix = 1
        while True:
            object_refs = list(scope.object_refs)
            definition = self._project_schema(
                sub_schema,
                scope.nested(name, ref_name, object_refs),
                definition_id=ref_name,
            )
            existing = scope.hoisted(ref_name)
            if existing is None or existing == definition:
                break
            suffix += 1
            ref_name = f"{base_name}_{suffix}"
        object_refs.append((ref_name, definition))
        scope.object_refs[:] = object_refs
        # mandatory when anything visible inside it is
        if bubble and definition.get("required"):
            return {"$ref": ref_name}, ref_name
        return {"$ref": ref_name}, None


def _string_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": "string"}
    enum_values = descriptor.options.get("enum")
    if enum_values:
        prop["enum"] = list(enum_values)
    return prop


def _number_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": "number"}
    minimum = descriptor.options.get("min")
    if minimum is not None:
        prop["min"] = minimum
    maximum = descriptor.options.get("max")
    if maximum is not None:
        # Written under its own key; earlier generators stored max under "min".
        prop["max"] = maximum
    return prop


def _boolean_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    return {"type": "boolean"}


def _date_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    return {"type": "string"}


def _object_id_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    ref = descriptor.options.get("ref")
    if ref:
        return {"$ref": f"{DEFINITIONS_PREFIX}{ref}"}
    # identity field, nothing to document
    return {}


def _opaque_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    return {"type": "object", "properties": {}}


def _array_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": "array"}
    element = descriptor.element()
    if element is None:
        return prop
    items = scope.projector._generate_item(element, scope)
    if items is not None:
        prop["items"] = items
    return prop


def _embedded_property(descriptor: FieldDescriptor, scope: _Scope) -> dict[str, Any]:
    sub_schema = _sub_schema(descriptor)
    if sub_schema is None:
        return _opaque_property(descriptor, scope)
    prop, _ = scope.projector._resolve_embedded(
        descriptor.path,
        sub_schema,
        scope,
        bubble=False,
    )
    return prop


def _embedded_item(element: FieldDescriptor, scope: _Scope) -> dict[str, Any] | None:
    sub_schema = _sub_schema(element)
    if sub_schema is None:
        return None
    prefix = _ref_name(scope.prefix, element.path) if scope.by_reference else None
    definition = scope.projector._project_schema(
        sub_schema,
        scope.nested(element.path, prefix),
        definition_id=None,
    )
    return {"type": "object", **definition}


def _sub_schema(descriptor: FieldDescriptor) -> Schema | None:
    if descriptor.schema is not None:
        return descriptor.schema
    if isinstance(descriptor.declared_type, Schema):
        return descriptor.declared_type
    return None


def _ref_name(prefix: str | None, name: str) -> str:
    if not prefix:
        return name
    return f"{prefix}_{name}"


PropertyGenerator = Callable[[FieldDescriptor, _Scope], "dict[str, Any] | None"]

_PROPERTY_GENERATORS: Mapping[str, PropertyGenerator] = MappingProxyType(
    {
        "String": _string_property,
        "Number": _number_property,
        "Boolean": _boolean_property,
        "Date": _date_property,
        "ObjectId": _object_id_property,
        "Array": _array_property,
        "Embedded": _embedded_property,
        "Mixed": _opaque_property,
        "Buffer": _opaque_property,
    }
)

# Array elements render without the object wrapper; no match leaves items unset.
_ITEM_GENERATORS: Mapping[str, PropertyGenerator] = MappingProxyType(
    {
        "String": _string_property,
        "Number": _number_property,
        "Boolean": _boolean_property,
        "Date": _date_property,
        "ObjectId": _object_id_property,
        "Array": _array_property,
        "Embedded": _embedded_item,
    }
)


def generate(
    schema: Schema,
    schema_id: str | None = None,
    object_refs: dict[str, Definition] | None = None,
    *,
    classifier: SchemaClassifier | None = None,
) -> Definition:
    projector = SchemaProjector(classifier or MongooseClassifier())
    return projector.generate(schema, schema_id, object_refs)
