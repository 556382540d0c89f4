from .load import (
    ModelLoadError,
    build_schema,
    load_models,
    validate_models_document,
)
from .model import FieldDescriptor, Schema

__all__ = [
    "FieldDescriptor",
    "ModelLoadError",
    "Schema",
    "build_schema",
    "load_models",
    "validate_models_document",
]
