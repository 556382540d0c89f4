from .classifier import MongooseClassifier, SchemaClassifier
from .projector import (
    DEFAULT_MAX_DEPTH,
    Definition,
    Projection,
    ProjectionDepthError,
    SchemaProjector,
    generate,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "Definition",
    "MongooseClassifier",
    "Projection",
    "ProjectionDepthError",
    "SchemaClassifier",
    "SchemaProjector",
    "generate",
]
