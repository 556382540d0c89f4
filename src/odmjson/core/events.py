from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class OdmjsonEvent:
    ts: float = field(default_factory=time.perf_counter)
    level: str = "INFO"
    command: str = ""
    type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return _serialize(asdict(self))


@dataclass(frozen=True)
class CommandStarted(OdmjsonEvent):
    type: str = "CommandStarted"
    project_dir: Path | None = None
    config_path: Path | None = None
    options: dict[str, Any] | None = None


@dataclass(frozen=True)
class CommandCompleted(OdmjsonEvent):
    type: str = "CommandCompleted"
    ok: bool = True
    exit_code: int = 0


@dataclass(frozen=True)
class StageStarted(OdmjsonEvent):
    type: str = "StageStarted"
    stage_id: str = ""
    label: str = ""


@dataclass(frozen=True)
class StageProgress(OdmjsonEvent):
    type: str = "StageProgress"
    stage_id: str = ""
    current: int = 0
    total: int = 0
    note: str | None = None


@dataclass(frozen=True)
class StageCompleted(OdmjsonEvent):
    type: str = "StageCompleted"
    stage_id: str = ""
    duration_ms: float = 0.0
    status: str = "success"


@dataclass(frozen=True)
class StageFailed(OdmjsonEvent):
    type: str = "StageFailed"
    stage_id: str = ""
    duration_ms: float = 0.0
    error_code: str = ""
    message: str = ""
    hint: str | None = None


@dataclass(frozen=True)
class Warning(OdmjsonEvent):
    type: str = "Warning"
    level: str = "WARNING"
    code: str = ""
    message: str = ""
    hint: str | None = None


@dataclass(frozen=True)
class ModelsLoaded(OdmjsonEvent):
    type: str = "ModelsLoaded"
    path: Path | None = None
    models: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ClassifierResolved(OdmjsonEvent):
    type: str = "ClassifierResolved"
    type_key: str = ""
    impl: str = ""


@dataclass(frozen=True)
class ModelProjected(OdmjsonEvent):
    type: str = "ModelProjected"
    name: str = ""
    properties: int = 0
    required: int = 0
    object_refs: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DefinitionsBuilt(OdmjsonEvent):
    type: str = "DefinitionsBuilt"
    definitions: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DefinitionsWritten(OdmjsonEvent):
    type: str = "DefinitionsWritten"
    path: Path | None = None
    bytes: int = 0
    names: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PluginsDiscovered(OdmjsonEvent):
    type: str = "PluginsDiscovered"
    kind: str = ""
    plugins: list[dict[str, Any]] = field(default_factory=list)


def _serialize(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_serialize(item) for item in value]
    return value
