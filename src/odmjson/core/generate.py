from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Iterable

from odmjson.config.load import ConfigError, load_config
from odmjson.config.model import Config
from odmjson.core import events as ev
from odmjson.plugins.registry import load_classifier
from odmjson.projection.classifier import MongooseClassifier, SchemaClassifier
from odmjson.projection.projector import ProjectionDepthError, SchemaProjector
from odmjson.schema.load import ModelLoadError, load_models
from odmjson.schema.model import Schema

BUILTIN_CLASSIFIER = "mongoose"
_BUILTIN_IMPL = "odmjson.projection.classifier:MongooseClassifier"


def generate_events(
    *,
    project_dir: Path,
    config_path: Path | None = None,
    output_path: Path | None = None,
    by_reference: bool | None = None,
    dry_run: bool = False,
) -> Iterable[ev.OdmjsonEvent]:
    project_dir = project_dir.resolve()
    config_path = config_path or Path("odmjson.yaml")
    if not config_path.is_absolute():
        config_path = project_dir / config_path

    options = {
        "output_path": str(output_path) if output_path else None,
        "by_reference": by_reference,
        "dry_run": dry_run,
    }
    yield ev.CommandStarted(
        command="generate",
        project_dir=project_dir,
        config_path=config_path,
        options=options,
    )

    yield ev.StageStarted(command="generate", stage_id="load_config", label="Load config")
    started = time.perf_counter()
    try:
        config = load_config(project_dir, config_path)
    except (ConfigError, ValueError) as exc:
        duration_ms = _elapsed_ms(started)
        yield ev.StageFailed(
            command="generate",
            stage_id="load_config",
            duration_ms=duration_ms,
            error_code="config_error",
            message=str(exc),
        )
        yield ev.CommandCompleted(command="generate", ok=False, exit_code=2)
        return
    duration_ms = _elapsed_ms(started)
    yield ev.StageCompleted(
        command="generate",
        stage_id="load_config",
        duration_ms=duration_ms,
        status="success",
    )

    models_result = _run_stage_load_models(project_dir, config)
    yield from models_result.events
    if models_result.failed:
        yield ev.CommandCompleted(command="generate", ok=False, exit_code=2)
        return
    models: dict[str, Schema] = models_result.value or {}

    yield ev.StageStarted(
        command="generate", stage_id="resolve_classifier", label="Resolve classifier"
    )
    started = time.perf_counter()
    try:
        classifier, impl = _resolve_classifier(config)
    except Exception as exc:  # noqa: BLE001
        duration_ms = _elapsed_ms(started)
        yield ev.StageFailed(
            command="generate",
            stage_id="resolve_classifier",
            duration_ms=duration_ms,
            error_code="plugin_error",
            message=str(exc),
            hint=_classifier_hint(config, exc),
        )
        yield ev.CommandCompleted(command="generate", ok=False, exit_code=2)
        return
    yield ev.ClassifierResolved(command="generate", type_key=config.classifier.type, impl=impl)
    duration_ms = _elapsed_ms(started)
    yield ev.StageCompleted(
        command="generate",
        stage_id="resolve_classifier",
        duration_ms=duration_ms,
        status="success",
    )

    reference_mode = config.output.by_reference if by_reference is None else by_reference
    projection_result = _run_stage_project_models(
        models,
        classifier,
        by_reference=reference_mode,
        max_depth=config.max_depth,
    )
    yield from projection_result.events
    if projection_result.failed:
        yield ev.CommandCompleted(command="generate", ok=False, exit_code=2)
        return
    document: dict[str, Any] = projection_result.value or {"definitions": {}}
    yield ev.DefinitionsBuilt(command="generate", definitions=document["definitions"])

    target = _resolve_output_path(project_dir, config, output_path)
    if dry_run:
        yield ev.StageCompleted(
            command="generate",
            stage_id="write_definitions",
            duration_ms=0.0,
            status="skipped",
        )
        yield ev.CommandCompleted(command="generate", ok=True, exit_code=0)
        return

    write_result = _run_stage_write_definitions(target, document)
    yield from write_result.events
    if write_result.failed:
        yield ev.CommandCompleted(command="generate", ok=False, exit_code=2)
        return
    yield ev.CommandCompleted(command="generate", ok=True, exit_code=0)


class _StageResultWithEvents:
    def __init__(
        self,
        events: list[ev.OdmjsonEvent],
        value: Any | None = None,
        failed: bool = False,
    ):
        self.events = events
        self.value = value
        self.failed = failed


def _run_stage_load_models(project_dir: Path, config: Config) -> _StageResultWithEvents:
    started = time.perf_counter()
    events: list[ev.OdmjsonEvent] = [
        ev.StageStarted(command="generate", stage_id="load_models", label="Load models")
    ]
    models: dict[str, Schema] = {}
    total = len(config.models)
    for index, raw_path in enumerate(config.models, start=1):
        path = Path(raw_path)
        if not path.is_absolute():
            path = project_dir / path
        try:
            loaded = load_models(path)
            clashes = sorted(set(loaded) & set(models))
            if clashes:
                raise ModelLoadError(f"Duplicate model names in {path}: {', '.join(clashes)}")
        except ModelLoadError as exc:
            duration_ms = _elapsed_ms(started)
            events.append(
                ev.StageFailed(
                    command="generate",
                    stage_id="load_models",
                    duration_ms=duration_ms,
                    error_code="model_error",
                    message=str(exc),
                )
            )
            return _StageResultWithEvents(events=events, failed=True)
        models.update(loaded)
        events.append(ev.ModelsLoaded(command="generate", path=path, models=list(loaded)))
        events.append(
            ev.StageProgress(
                command="generate",
                stage_id="load_models",
                current=index,
                total=total,
            )
        )

    duration_ms = _elapsed_ms(started)
    events.append(
        ev.StageCompleted(
            command="generate",
            stage_id="load_models",
            duration_ms=duration_ms,
            status="success",
        )
    )
    return _StageResultWithEvents(events=events, value=models)


def _resolve_classifier(config: Config) -> tuple[SchemaClassifier, str]:
    kind = config.classifier.type
    if kind == BUILTIN_CLASSIFIER:
        return MongooseClassifier(**config.classifier.with_), _BUILTIN_IMPL
    classifier_cls = load_classifier(kind)
    impl = f"{classifier_cls.__module__}:{classifier_cls.__qualname__}"
    return classifier_cls(**config.classifier.with_), impl


def _classifier_hint(config: Config, exc: Exception) -> str:
    if isinstance(exc, TypeError):
        return "Check the classifier.with settings in odmjson.yaml."
    return f"Install a package exposing '{config.classifier.type}' as an odmjson.classifiers entry point."


def _run_stage_project_models(
    models: dict[str, Schema],
    classifier: SchemaClassifier,
    *,
    by_reference: bool,
    max_depth: int,
) -> _StageResultWithEvents:
    started = time.perf_counter()
    events: list[ev.OdmjsonEvent] = [
        ev.StageStarted(command="generate", stage_id="project_models", label="Project models")
    ]
    fallbacks: list[tuple[str, str]] = []
    projector = SchemaProjector(
        classifier,
        max_depth=max_depth,
        on_fallback=lambda path, canonical: fallbacks.append((path, canonical)),
    )

    definitions: dict[str, Any] = {}
    hoisted: dict[str, Any] = {}
    total = len(models)
    for index, (name, schema) in enumerate(models.items(), start=1):
        fallbacks.clear()
        try:
            projection = projector.project(schema, name, by_reference=by_reference)
        except ProjectionDepthError as exc:
            events.append(
                _projection_failed(
                    started,
                    f"{name}: {exc}",
                    hint="Check the model for cyclic sub-documents or raise max_depth.",
                )
            )
            return _StageResultWithEvents(events=events, failed=True)
        except Exception as exc:  # noqa: BLE001
            events.append(
                _projection_failed(
                    started,
                    f"{name}: {type(exc).__name__}: {exc}",
                    hint=f"The '{type(classifier).__name__}' classifier failed on this model.",
                )
            )
            return _StageResultWithEvents(events=events, failed=True)

        for path, canonical in fallbacks:
            events.append(
                ev.Warning(
                    command="generate",
                    code="opaque_type",
                    message=f"{name}.{path}: unrecognized type '{canonical}' rendered as an opaque object",
                )
            )
        definitions[name] = projection.definition
        ref_names: list[str] = []
        for ref_name, definition in projection.object_refs:
            if ref_name in ref_names:
                continue
            ref_names.append(ref_name)
            if ref_name in hoisted and hoisted[ref_name] != definition:
                events.append(
                    ev.Warning(
                        command="generate",
                        code="ref_collision",
                        message=f"{name}: embedded definition '{ref_name}' differs from one already hoisted by another model; keeping the first.",
                    )
                )
                continue
            hoisted.setdefault(ref_name, definition)
        events.append(
            ev.ModelProjected(
                command="generate",
                name=name,
                properties=len(projection.definition["properties"]),
                required=len(projection.definition.get("required", [])),
                object_refs=ref_names,
            )
        )
        events.append(
            ev.StageProgress(
                command="generate",
                stage_id="project_models",
                current=index,
                total=total,
            )
        )

    for ref_name, definition in hoisted.items():
        if ref_name in definitions:
            events.append(
                ev.Warning(
                    command="generate",
                    code="ref_collision",
                    message=f"Embedded definition '{ref_name}' collides with a model of the same name; keeping the model.",
                )
            )
            continue
        definitions[ref_name] = definition

    duration_ms = _elapsed_ms(started)
    events.append(
        ev.StageCompleted(
            command="generate",
            stage_id="project_models",
            duration_ms=duration_ms,
            status="success",
        )
    )
    return _StageResultWithEvents(events=events, value={"definitions": definitions})


def _projection_failed(started: float, message: str, *, hint: str) -> ev.StageFailed:
    return ev.StageFailed(
        command="generate",
        stage_id="project_models",
        duration_ms=_elapsed_ms(started),
        error_code="projection_error",
        message=message,
        hint=hint,
    )


def _run_stage_write_definitions(target: Path, document: dict[str, Any]) -> _StageResultWithEvents:
    started = time.perf_counter()
    events: list[ev.OdmjsonEvent] = [
        ev.StageStarted(command="generate", stage_id="write_definitions", label="Write definitions")
    ]
    payload = _stable_json_text(document).encode("utf-8")
    try:
        if target.is_dir():
            raise OSError(f"Output path is a directory: {target}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
    except OSError as exc:
        duration_ms = _elapsed_ms(started)
        events.append(
            ev.StageFailed(
                command="generate",
                stage_id="write_definitions",
                duration_ms=duration_ms,
                error_code="write_error",
                message=f"Failed to write definitions: {exc}",
            )
        )
        return _StageResultWithEvents(events=events, failed=True)

    events.append(
        ev.DefinitionsWritten(
            command="generate",
            path=target,
            bytes=len(payload),
            names=sorted(document["definitions"]),
        )
    )
    duration_ms = _elapsed_ms(started)
    events.append(
        ev.StageCompleted(
            command="generate",
            stage_id="write_definitions",
            duration_ms=duration_ms,
            status="success",
        )
    )
    return _StageResultWithEvents(events=events)


def _resolve_output_path(project_dir: Path, config: Config, override: Path | None) -> Path:
    target = override or Path(config.output.path)
    if not target.is_absolute():
        target = project_dir / target
    return target


def _stable_json_text(data: dict[str, Any]) -> str:
    payload = json.dumps(data, sort_keys=True, indent=2, ensure_ascii=False)
    return f"{payload}\n"


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
