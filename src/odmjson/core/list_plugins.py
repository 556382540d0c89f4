from __future__ import annotations

import time
from importlib.metadata import entry_points
from typing import Iterable

from odmjson.core import events as ev
from odmjson.core.stages import LIST_PLUGINS_STAGES
from odmjson.plugins.registry import CLASSIFIER_GROUP


def list_plugins_events() -> Iterable[ev.OdmjsonEvent]:
    yield ev.CommandStarted(command="list-plugins")

    stage_id, label = LIST_PLUGINS_STAGES[0]
    started = time.perf_counter()
    yield ev.StageStarted(command="list-plugins", stage_id=stage_id, label=label)
    classifiers = _discover(CLASSIFIER_GROUP)
    yield ev.PluginsDiscovered(command="list-plugins", kind="classifiers", plugins=classifiers)
    duration_ms = _elapsed_ms(started)
    yield ev.StageCompleted(
        command="list-plugins",
        stage_id=stage_id,
        duration_ms=duration_ms,
        status="success",
    )

    yield ev.CommandCompleted(command="list-plugins", ok=True, exit_code=0)


def _discover(group: str) -> list[dict[str, str]]:
    plugins: list[dict[str, str]] = []
    for ep in entry_points(group=group):
        plugins.append({"type_key": ep.name, "impl": ep.value})
    return plugins


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
