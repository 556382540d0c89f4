from __future__ import annotations

from pathlib import Path

import pytest

from odmjson.config.load import ConfigError, load_config
from odmjson.core.events import CommandStarted, PluginsDiscovered, Warning
from odmjson.core.list_plugins import list_plugins_events
from odmjson.plugins.registry import load_classifier


def test_load_config_missing_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Missing config"):
        load_config(tmp_path)


def test_load_config_applies_defaults(tmp_path: Path) -> None:
    (tmp_path / "odmjson.yaml").write_text("models:\n  - models.yaml\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.version == "v1"
    assert config.classifier.type == "mongoose"
    assert config.classifier.with_ == {}
    assert config.output.path == "dist/definitions.json"
    assert config.output.by_reference is False
    assert config.max_depth == 32


def test_load_config_reads_classifier_settings(tmp_path: Path) -> None:
    (tmp_path / "custom.yaml").write_text(
        "models: [a.yaml]\nclassifier:\n  type: mongoose\n  with:\n    exclude: [__v]\n",
        encoding="utf-8",
    )

    config = load_config(tmp_path, Path("custom.yaml"))

    assert config.classifier.with_ == {"exclude": ["__v"]}


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("models: []\n", "At least one model document is required"),
        ("models: [a.yaml, a.yaml]\n", "Duplicate model documents: a.yaml"),
        ("models: [a.yaml]\nmax_depth: 0\n", "max_depth"),
        ("models: [a.yaml]\nextra: true\n", "extra"),
        ("- not a mapping\n", "YAML mapping"),
        ("models: [a.yaml\n", "Failed to parse YAML"),
    ],
)
def test_load_config_rejects_invalid_documents(tmp_path: Path, body: str, message: str) -> None:
    (tmp_path / "odmjson.yaml").write_text(body, encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)


def test_load_config_error_names_file_and_field(tmp_path: Path) -> None:
    (tmp_path / "odmjson.yaml").write_text("models: [a.yaml]\nmax_depth: 0\n", encoding="utf-8")

    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)

    message = str(excinfo.value)
    assert message.startswith(f"Invalid config {tmp_path / 'odmjson.yaml'}: ")
    assert "max_depth: Input should be greater than or equal to 1" in message


def test_event_to_dict_serializes_paths() -> None:
    event = CommandStarted(
        command="generate",
        project_dir=Path("project"),
        config_path=Path("project") / "odmjson.yaml",
    )
    payload = event.to_dict()

    assert payload["type"] == "CommandStarted"
    assert payload["project_dir"] == "project"
    assert payload["config_path"] == str(Path("project") / "odmjson.yaml")


def test_warning_event_level() -> None:
    payload = Warning(command="generate", code="opaque_type", message="x").to_dict()

    assert payload["level"] == "WARNING"
    assert payload["code"] == "opaque_type"


def test_load_classifier_unknown_type() -> None:
    with pytest.raises(ValueError, match="Unknown classifier type: nope"):
        load_classifier("nope")


def test_list_plugins_events_reports_classifiers() -> None:
    events = list(list_plugins_events())

    discovered = [event for event in events if isinstance(event, PluginsDiscovered)]
    assert len(discovered) == 1
    assert discovered[0].kind == "classifiers"
    for plugin in discovered[0].plugins:
        assert set(plugin) == {"type_key", "impl"}

    completed = events[-1]
    assert completed.ok is True
    assert completed.exit_code == 0
