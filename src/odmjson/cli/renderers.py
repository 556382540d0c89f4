from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from odmjson import __version__
from odmjson.core import events as ev
from odmjson.core.stages import GENERATE_STAGES

RULE_WIDTH = 64
RULE_LINE = "-" * RULE_WIDTH
STATUS_GLYPHS = {
    "success": "✅",
    "failed": "❌",
    "skipped": "⏭",
}


def run_events(events: Iterable[ev.OdmjsonEvent], renderer: "Renderer") -> int:
    exit_code = 0
    for event in events:
        renderer.handle(event)
        if isinstance(event, ev.CommandCompleted):
            exit_code = event.exit_code
    renderer.close()
    return exit_code


class Renderer:
    def handle(self, event: ev.OdmjsonEvent) -> None:  # noqa: D401
        """Handle a single event."""

    def close(self) -> None:
        return None


class GenerateRichRenderer(Renderer):
    def __init__(self, console: Console):
        self.console = console
        self._dry_run = False
        self._projected: list[ev.ModelProjected] = []
        self._warnings: list[str] = []
        self._failure: ev.StageFailed | None = None
        self._written: ev.DefinitionsWritten | None = None

    def handle(self, event: ev.OdmjsonEvent) -> None:
        if isinstance(event, ev.CommandStarted):
            self._dry_run = bool(event.options and event.options.get("dry_run"))
            _print_header(self.console, event)
            return
        if isinstance(event, ev.StageCompleted):
            self._print_stage(event.stage_id, event.status, event.duration_ms)
            return
        if isinstance(event, ev.StageFailed):
            self._failure = event
            self._print_stage(event.stage_id, "failed", event.duration_ms)
            return
        if isinstance(event, ev.ModelProjected):
            self._projected.append(event)
            return
        if isinstance(event, ev.Warning):
            self._warnings.append(_redact(event.message))
            return
        if isinstance(event, ev.DefinitionsWritten):
            self._written = event
            return
        if isinstance(event, ev.CommandCompleted):
            self._finish(event)

    def _print_stage(self, stage_id: str, status: str, duration_ms: float) -> None:
        label = _stage_label(stage_id, GENERATE_STAGES)
        index = _stage_index(stage_id, GENERATE_STAGES)
        note = "(--dry-run)" if stage_id == "write_definitions" and self._dry_run else None
        self.console.print(
            _format_stage_line(index, label, status, duration_ms, note=note, total=len(GENERATE_STAGES))
        )

    def _finish(self, event: ev.CommandCompleted) -> None:
        if self._projected:
            table = Table(title="Models", box=box.ROUNDED, title_justify="left")
            table.add_column("MODEL", style="bold")
            table.add_column("PROPERTIES", justify="right")
            table.add_column("REQUIRED", justify="right")
            table.add_column("EMBEDDED REFS")
            for item in self._projected:
                table.add_row(
                    item.name,
                    str(item.properties),
                    str(item.required),
                    ", ".join(item.object_refs) or "-",
                )
            self.console.print(table)
        if self._warnings:
            warnings_text = Text("\n".join(f"- {warning}" for warning in self._warnings), style="orange1")
            self.console.print(
                Panel(
                    warnings_text,
                    title="[orange1]Warnings[/orange1]",
                    box=box.ROUNDED,
                    title_align="left",
                    border_style="orange1",
                )
            )
        if self._failure:
            self.console.print(_stage_failure_panel(self._failure))
        if self._written:
            self.console.print(
                f"Wrote {len(self._written.names)} definitions to {self._written.path} "
                f"({_format_bytes(self._written.bytes)})"
            )
        elif event.ok and self._dry_run:
            self.console.print("Dry run complete (no files written)")
        overall = "success" if event.ok else "failed"
        if event.ok and self._warnings:
            overall = "partial"
        self.console.print(Text.assemble(Text("Generate status: "), _status_badge(overall)))


class GeneratePlainRenderer(Renderer):
    def __init__(self, console: Console):
        self.console = console
        self._dry_run = False
        self._failure: ev.StageFailed | None = None
        self._written: ev.DefinitionsWritten | None = None
        self._warnings: list[str] = []

    def handle(self, event: ev.OdmjsonEvent) -> None:
        if isinstance(event, ev.CommandStarted):
            self._dry_run = bool(event.options and event.options.get("dry_run"))
            _print_header(self.console, event)
            return
        if isinstance(event, ev.StageStarted):
            label = _stage_label(event.stage_id, GENERATE_STAGES)
            index = _stage_index(event.stage_id, GENERATE_STAGES)
            self._print(_format_stage_start_line(index, label, len(GENERATE_STAGES)))
            return
        if isinstance(event, ev.StageCompleted):
            label = _stage_label(event.stage_id, GENERATE_STAGES)
            index = _stage_index(event.stage_id, GENERATE_STAGES)
            note = None
            if event.stage_id == "write_definitions" and event.status == "skipped" and self._dry_run:
                note = "(--dry-run)"
            line = _format_stage_line(
                index,
                label,
                event.status,
                event.duration_ms,
                note=note,
                total=len(GENERATE_STAGES),
                include_status_word=True,
            )
            self._print(line)
            return
        if isinstance(event, ev.StageFailed):
            label = _stage_label(event.stage_id, GENERATE_STAGES)
            index = _stage_index(event.stage_id, GENERATE_STAGES)
            line = _format_stage_line(
                index,
                label,
                "failed",
                event.duration_ms,
                total=len(GENERATE_STAGES),
                include_status_word=True,
            )
            details = []
            if event.message:
                details.append(f"FAIL: {_redact(event.message)}")
            if event.hint:
                details.append(f"HINT: {_redact(event.hint)}")
            if details:
                line = f"{line}\n" + "\n".join(details)
            self._print(line)
            self._failure = event
            return
        if isinstance(event, ev.ModelsLoaded):
            self._print(f"MODELS {event.path}: {', '.join(event.models)}")
            return
        if isinstance(event, ev.ClassifierResolved):
            self._print(f"Classifier: {event.type_key} ({event.impl})")
            return
        if isinstance(event, ev.ModelProjected):
            refs = f" refs={','.join(event.object_refs)}" if event.object_refs else ""
            self._print(
                f"MODEL OK {event.name} properties={event.properties} required={event.required}{refs}"
            )
            return
        if isinstance(event, ev.Warning):
            self._warnings.append(_redact(event.message))
            self._print(f"WARN {event.code}: {_redact(event.message)}")
            return
        if isinstance(event, ev.DefinitionsWritten):
            self._written = event
            return
        if isinstance(event, ev.CommandCompleted):
            self._finish(event)

    def _finish(self, event: ev.CommandCompleted) -> None:
        if not event.ok:
            if self._failure:
                self._print(f"Error: {_redact(self._failure.message)}")
            self._print("GENERATE FAIL")
            return
        if self._dry_run:
            self._print("Dry run complete (no files written)")
        elif self._written:
            self._print(
                f"DEFINITIONS OK {self._written.path} ({_format_bytes(self._written.bytes)})"
            )
        self._print("GENERATE OK")

    def _print(self, line: str) -> None:
        self.console.print(line, markup=False, highlight=False)


class GenerateJsonRenderer(Renderer):
    def __init__(self, console: Console):
        self.console = console
        self._stages: dict[str, str] = {}
        self._warnings: list[dict[str, str]] = []
        self._errors: list[dict[str, str]] = []
        self._models: list[dict[str, Any]] = []
        self._definitions: dict[str, Any] = {}
        self._output: str | None = None

    def handle(self, event: ev.OdmjsonEvent) -> None:
        if isinstance(event, ev.StageCompleted):
            self._stages[event.stage_id] = event.status
            return
        if isinstance(event, ev.StageFailed):
            self._stages[event.stage_id] = "failed"
            self._errors.append(
                {
                    "stage": event.stage_id,
                    "code": event.error_code,
                    "message": _redact(event.message),
                }
            )
            return
        if isinstance(event, ev.Warning):
            self._warnings.append({"code": event.code, "message": _redact(event.message)})
            return
        if isinstance(event, ev.ModelProjected):
            self._models.append(
                {
                    "name": event.name,
                    "properties": event.properties,
                    "required": event.required,
                    "object_refs": event.object_refs,
                }
            )
            return
        if isinstance(event, ev.DefinitionsBuilt):
            self._definitions = event.definitions
            return
        if isinstance(event, ev.DefinitionsWritten):
            self._output = str(event.path) if event.path else None
            return
        if isinstance(event, ev.CommandCompleted):
            payload = {
                "ok": event.ok,
                "stages": self._stages,
                "models": self._models,
                "warnings": self._warnings,
                "errors": self._errors,
                "output": self._output,
                "definitions": self._definitions,
            }
            _print_json(self.console, payload)


class ListPluginsRichRenderer(Renderer):
    def __init__(self, console: Console):
        self.console = console

    def handle(self, event: ev.OdmjsonEvent) -> None:
        if isinstance(event, ev.CommandStarted):
            _print_header(self.console, event)
            return
        if isinstance(event, ev.PluginsDiscovered):
            table = Table(title=f"{event.kind} plugins", box=box.ROUNDED, title_justify="left")
            table.add_column("TYPE", style="bold")
            table.add_column("IMPL")
            for plugin in event.plugins:
                table.add_row(plugin["type_key"], plugin["impl"])
            self.console.print(table)


class ListPluginsPlainRenderer(Renderer):
    def __init__(self, console: Console):
        self.console = console

    def handle(self, event: ev.OdmjsonEvent) -> None:
        if isinstance(event, ev.CommandStarted):
            _print_header(self.console, event)
            return
        if isinstance(event, ev.PluginsDiscovered):
            self.console.print(f"{event.kind} plugins:")
            for plugin in event.plugins:
                self.console.print(f"- {plugin['type_key']}: {plugin['impl']}")


class ListPluginsJsonRenderer(Renderer):
    def __init__(self, console: Console):
        self.console = console
        self._plugins: dict[str, list[dict[str, str]]] = {}

    def handle(self, event: ev.OdmjsonEvent) -> None:
        if isinstance(event, ev.PluginsDiscovered):
            self._plugins[event.kind] = event.plugins
        if isinstance(event, ev.CommandCompleted):
            _print_json(self.console, {"ok": event.ok, "plugins": self._plugins})


def _format_duration(elapsed_ms: float) -> str:
    if elapsed_ms < 1000:
        return f"{elapsed_ms:.0f}ms"
    seconds = elapsed_ms / 1000
    if seconds < 10:
        return f"{seconds:.2f}s"
    return f"{seconds:.1f}s"


def _format_bytes(num: int) -> str:
    size = float(num)
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024 or unit == "GB":
            if unit == "B":
                return f"{size:.0f} {unit}"
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def _print_header(console: Console, event: ev.CommandStarted) -> None:
    if event.project_dir is None:
        console.print(f"odmjson v{__version__}\n{RULE_LINE}")
        return
    config = event.config_path or Path("odmjson.yaml")
    console.print(f"odmjson v{__version__} | project: {event.project_dir} | config: {config}\n{RULE_LINE}")


_REDACT_PATTERN = re.compile(
    r"(?i)\b(authorization|token|secret|password|api_key)\b\s*[:=]\s*[^\s]+"
)


def _redact(text: str) -> str:
    if not text:
        return text
    return _REDACT_PATTERN.sub(r"\1: <redacted>", text)


def _format_stage_line(
    index: int,
    label: str,
    status: str,
    elapsed_ms: float,
    *,
    total: int,
    note: str | None = None,
    include_status_word: bool = False,
) -> str:
    glyph = STATUS_GLYPHS.get(status, "?")
    if include_status_word:
        suffix = f" {_status_word(status)}"
    else:
        suffix = "" if status == "success" else f" {status}"
    if note:
        suffix = f"{suffix} {note}".rstrip()
    padding = "." * max(2, 28 - len(label))
    return f"[{index}/{total}] {label} {padding} {glyph}{suffix}  {_format_duration(elapsed_ms)}"


def _format_stage_start_line(index: int, label: str, total: int) -> str:
    padding = "." * max(2, 28 - len(label))
    return f"[{index}/{total}] {label} {padding} START"


def _stage_label(stage_id: str, mapping: list[tuple[str, str]]) -> str:
    for key, label in mapping:
        if key == stage_id:
            return label
    return stage_id


def _stage_index(stage_id: str, mapping: list[tuple[str, str]]) -> int:
    for index, (key, _label) in enumerate(mapping, start=1):
        if key == stage_id:
            return index
    return 0


def _status_word(status: str) -> str:
    return {"success": "OK", "failed": "FAIL", "skipped": "SKIP"}.get(status, status.upper())


def _status_badge(status: str) -> Text:
    label, style = {
        "success": ("ok", "bold black on green3"),
        "failed": ("fail", "bold white on red3"),
        "partial": ("partial", "bold black on dark_orange3"),
    }[status]
    return Text(f" {label} ", style=style)


def _stage_failure_panel(event: ev.StageFailed) -> Panel:
    lines = [f"[bold]{event.error_code or 'error'}[/bold]: {escape(_redact(event.message))}"]
    if event.hint:
        lines.append(f"hint: {escape(_redact(event.hint))}")
    return Panel("\n".join(lines), title="Error", box=box.ROUNDED, title_align="left", border_style="red")


def _print_json(console: Console, payload: dict[str, Any]) -> None:
    console.print(
        json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )
