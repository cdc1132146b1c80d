"""Batch replay of portal commands from JSON lines."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import pendulum
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import __version__
from .core import PlacementError
from .schemas import IdentityContext

if TYPE_CHECKING:
    from .adapters import InMemoryNotificationSink
    from .portal import PlacementPortal


class Command(BaseModel):
    """One portal call: operation name, caller identity and arguments."""

    op: str
    identity: IdentityContext | None = Field(default=None, alias="as")
    args: dict[str, Any] = Field(default_factory=dict)
    ref: str | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CommandLoadError(ValueError):
    """Raised when command loading encounters invalid records."""

    def __init__(self, errors: list[str], partial: list[Command]):
        super().__init__("Command loading failed")
        self.errors = errors
        self.partial = partial

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Command loading failed: {self.errors}"


class CommandLoader:
    """Load and validate commands from a JSONL file."""

    def __init__(self, operations: set[str]):
        self._operations = operations

    def load(self, path: Path) -> list[Command]:
        commands: list[Command] = []
        errors: list[str] = []
        with path.open("r", encoding="utf-8") as handle:
            for idx, line in enumerate(handle, start=1):
                raw = line.strip()
                if not raw or raw.startswith("#"):
                    continue
                try:
                    record = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(f"line {idx}: invalid JSON ({exc})")
                    continue
                try:
                    command = Command.model_validate(record)
                except ValidationError as exc:
                    errors.append(f"line {idx}: {exc.errors()[0]['msg']}")
                    continue
                if command.op not in self._operations:
                    errors.append(f"line {idx}: unsupported op '{command.op}'")
                    continue
                commands.append(command)
        if errors:
            raise CommandLoadError(errors, commands)
        return commands


class OutputWriter:
    """Persist replay outcomes."""

    def write(self, path: Path, payload: dict | list[dict]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default),
            encoding="utf-8",
        )


class CommandPipeline:
    """Runs commands through the portal, one outcome per command.

    A failing command is recorded with its error code and the run moves on;
    failures never abort the batch. A command's ``ref`` names its result so
    later arguments can refer to its id as ``"$name"`` or to any result
    field as ``"$name.field"``.
    """

    def __init__(
        self,
        *,
        portal: "PlacementPortal",
        sink: "InMemoryNotificationSink | None" = None,
        loader: CommandLoader | None = None,
        writer: OutputWriter | None = None,
    ) -> None:
        self._portal = portal
        self._sink = sink
        self._handlers: dict[str, Callable[[IdentityContext | None, dict[str, Any]], Any]] = {
            "submit": lambda who, a: portal.submit(_need(who), a["entity"]),
            "approve": lambda who, a: portal.approve(_need(who), a["entity_id"], a["expected_version"]),
            "reject": lambda who, a: portal.reject(
                _need(who), a["entity_id"], a.get("reason", ""), a["expected_version"]
            ),
            "pending_approvals": lambda who, a: portal.pending_approvals(_need(who)),
            "register_student": lambda who, a: portal.register_student(_need(who), **a),
            "update_profile": lambda who, a: portal.update_profile(
                _need(who), a["changes"], a["expected_version"]
            ),
            "issue_certificate": lambda who, a: portal.issue_certificate(_need(who), **a),
            "recompute_score": lambda who, a: portal.recompute_score(a["student_id"]),
            "score": lambda who, a: portal.score_breakdown(a["snapshot"]),
            "post_opportunity": lambda who, a: portal.post_opportunity(_need(who), **a),
            "close_opportunity": lambda who, a: portal.close_opportunity(_need(who), **a),
            "apply": lambda who, a: portal.apply(_need(who), a["opportunity_id"]),
            "transition": lambda who, a: portal.transition(_need(who), **a),
            "schedule_interview": lambda who, a: portal.schedule_interview(_need(who), **a),
            "complete_interview": lambda who, a: portal.complete_interview(_need(who), **a),
            "cancel_interview": lambda who, a: portal.cancel_interview(_need(who), **a),
        }
        self._loader = loader or CommandLoader(set(self._handlers))
        self._writer = writer or OutputWriter()
        self._logger = structlog.get_logger(__name__)

    def execute(self, commands: list[Command]) -> list[dict[str, Any]]:
        refs: dict[str, Any] = {}
        outcomes: list[dict[str, Any]] = []
        for index, command in enumerate(commands):
            outcome: dict[str, Any] = {"index": index, "op": command.op, "ref": command.ref}
            try:
                args = _resolve_refs(command.args, refs)
                result = self._handlers[command.op](command.identity, args)
            except PlacementError as exc:
                outcome.update(ok=False, error=exc.to_dict())
                self._logger.warning(
                    "command.failed",
                    index=index,
                    op=command.op,
                    code=exc.code,
                    retryable=exc.retryable,
                )
            except (KeyError, TypeError, ValueError) as exc:
                outcome.update(
                    ok=False,
                    error={
                        "code": "invalid_command",
                        "message": str(exc),
                        "retryable": False,
                        "context": {},
                    },
                )
                self._logger.warning("command.invalid", index=index, op=command.op, error=str(exc))
            else:
                serialized = _serialize(result)
                outcome.update(ok=True, result=serialized)
                if command.ref:
                    refs[command.ref] = serialized
                self._logger.info("command.ok", index=index, op=command.op)
            outcomes.append(outcome)
        return outcomes

    def run(self, *, commands_path: Path, output_path: Path) -> list[dict[str, Any]]:
        load_errors: list[str] = []
        try:
            commands = self._loader.load(commands_path)
        except CommandLoadError as exc:
            commands = exc.partial
            load_errors.extend(exc.errors)
            self._logger.warning("commands.partial_load", errors=exc.errors)

        outcomes = self.execute(commands)
        notifications = (
            [event.model_dump(mode="json") for event in self._sink.events] if self._sink else []
        )
        metadata = {
            "command_count": len(commands),
            "succeeded": sum(1 for item in outcomes if item["ok"]),
            "failed": sum(1 for item in outcomes if not item["ok"]),
            "errors": load_errors,
            "timestamp": pendulum.now().to_iso8601_string(),
            "app_version": __version__,
            "score_version": self._portal.score_engine.version,
        }
        self._writer.write(
            output_path,
            {"metadata": metadata, "results": outcomes, "notifications": notifications},
        )
        return outcomes


def _need(identity: IdentityContext | None) -> IdentityContext:
    if identity is None:
        raise ValueError("command requires an 'as' identity")
    return identity


def _resolve_refs(value: Any, refs: dict[str, Any]) -> Any:
    if isinstance(value, str) and value.startswith("$"):
        name, _, field = value[1:].partition(".")
        target = refs.get(name)
        if not isinstance(target, dict) or (field or "id") not in target:
            raise KeyError(f"unknown reference {value!r}")
        return target[field or "id"]
    if isinstance(value, dict):
        return {key: _resolve_refs(item, refs) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_refs(item, refs) for item in value]
    return value


def _serialize(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if is_dataclass(result):
        return asdict(result)
    if isinstance(result, list):
        return [_serialize(item) for item in result]
    if isinstance(result, str):
        return {"id": result}
    return result


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
