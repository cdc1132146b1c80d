"""Typer CLI entrypoint for the placement core."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from pydantic import ValidationError

from .container import create_container
from .logging import configure_logging
from .schemas.config import load_config

app = typer.Typer(help="Placement portal core CLI.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    with config.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Config file must be a YAML object", param_name="config")
    try:
        return load_config(loaded).to_settings()
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="config") from exc


@app.command()
def run(
    commands: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Commands JSONL path."),
    output: Path = typer.Option(
        ...,
        exists=False,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
        help="Output JSON path.",
    ),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
) -> None:
    """Replay portal commands against a fresh in-memory store."""
    settings = _load_settings(config)

    configure_logging(log_level)

    container = create_container(settings=settings, audit_path=audit_log)
    pipeline = container.pipeline()

    results = pipeline.run(commands_path=commands, output_path=output)
    failed = sum(1 for item in results if not item["ok"])
    typer.echo(f"Processed {len(results)} commands ({failed} failed). Results saved to {output}.")


@app.command()
def score(
    snapshot: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Profile snapshot JSON path."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
) -> None:
    """Print the employability score breakdown for one profile snapshot."""
    settings = _load_settings(config)
    container = create_container(settings=settings)
    portal = container.portal()

    payload = json.loads(snapshot.read_text(encoding="utf-8"))
    try:
        breakdown = portal.score_breakdown(payload)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="snapshot") from exc
    typer.echo(json.dumps(asdict(breakdown), ensure_ascii=False))


@app.command()
def hierarchy(
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
) -> None:
    """Print who approves whom, and at which scope."""
    settings = _load_settings(config)
    registry = create_container(settings=settings).registry()
    for row in registry.hierarchy():
        approver = row["approver"] or "-"
        typer.echo(f"{row['role']:<20} {approver:<20} {row['scope']}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
