"""
recordgraph CLI: Main Entry Point

Usage:
    recordgraph normalize artifact.json response.json --variables '{"first": 10}'
    recordgraph normalize artifact.json response.json --precise --json
    recordgraph version
"""

import json as json_lib
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from recordgraph import __version__
from recordgraph.errors import NormalizationError
from recordgraph.normalizer import CollectingDiagnostics, NormalizationOptions, normalize
from recordgraph.selection import create_normalization_selector, load_operation
from recordgraph.store import ROOT_ID, ROOT_TYPE, InMemoryRecordSource, Record
from recordgraph.utils.logging_setup import setup_logging

app = typer.Typer(
    name="recordgraph",
    help="Normalize GraphQL-style responses into a flat record store",
    no_args_is_help=True,
)

console = Console()

_ENVELOPE_KEYS = {"data", "errors", "extensions", "label", "path"}


def _read_json(path: Path, what: str) -> Any:
    try:
        return json_lib.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]✗ Could not read {what}:[/red] {path} ({e})")
        raise typer.Exit(1)


def _response_data(response: Any) -> Any:
    """Accept either a bare `data` object or a full {"data": ..., "errors": ...} envelope."""
    if isinstance(response, dict) and "data" in response and set(response) <= _ENVELOPE_KEYS:
        return response["data"]
    return response


def _records_table(snapshot: Dict[str, Dict[str, Any]]) -> Table:
    table = Table(title=f"Records ({len(snapshot)})")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Fields")
    for data_id, fields in snapshot.items():
        rendered = ", ".join(
            f"{key}={json_lib.dumps(value)}"
            for key, value in fields.items()
            if key not in ("__id", "__typename")
        )
        table.add_row(escape(data_id), escape(str(fields.get("__typename"))), escape(rendered))
    return table


@app.callback()
def main_callback():
    """recordgraph: response normalization toolkit."""
    setup_logging()


@app.command("normalize")
def normalize_command(
    artifact: Path = typer.Argument(..., help="Compiled query artifact (JSON)"),
    payload: Path = typer.Argument(..., help="Server response (JSON)"),
    root_id: str = typer.Option(ROOT_ID, "--root-id", help="Record the payload is written under"),
    root_type: str = typer.Option(ROOT_TYPE, "--root-type", help="Type of the root record"),
    variables: str = typer.Option("{}", "--variables", "-v", help="Operation variables as JSON"),
    precise: Optional[bool] = typer.Option(
        None,
        "--precise/--legacy",
        help="Abstract type refinement policy (defaults to configuration)",
    ),
    treat_missing_as_null: bool = typer.Option(
        False,
        "--treat-missing-as-null",
        help="Store absent fields as null",
    ),
    json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Normalize a response payload and print the resulting records."""
    try:
        node = load_operation(_read_json(artifact, "artifact"))
    except ValidationError as e:
        console.print(f"[red]✗ Invalid artifact:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    try:
        variable_values = json_lib.loads(variables)
    except ValueError as e:
        console.print(f"[red]✗ Invalid --variables:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    data = _response_data(_read_json(payload, "payload"))
    source = InMemoryRecordSource.with_root(precise_type_refinement=precise)
    if root_id != ROOT_ID:
        source.set(root_id, Record(root_id, root_type))

    diagnostics = CollectingDiagnostics()
    options = NormalizationOptions(
        treat_missing_fields_as_null=treat_missing_as_null,
        diagnostics=diagnostics,
    )
    try:
        result = normalize(
            source,
            create_normalization_selector(node, root_id, variable_values),
            data,
            options,
        )
    except NormalizationError as e:
        console.print(f"[red]✗ Normalization failed:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    snapshot = source.to_json()
    if json:
        output = {
            "records": snapshot,
            "field_payloads": [p.model_dump() for p in result.field_payloads],
            "incremental_placeholders": [
                {"kind": p.kind, "label": p.label, "path": p.path}
                for p in result.incremental_placeholders
            ],
            "module_import_payloads": [
                {"data_id": p.data_id, "operation_reference": p.operation_reference, "path": p.path}
                for p in result.module_import_payloads
            ],
            "diagnostics": [
                {"kind": d.kind.value, "message": d.message} for d in diagnostics.diagnostics
            ],
        }
        typer.echo(json_lib.dumps(output, indent=2, default=str))
        return

    console.print(_records_table(snapshot))
    console.print(
        f"Handles: {len(result.field_payloads)}  "
        f"Placeholders: {len(result.incremental_placeholders)}  "
        f"Module imports: {len(result.module_import_payloads)}  "
        f"Actor payloads: {len(result.actor_payloads)}"
    )
    if diagnostics.diagnostics:
        console.print(f"\n[yellow]⚠ {len(diagnostics.diagnostics)} diagnostic(s):[/yellow]")
        for d in diagnostics.diagnostics:
            console.print(escape(f"  [{d.kind.value}] {d.message}"))
    else:
        console.print("[green]✓[/green] No diagnostics")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]recordgraph[/bold] v{__version__}")


if __name__ == "__main__":
    app()
