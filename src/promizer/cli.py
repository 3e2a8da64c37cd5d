from __future__ import annotations

from pathlib import Path
from typing import Optional

import json
import typer
from rich.console import Console
from rich.table import Table

from promizer.config import PromizerConfig
from promizer.domain.models import Issue
from promizer.orchestrator.pipeline import ExtractResult, run_extract
from promizer.render.markdown import render_markdown
from promizer.render.openapi import build_openapi
from promizer.utils.logging import set_level


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


def _load(
    path: str,
    workers: Optional[int] = None,
    marker: Optional[str] = None,
) -> ExtractResult:
    target = Path(path).expanduser().resolve()
    if not target.exists():
        raise typer.BadParameter(f"Path does not exist: {target}")

    try:
        config = PromizerConfig.from_env(workers=workers, marker=marker)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    set_level(config.log_level)

    return run_extract(target, config=config)


def _print_issues(issues: list[Issue]) -> None:
    if not issues:
        console.print("[bold green]No issues.[/bold green]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("SEVERITY", no_wrap=True)
    table.add_column("KIND", no_wrap=True)
    table.add_column("FILE:LINE", no_wrap=True)
    table.add_column("HANDLER")
    table.add_column("FIELD")
    table.add_column("MESSAGE")

    for i in issues:
        sev = "[red]error[/red]" if i.is_error else "[yellow]warning[/yellow]"
        table.add_row(
            sev,
            i.kind,
            f"{i.file_path}:{i.line or '-'}",
            i.handler or "-",
            i.field or "-",
            i.message,
        )
    console.print(table)


def _exit_if_strict(result: ExtractResult, strict: bool) -> None:
    if strict and result.error_count:
        console.print(f"[bold red]{result.error_count} error(s)[/bold red]")
        raise typer.Exit(code=1)


@app.command()
def extract(
    path: str = typer.Argument(..., help="Source file or directory to scan"),
    format: str = typer.Option("json", help="Output format: json|openapi"),
    out: Optional[str] = typer.Option(None, help="Output path (default: print to stdout)"),
    workers: Optional[int] = typer.Option(None, help="Files processed in parallel"),
    marker: Optional[str] = typer.Option(None, help="Tag marker word (default: promizer)"),
    title: str = typer.Option("API", help="OpenAPI info.title"),
    strict: bool = typer.Option(False, help="Exit non-zero when any error is found"),
) -> None:
    fmt = format.lower().strip()
    if fmt not in ("json", "openapi"):
        raise typer.BadParameter("format must be one of: json, openapi")

    result = _load(path, workers=workers, marker=marker)

    if fmt == "json":
        payload = result.to_mapping()
    else:
        payload = build_openapi(result.descriptors, title=title)
    text = json.dumps(payload, indent=2)

    if out:
        out_path = Path(out).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        console.print(f"[bold green]Wrote[/bold green] {fmt} to: {out_path}")
        console.print(f"Descriptors: {len(result.descriptors)}, issues: {len(result.issues)}")
    else:
        # plain stdout so the output can be piped
        typer.echo(text)

    _exit_if_strict(result, strict)


@app.command()
def validate(
    path: str = typer.Argument(..., help="Source file or directory to scan"),
    marker: Optional[str] = typer.Option(None, help="Tag marker word (default: promizer)"),
    strict: bool = typer.Option(False, help="Exit non-zero when any error is found"),
) -> None:
    result = _load(path, marker=marker)

    console.print(f"[bold green]promizer[/bold green] validate: {result.root}")
    console.print(f"Files scanned: {result.files_scanned}, annotated: {len(result.annotated_files)}")
    console.print(f"Descriptors: {len(result.descriptors)}")
    console.print("")
    _print_issues(result.issues)

    _exit_if_strict(result, strict)


@app.command("list")
def list_routes(
    path: str = typer.Argument(..., help="Source file or directory to scan"),
    marker: Optional[str] = typer.Option(None, help="Tag marker word (default: promizer)"),
    limit: int = typer.Option(200, help="Max rows to print"),
) -> None:
    result = _load(path, marker=marker)
    rows = result.descriptors

    console.print(f"[bold]Routes:[/bold] {len(rows)} (showing up to {limit})")

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("HANDLER")
    table.add_column("FILE:LINE", no_wrap=True)
    table.add_column("FORMAT", no_wrap=True)

    for d in rows[:limit]:
        a = d.annotation
        table.add_row(
            a.method,
            a.path or "-",
            d.label,
            f"{d.file_path}:{d.handler_line or d.start_line}",
            a.format,
        )

    console.print(table)


@app.command()
def docs(
    path: str = typer.Argument(..., help="Source file or directory to scan"),
    out_dir: Optional[str] = typer.Option(None, help="Directory for the .md files (default: next to each source)"),
    marker: Optional[str] = typer.Option(None, help="Tag marker word (default: promizer)"),
) -> None:
    """Write <file>_documentation.md for every annotated file."""
    result = _load(path, marker=marker)
    root = Path(result.root)

    written = 0
    for f in result.files:
        if not f.descriptors:
            continue
        src = root / f.file_path
        if out_dir:
            target = Path(out_dir).expanduser() / f"{f.file_path}_documentation.md"
        else:
            target = src.with_name(f"{src.name}_documentation.md")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(render_markdown(f.descriptors), encoding="utf-8")
        console.print(f"Documentation file created: {target}")
        written += 1

    if not written:
        console.print("[yellow]No annotated handlers found.[/yellow]")
    if result.issues:
        console.print("")
        _print_issues(result.issues)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
