"""Main Typer application for the destined pipeline.

Entry point: ``destined`` (configured via pyproject.toml scripts).

Commands: send-event, rules, match.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from destined.config import DestinedSettings
from destined.core.matcher import explain, match
from destined.core.system import DestinedSystem, build_default_config
from destined.models.rules import DEFAULT_RULES, Rule, RuleDefinitionError, load_rules

app = typer.Typer(
    name="destined",
    help="Destined: route job-completion outcomes to their destinations.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def configure_logging(level: str) -> None:
    """Send log records through rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load(rules_file: Path | None, console: Console) -> list[Rule]:
    if rules_file is None:
        return list(DEFAULT_RULES)
    try:
        return load_rules(rules_file)
    except (OSError, RuleDefinitionError) as exc:
        console.print(f"[red]Cannot load rules:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


def _rules_table(rules: list[Rule]) -> Table:
    table = Table(title="Destination Rules")
    table.add_column("Rule", style="cyan")
    table.add_column("Destination", style="green")
    table.add_column("Pattern")
    for rule in rules:
        pattern = "\n".join(
            f"{path} in {sorted(rule.pattern[path])}" for path in rule.paths
        )
        table.add_row(rule.rule_id, rule.destination, pattern)
    return table


@app.command(name="send-event", help="Send one event through the full pipeline.")
def send_event_cmd(
    mode: str = typer.Option("", "--mode", "-m", help="Value of the mode parameter."),
    rules_file: Path = typer.Option(None, "--rules-file", help="JSON rules file."),
    output_dir: Path = typer.Option(
        None, "--output-dir", help="Also write routed envelopes here."
    ),
) -> None:
    """Publish ``please <mode>``, run the worker and route the outcome."""
    console = Console()
    overrides: dict = {}
    if rules_file is not None:
        overrides["rules_path"] = rules_file
    if output_dir is not None:
        overrides["event_output_path"] = output_dir
    try:
        settings = DestinedSettings(**overrides)
        configure_logging(settings.log_level)
        system = DestinedSystem(build_default_config(settings))
    except (OSError, ValueError) as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    response = system.send_event(mode)
    style = "green" if response.ok else "red"
    console.print(
        Panel(
            f"[bold]{response.status_code}[/bold] {response.body}",
            title="Ingress response",
            border_style=style,
        )
    )
    if not response.ok:
        raise typer.Exit(code=1)

    table = Table(title="Routing results")
    table.add_column("Request", style="cyan")
    table.add_column("Condition")
    table.add_column("Matched rules")
    table.add_column("Delivered", style="green")
    table.add_column("Failed", style="red")
    for result in system.drain():
        table.add_row(
            result.request_id,
            result.condition,
            ", ".join(result.matched_rules) or "[dim]none[/dim]",
            ", ".join(result.delivered),
            ", ".join(result.failed),
        )
    console.print(table)


@app.command(name="rules", help="List destination rules.")
def rules_cmd(
    rules_file: Path = typer.Option(None, "--rules-file", help="JSON rules file."),
) -> None:
    console = Console()
    console.print(_rules_table(_load(rules_file, console)))


@app.command(name="match", help="Match an envelope JSON file against the rules.")
def match_cmd(
    envelope_file: Path = typer.Argument(..., help="Envelope in wire (camelCase) form."),
    rules_file: Path = typer.Option(None, "--rules-file", help="JSON rules file."),
) -> None:
    """Show which rules an envelope matches, path by path."""
    console = Console()
    rules = _load(rules_file, console)
    try:
        document = json.loads(envelope_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[red]Cannot read envelope:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    if not isinstance(document, dict):
        console.print("[red]Envelope must be a JSON object[/red]")
        raise typer.Exit(code=1)

    matched = match(document, rules)
    table = Table(title="Rule evaluation")
    table.add_column("Rule", style="cyan")
    table.add_column("Destination")
    table.add_column("Paths")
    table.add_column("Match", justify="center")
    for rule in rules:
        checks = explain(document, rule)
        paths = "\n".join(
            f"{'[green]ok[/green]' if ok else '[red]--[/red]'} {path}"
            for path, ok in checks.items()
        )
        verdict = "[green]Yes[/green]" if rule.rule_id in matched else "[dim]No[/dim]"
        table.add_row(rule.rule_id, rule.destination, paths, verdict)
    console.print(table)
    if not matched:
        console.print("[yellow]No rule matched; the envelope would be dropped.[/yellow]")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
