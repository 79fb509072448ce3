"""CLI interface for TxGuard."""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Config
from .engine import analyze_transaction
from .exceptions import InputError
from .knowledge import (
    ATTACK_PATTERNS,
    EXPLOIT_PATTERNS,
    MALICIOUS_ADDRESSES,
    MALICIOUS_SIGNATURES,
    MODULE_IMPERSONATION_PATTERNS,
    NEVER_WHITELIST,
    RISK_PATTERNS,
    TEMPORAL_PATTERNS,
    THREAT_SIGNATURES,
    check_whitelist,
)
from .models import FUNCTION_PATH_RE, RiskVerdict, Severity

app = typer.Typer(
    name="txguard",
    help="Risk analysis for Move transactions before you sign them",
)
console = Console()

SEVERITY_COLORS = {
    Severity.CRITICAL: "red",
    Severity.HIGH: "orange3",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
}


def resolve_log_level(level: str) -> str:
    """Upper-cased level name, or WARNING when logging does not know it."""
    name = str(level).strip().upper()
    if not isinstance(logging.getLevelName(name), int):
        return "WARNING"
    return name


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _print_verdict(verdict: RiskVerdict) -> None:
    color = SEVERITY_COLORS[verdict.overall_severity]

    if verdict.skipped_ensemble:
        console.print(f"\n[bold green]✅ Whitelisted:[/bold green] {verdict.whitelist_reason}")
    elif verdict.issues:
        console.print(f"\n[bold {color}]⚠️ Found {len(verdict.issues)} issues:[/bold {color}]\n")

        table = Table(show_header=True, header_style="bold")
        table.add_column("Severity")
        table.add_column("Pattern")
        table.add_column("Title")
        table.add_column("Confidence")
        table.add_column("Source")

        for issue in verdict.issues:
            issue_color = SEVERITY_COLORS[issue.severity]
            table.add_row(
                f"[{issue_color}]{issue.severity.value}[/{issue_color}]",
                issue.pattern_id,
                issue.title[:60] + "..." if len(issue.title) > 60 else issue.title,
                f"{issue.confidence:.0%}",
                issue.source,
            )

        console.print(table)
    else:
        console.print("\n[bold green]✅ No issues detected[/bold green]")

    console.print(f"\nRisk: [{color}]{verdict.overall_severity.value}[/{color}] | Score: {verdict.risk_score}/100")
    if verdict.detector_failures:
        console.print(f"[yellow]Detectors unavailable: {', '.join(verdict.detector_failures)}[/yellow]")
    console.print(f"Analysis time: {verdict.analysis_time:.2f}s")


@app.command()
def check(
    request: Path = typer.Argument(..., help="JSON file describing the transaction"),
    network: Optional[str] = typer.Option(None, help="Override the network (mainnet, testnet, devnet)"),
    as_json: bool = typer.Option(False, "--json", help="Print the verdict as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Analyze a transaction request before signing it."""
    config = Config()
    setup_logging("DEBUG" if verbose else config.log_level)

    try:
        payload = json.loads(request.read_text())
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {request}: {e}[/red]")
        raise typer.Exit(2)

    if network and isinstance(payload, dict):
        payload["network"] = network

    if not as_json:
        console.print("[bold green]🔍 Analyzing transaction[/bold green]")
        if isinstance(payload, dict):
            console.print(f"Function: {payload.get('function')}")
            console.print(f"Network: {payload.get('network', 'mainnet')}")

    try:
        verdict = analyze_transaction(payload, config)
    except InputError as e:
        console.print(f"[red]Invalid request: {e}[/red]")
        raise typer.Exit(2)

    if as_json:
        typer.echo(json.dumps(verdict.to_dict(), indent=2, default=str))
    else:
        _print_verdict(verdict)

    if verdict.overall_severity == Severity.CRITICAL:
        raise typer.Exit(1)


@app.command()
def whitelist(
    function: str = typer.Argument(..., help="Function path, e.g. 0x1::coin::transfer"),
):
    """Show whether a function skips analysis as a known-safe framework call."""
    match = FUNCTION_PATH_RE.match(function.strip())
    if not match:
        console.print(f"[red]Malformed function path: {function}[/red]")
        raise typer.Exit(2)

    result = check_whitelist(match.group("address"), match.group("module"), match.group("function"))
    if result.is_whitelisted:
        console.print(f"[green]✓ Whitelisted[/green] {result.reason}")
    else:
        console.print(f"[yellow]✗ Not whitelisted[/yellow] {result.reason or 'Not a known framework function'}")


@app.command()
def patterns():
    """List the rule tables loaded into the knowledge base."""
    console.print("[bold green]📚 KNOWLEDGE BASE[/bold green]\n")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Entries", justify="right")

    rows = [
        ("Threat signatures", len(THREAT_SIGNATURES)),
        ("Attack patterns", len(ATTACK_PATTERNS)),
        ("Temporal patterns", len(TEMPORAL_PATTERNS)),
        ("Risk patterns", len(RISK_PATTERNS)),
        ("Malicious addresses", len(MALICIOUS_ADDRESSES)),
        ("Malicious signatures", len(MALICIOUS_SIGNATURES)),
        ("Exploit patterns", len(EXPLOIT_PATTERNS)),
        ("Impersonation patterns", len(MODULE_IMPERSONATION_PATTERNS)),
        ("Never-whitelist functions", len(NEVER_WHITELIST)),
    ]
    for name, count in rows:
        table.add_row(name, str(count))

    console.print(table)


@app.command("config")
def show_config():
    """Check configuration and report problems."""
    config = Config()
    issues = config.validate()

    console.print(f"AI review: {'enabled (' + config.ai_model + ')' if config.ai_enabled else 'disabled'}")
    console.print(f"Detector timeout: {config.detector_timeout_seconds}s")

    if issues:
        console.print("\n[yellow]Configuration notes:[/yellow]")
        for issue in issues:
            console.print(f"  • {issue}")
    else:
        console.print("\n[green]✓ Configuration OK[/green]")


if __name__ == "__main__":
    app()
