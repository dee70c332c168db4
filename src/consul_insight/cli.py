"""consul-insight CLI entry point."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Coroutine, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from consul_insight.inspector import MeshInspector

T = TypeVar("T")

app = typer.Typer(
    name="consul-insight",
    help="consul-insight: topology and health diagnostics for a Consul service mesh",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {
    "passing": "green",
    "healthy": "green",
    "allowed": "green",
    "warning": "yellow",
    "inferred": "cyan",
    "critical": "red",
    "degraded": "red",
    "failing": "red",
    "blocked": "red",
}

PathOption = typer.Option(None, "--path", "-p", help="Path to .consul-insight.yaml")


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "dim")
    return f"[{style}]{status}[/{style}]"


def _inspector(path: Optional[Path] = None) -> MeshInspector:
    from consul_insight.config.loader import load_config_or_default
    from consul_insight.inspector import MeshInspector

    try:
        config = load_config_or_default(path)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)
    return MeshInspector(config)


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log registry reads and fallbacks"),
) -> None:
    """Topology and health diagnostics for a Consul service mesh."""
    if verbose:
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


@app.command()
def status(path: Optional[Path] = PathOption) -> None:
    """Check the Consul connection and show the overall health summary."""
    inspector = _inspector(path)
    leader = _run(inspector.ping())
    if leader.ok:
        console.print(f"[green]✓[/green] Connected to Consul (leader {escape(leader.value or 'unknown')})")
    else:
        console.print(f"[red]✗ Cannot reach Consul: {escape(leader.error or '')}[/red]")
        raise typer.Exit(1)

    summary = _run(inspector.health_summary())
    console.print(f"Overall health: {_styled(summary.overall_status)}")
    console.print(
        f"  {summary.total} checks: {summary.passing} passing, {summary.warning} warning, "
        f"{summary.critical} critical, {summary.unknown} unknown"
    )
    for entry in summary.failing_checks_by_service:
        console.print(f"  [red]{escape(entry.service_name)}[/red]: {entry.count} failing check(s)")


@app.command()
def services(
    failing_only: bool = typer.Option(False, "--failing-only", help="Only warning/critical services"),
    path: Optional[Path] = PathOption,
) -> None:
    """List registered services with health and connection counts."""
    details = _run(_inspector(path).services(failing_only=failing_only))

    table = Table(title="Consul Services")
    table.add_column("Service", style="bold")
    table.add_column("Address")
    table.add_column("Node")
    table.add_column("Health")
    table.add_column("In", justify="right")
    table.add_column("Out", justify="right")
    for d in details:
        svc = d.service
        table.add_row(
            escape(svc.name),
            f"{svc.address}:{svc.port}",
            escape(svc.node),
            _styled(svc.health.status),
            str(len(d.incoming)),
            str(len(d.outgoing)),
        )
    console.print(table)


@app.command()
def connections(
    failing_only: bool = typer.Option(False, "--failing-only", help="Only degraded/failing/blocked"),
    path: Optional[Path] = PathOption,
) -> None:
    """List service connections with their (simulated) metrics."""
    conns = _run(_inspector(path).connections(failing_only=failing_only))

    table = Table(title="Service Connections")
    table.add_column("Source", style="bold")
    table.add_column("Destination", style="bold")
    table.add_column("Status")
    table.add_column("Protocol")
    table.add_column("Latency", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Message")
    for c in conns:
        latency = f"{c.latency}ms" if c.latency is not None else "-"
        errors = f"{c.error_rate * 100:.1f}%" if c.error_rate is not None else "-"
        table.add_row(
            escape(c.source),
            escape(c.destination),
            _styled(c.status),
            c.protocol,
            latency,
            errors,
            escape(c.error_message or ""),
        )
    console.print(table)


@app.command()
def checks(
    failing_only: bool = typer.Option(False, "--failing-only", help="Only warning/critical checks"),
    path: Optional[Path] = PathOption,
) -> None:
    """List health checks with likely causes and remediation."""
    diagnosed = _run(_inspector(path).health_checks(failing_only=failing_only))
    if not diagnosed:
        console.print("[dim]No health checks found.[/dim]")
        return
    for item in diagnosed:
        check, diagnosis = item.check, item.diagnosis
        service = f" ({escape(check.service_name)})" if check.service_name else ""
        console.print(f"{_styled(check.status)} [bold]{escape(check.name)}[/bold]{service} severity={diagnosis.severity}")
        if check.output:
            console.print(f"  [dim]{escape(check.output.strip())}[/dim]")
        for issue in diagnosis.possible_issues:
            console.print(f"  • {escape(issue)}")
        for step in diagnosis.remediation:
            console.print(f"    → {escape(step)}")


@app.command()
def diagram(
    health: bool = typer.Option(False, "--health/--no-health", help="Style nodes by health"),
    metrics: bool = typer.Option(False, "--metrics/--no-metrics", help="Label edges with latency"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the diagram to a file"),
    path: Optional[Path] = PathOption,
) -> None:
    """Render the service topology as a Mermaid flowchart."""
    text = _run(_inspector(path).diagram(include_health=health, include_metrics=metrics))
    if output is not None:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]✓[/green] Diagram written to {output}")
    else:
        typer.echo(text, nl=False)


@app.command()
def analyze(
    service: str = typer.Argument(help="Name of the service to analyze"),
    path: Optional[Path] = PathOption,
) -> None:
    """Analyze one service for health, connectivity and resource issues."""
    from consul_insight.errors import ServiceNotFound

    try:
        report = _run(_inspector(path).service(service))
    except ServiceNotFound as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    details = report.details
    console.print(f"[bold]{escape(details.name)}[/bold] {_styled(details.service.health.status)}")
    console.print(f"  Incoming: {len(details.incoming)}  Outgoing: {len(details.outgoing)}")
    if report.metrics:
        m = report.metrics
        console.print(
            f"  CPU {m.cpu.usage * 100:.1f}% of {m.cpu.cores} core(s), "
            f"memory {m.memory.used}/{m.memory.total} MB, "
            f"errors {m.error_rate * 100:.1f}%, p99 {m.response_time.p99}ms"
        )
    console.print("\n[bold]Issues:[/bold]")
    for issue in report.analysis.issues:
        console.print(f"  • {escape(issue)}")
    console.print("\n[bold]Recommendations:[/bold]")
    for rec in report.analysis.recommendations:
        console.print(f"  → {escape(rec)}")


@app.command()
def mesh(path: Optional[Path] = PathOption) -> None:
    """Analyze the whole mesh: isolated services, hubs and failing connections."""
    analysis = _run(_inspector(path).mesh_analysis())
    console.print(escape(analysis.summary))
    console.print("\n[bold]Issues:[/bold]")
    for issue in analysis.issues:
        console.print(f"  • {escape(issue)}")
    console.print("\n[bold]Recommendations:[/bold]")
    for rec in analysis.recommendations:
        console.print(f"  → {escape(rec)}")


@app.command("metrics")
def metrics_command(
    service: str = typer.Argument(help="Service name"),
    path: Optional[Path] = PathOption,
) -> None:
    """Show simulated metrics for a service."""
    from consul_insight.errors import MetricsUnavailable

    try:
        m = _run(_inspector(path).metrics(service))
    except MetricsUnavailable as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Metrics: {escape(service)} (simulated)")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("CPU usage", f"{m.cpu.usage * 100:.1f}%")
    table.add_row("CPU cores", str(m.cpu.cores))
    table.add_row("Memory", f"{m.memory.used}/{m.memory.total} MB")
    table.add_row("Network rx/tx", f"{m.network.rx_bytes}/{m.network.tx_bytes} B")
    table.add_row("Request rate", f"{m.request_rate}/min")
    table.add_row("Error rate", f"{m.error_rate * 100:.1f}%")
    table.add_row("p50 / p90 / p99", f"{m.response_time.p50} / {m.response_time.p90} / {m.response_time.p99} ms")
    console.print(table)


@app.command()
def snapshot(path: Optional[Path] = PathOption) -> None:
    """Print the full aggregate bundle as JSON."""
    bundle = _run(_inspector(path).snapshot())
    typer.echo(json.dumps(bundle, indent=2))


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind host"),
    port: int = typer.Option(8000, help="Bind port"),
    path: Optional[Path] = PathOption,
) -> None:
    """Start the consul-insight HTTP API.

    Without --path the app discovers its config from the working directory.
    """
    import uvicorn

    target = "consul_insight.api.app:app"
    if path is not None:
        from consul_insight.api.app import create_app
        from consul_insight.config.loader import load_config_or_default

        try:
            config = load_config_or_default(path)
        except (FileNotFoundError, ValueError) as exc:
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(1)
        target = create_app(config=config)

    console.print(f"[bold]consul-insight[/bold] starting on http://{host}:{port}")
    uvicorn.run(target, host=host, port=port, reload=False)


config_app = typer.Typer(name="config", help="Configuration commands")
app.add_typer(config_app)


@config_app.command("validate")
def config_validate(path: Optional[Path] = PathOption) -> None:
    """Validate the configuration file."""
    from urllib.parse import urlparse

    import yaml

    from consul_insight.config.loader import load_config

    try:
        config = load_config(path=path)
        console.print("[green]✓[/green] YAML parses correctly")
        console.print("[green]✓[/green] Pydantic validation passes")
    except FileNotFoundError as exc:
        console.print(f"[red]✗ {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except yaml.YAMLError as exc:
        console.print(f"[red]✗ YAML parsing failed: {escape(str(exc))}[/red]")
        raise typer.Exit(1)
    except ValueError as exc:
        console.print("[green]✓[/green] YAML parses correctly")
        console.print(f"[red]✗ Pydantic validation failed: {escape(str(exc))}[/red]")
        raise typer.Exit(1)

    errors: list[str] = []
    address = config.consul.address if "://" in config.consul.address else f"http://{config.consul.address}"
    parsed = urlparse(address)
    if not parsed.netloc:
        errors.append(f"Consul address '{config.consul.address}' is not a valid URL")
    else:
        console.print(f"[green]✓[/green] Consul address {escape(address)} is valid")

    if config.consul.timeout <= 0:
        errors.append(f"Consul timeout must be positive, got {config.consul.timeout}")

    for i, rule in enumerate(config.inference.naming_rules):
        if not rule.source or not rule.target:
            errors.append(f"Naming rule {i} has an empty source or target")

    if errors:
        for err in errors:
            console.print(f"[red]✗ {escape(err)}[/red]")
        console.print(f"\n[red bold]{len(errors)} validation error(s) found.[/red bold]")
        raise typer.Exit(1)
    console.print("\n[green bold]Configuration is valid.[/green bold]")


@config_app.command("show")
def config_show(path: Optional[Path] = PathOption) -> None:
    """Print the resolved configuration."""
    from consul_insight.config.loader import load_config_or_default

    try:
        config = load_config_or_default(path=path)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    console.print("[bold]Consul:[/bold]")
    console.print(f"  Address: {escape(config.consul.address)}")
    console.print(f"  Token: {'set' if config.consul.token else 'not set'}")
    if config.consul.datacenter:
        console.print(f"  Datacenter: {escape(config.consul.datacenter)}")
    console.print(f"  Timeout: {config.consul.timeout}s\n")

    inference = config.inference
    console.print("[bold]Inference:[/bold]")
    metadata_state = "on" if inference.metadata_dependencies else "off"
    console.print(f"  Metadata dependencies: {metadata_state} (key: {escape(inference.upstream_meta_key)})")
    console.print(f"  Naming convention: {'on' if inference.naming_convention else 'off'}")
    for rule in inference.naming_rules:
        console.print(f"    *{escape(rule.source)}* → *{escape(rule.target)}*")

    console.print(f"\n[bold]API auth:[/bold] {'enabled' if config.auth.api_key else 'disabled'}")


def main() -> None:
    app()
