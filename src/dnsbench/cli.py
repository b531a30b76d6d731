"""
Command-line interface for DNS Bench.

Collects resolvers and domain sets, runs the benchmark and renders the
ranked results.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .logging_config import LEVEL_NAMES, init_logging
from .models import AUTO_DISCOVER_THRESHOLD, BenchmarkConfig, ResolverTarget
from .output import CSVOutput, JSONOutput, RichConsoleOutput, print_config_summary
from .ranking import apply_latency_ceiling
from .resolvers import (
    DEFAULT_RESOLVERS,
    RESOLVERS,
    default_resolvers,
    get_resolver,
    list_resolvers,
    parse_resolver,
    read_resolver_file,
    system_resolvers,
)
from .runner import BenchmarkRunner
from .workload import DomainSets

logger = logging.getLogger(__name__)


def create_progress_callback(console: Console):
    """Create a transient rich spinner and a callback that drives it."""
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    )

    task_id = None

    def callback(message: str, current: int, total: int):
        nonlocal task_id
        if task_id is None:
            task_id = progress.add_task(message, total=total)
        progress.update(task_id, description=message, completed=current, total=total)

    return progress, callback


def resolve_targets(names_or_addresses: tuple) -> list[ResolverTarget]:
    """Turn -r values into targets: catalogue names first, then addresses."""
    targets = []
    for value in names_or_addresses:
        if value.lower() in RESOLVERS:
            targets.append(get_resolver(value))
        else:
            targets.append(parse_resolver(value))
    return targets


def dedupe(targets: list[ResolverTarget]) -> list[ResolverTarget]:
    """Drop repeated addresses, keeping the first label seen."""
    seen = set()
    unique = []
    for target in targets:
        if target.key in seen:
            logger.info("Ignoring duplicate resolver %s (%s)", target.label, target.key)
            continue
        seen.add(target.key)
        unique.append(target)
    return unique


@click.group()
@click.version_option(__version__)
def main():
    """
    DNS Bench - rank DNS resolvers by measured UDP performance.

    Queries warm, cold and TLD-diverse domains over several shuffled rounds,
    scores each resolver and groups statistically tied results.
    """
    pass


@main.command()
@click.option(
    "--resolver", "-r",
    multiple=True,
    help="Resolver name or address (repeatable). Names: " + ", ".join(list_resolvers()),
)
@click.option(
    "--resolver-file", "-f",
    type=click.Path(dir_okay=False),
    help="File with one resolver address per line",
)
@click.option(
    "--system-resolvers", "use_system_resolvers",
    is_flag=True,
    help="Include nameservers from /etc/resolv.conf",
)
@click.option("--warm-domains", type=click.Path(dir_okay=False), help="Warm domain list file")
@click.option("--cold-domains", type=click.Path(dir_okay=False), help="Cold domain list file")
@click.option("--tld-domains", type=click.Path(dir_okay=False), help="TLD domain list file")
@click.option("--no-tld", is_flag=True, help="Disable TLD diversity measurement")
@click.option("--rounds", "-n", type=int, default=3, show_default=True, help="Benchmark rounds")
@click.option(
    "--timeout", "-t",
    type=int,
    default=2000,
    show_default=True,
    help="Query timeout in milliseconds",
)
@click.option(
    "--concurrency", "-c",
    type=int,
    default=64,
    show_default=True,
    help="Maximum concurrent in-flight queries",
)
@click.option(
    "--spacing",
    type=int,
    default=5,
    show_default=True,
    help="Delay before each query in milliseconds",
)
@click.option("--aaaa", is_flag=True, help="Also query AAAA records")
@click.option("--dnssec", is_flag=True, help="Set the DNSSEC OK bit on all queries")
@click.option("--discover", is_flag=True, help="Prefilter the resolver list before benchmarking")
@click.option(
    "--no-discover",
    is_flag=True,
    help=f"Never prefilter, even with more than {AUTO_DISCOVER_THRESHOLD} resolvers",
)
@click.option(
    "--top",
    type=int,
    default=50,
    show_default=True,
    help="Resolvers kept by discovery",
)
@click.option(
    "--max-resolver-ms",
    type=float,
    default=1000.0,
    show_default=True,
    help="Drop resolvers whose warm p50 exceeds this",
)
@click.option("--seed", "-s", type=int, help="Random seed for reproducible ordering")
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    help="Output file path (CSV or JSON based on extension)",
)
@click.option("--json", "as_json", is_flag=True, help="Output results as JSON to stdout")
@click.option("--quiet", "-q", is_flag=True, help="Suppress progress and table output")
@click.option(
    "--log-level",
    type=click.Choice(LEVEL_NAMES),
    default="warning",
    show_default=True,
    help="Logging verbosity",
)
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
def run(
    resolver: tuple,
    resolver_file: Optional[str],
    use_system_resolvers: bool,
    warm_domains: Optional[str],
    cold_domains: Optional[str],
    tld_domains: Optional[str],
    no_tld: bool,
    rounds: int,
    timeout: int,
    concurrency: int,
    spacing: int,
    aaaa: bool,
    dnssec: bool,
    discover: bool,
    no_discover: bool,
    top: int,
    max_resolver_ms: float,
    seed: Optional[int],
    output: Optional[str],
    as_json: bool,
    quiet: bool,
    log_level: str,
    log_file: Optional[str],
):
    """
    Run the DNS benchmark.

    Examples:

    \b
      # Default resolvers, default domain sets
      dns-bench run

    \b
      # Compare specific resolvers
      dns-bench run -r cloudflare -r 8.8.8.8 -r "Home=192.168.1.1"

    \b
      # Reproducible run, CSV export
      dns-bench run --seed 42 -o results.csv
    """
    init_logging(log_level, log_file)

    try:
        targets = resolve_targets(resolver)
        if resolver_file:
            targets.extend(read_resolver_file(resolver_file))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--resolver' / '--resolver-file'")

    if use_system_resolvers:
        targets.extend(system_resolvers())

    if not targets:
        targets = default_resolvers()
    targets = dedupe(targets)

    try:
        domain_sets = DomainSets.load(warm_domains, cold_domains, tld_domains)
    except ValueError as e:
        raise click.ClickException(str(e))

    use_discovery = False if no_discover else (discover or len(targets) > AUTO_DISCOVER_THRESHOLD)

    try:
        config = BenchmarkConfig(
            rounds=rounds,
            timeout=timeout / 1000,
            max_inflight=concurrency,
            inter_query_spacing=spacing / 1000,
            query_aaaa=aaaa,
            dnssec=dnssec,
            query_tld=not no_tld,
            discover=use_discovery,
            top_n=top,
            max_resolver_ms=max_resolver_ms,
            seed=seed,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    console = Console()
    show_progress = not quiet and not as_json

    if show_progress:
        print_config_summary(
            targets,
            len(domain_sets.warm),
            len(domain_sets.cold),
            len(domain_sets.tld),
            config,
            console=console,
        )

    progress_ctx, progress_callback = None, None
    if show_progress:
        progress_ctx, progress_callback = create_progress_callback(console)

    runner = BenchmarkRunner(config, progress_callback=progress_callback)

    if progress_ctx:
        with progress_ctx:
            results = asyncio.run(runner.run(targets, domain_sets))
    else:
        results = asyncio.run(runner.run(targets, domain_sets))

    if not results:
        raise click.ClickException("No resolvers produced results")

    results, dropped = apply_latency_ceiling(results, config.max_resolver_ms)
    if dropped:
        logger.warning(
            "Filtered %d resolver(s) with warm p50 > %.0f ms", dropped, config.max_resolver_ms,
        )

    if as_json:
        click.echo(JSONOutput.format(results, config))
    elif not quiet:
        RichConsoleOutput.print(results, query_tld=config.query_tld, console=console)

    if output:
        path = Path(output)
        if path.suffix.lower() == ".csv":
            CSVOutput.save(results, path, query_tld=config.query_tld)
        else:
            if path.suffix.lower() != ".json":
                path = path.with_suffix(".json")
            JSONOutput.save(results, path, config)
        if not quiet and not as_json:
            click.echo(f"Results saved to {path}")


@main.command(name="list-resolvers")
def list_available():
    """List the built-in DNS resolvers."""
    console = Console()
    table = Table(
        title="Available DNS Resolvers",
        box=box.ROUNDED,
        header_style="bold cyan",
    )

    table.add_column("Name", style="green")
    table.add_column("Label")
    table.add_column("Address", style="cyan")

    for name, target in sorted(RESOLVERS.items()):
        table.add_row(name, target.label, target.key)

    console.print(table)
    console.print()
    console.print("[dim]Default resolvers:[/dim]", ", ".join(DEFAULT_RESOLVERS))


if __name__ == "__main__":
    main()
