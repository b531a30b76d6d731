"""
Output formatting for DNS benchmark results.

Provides multiple output formats:
- Human-readable: Rich terminal tables
- CSV: Spreadsheet-compatible per-resolver statistics
- JSON: Machine-readable full results
"""

import csv
import json
from io import StringIO
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import BenchmarkConfig, RankedResolver, ResolverTarget, SetStatistics

SET_FIELDS = [
    "p50_ms",
    "p95_ms",
    "mean_ms",
    "stddev_ms",
    "success",
    "timeout",
    "total",
    "score",
]


def _set_values(stats: Optional[SetStatistics]) -> list:
    if stats is None:
        return [""] * len(SET_FIELDS)
    return [
        f"{stats.p50_ms:.2f}",
        f"{stats.p95_ms:.2f}",
        f"{stats.mean_ms:.2f}",
        f"{stats.stddev_ms:.2f}",
        stats.success_count,
        stats.timeout_count,
        stats.total_count,
        f"{stats.score:.2f}",
    ]


def _set_dict(stats: SetStatistics) -> dict:
    return {
        "p50_ms": round(stats.p50_ms, 3),
        "p95_ms": round(stats.p95_ms, 3),
        "mean_ms": round(stats.mean_ms, 3),
        "stddev_ms": round(stats.stddev_ms, 3),
        "success_count": stats.success_count,
        "timeout_count": stats.timeout_count,
        "total_count": stats.total_count,
        "score": round(stats.score, 3),
    }


class CSVOutput:
    """CSV output formatter."""

    @staticmethod
    def format(results: list[RankedResolver], query_tld: bool = True) -> str:
        """
        Format ranked results as CSV.

        Args:
            results: Ranked resolvers
            query_tld: Include tld_* columns

        Returns:
            CSV string
        """
        output = StringIO()
        writer = csv.writer(output)

        sets = ["warm", "cold"] + (["tld"] if query_tld else [])
        header = ["rank", "tie_group", "resolver", "address", "overall_score"]
        for name in sets:
            header.extend(f"{name}_{column}" for column in SET_FIELDS)
        header.extend(["success_rate", "intercepts_nxdomain"])
        writer.writerow(header)

        for r in results:
            p = r.profile
            row = [r.rank, r.tie_group or "", p.label, p.address, f"{p.overall_score:.2f}"]
            row.extend(_set_values(p.warm))
            row.extend(_set_values(p.cold))
            if query_tld:
                row.extend(_set_values(p.tld))
            row.extend([f"{p.success_rate:.1f}", str(p.intercepts_nxdomain).lower()])
            writer.writerow(row)

        return output.getvalue()

    @staticmethod
    def save(results: list[RankedResolver], path: Path, query_tld: bool = True) -> None:
        """Save ranked results to a CSV file."""
        with open(path, "w", newline="") as f:
            f.write(CSVOutput.format(results, query_tld))


class JSONOutput:
    """JSON output formatter."""

    @staticmethod
    def format(
        results: list[RankedResolver],
        config: Optional[BenchmarkConfig] = None,
        indent: int = 2,
    ) -> str:
        """Format ranked results (and the config used) as JSON."""
        data = {"resolvers": []}
        if config is not None:
            data["config"] = {
                "rounds": config.rounds,
                "timeout_ms": config.timeout_penalty_ms,
                "max_inflight": config.max_inflight,
                "inter_query_spacing_ms": config.inter_query_spacing * 1000,
                "query_aaaa": config.query_aaaa,
                "dnssec": config.dnssec,
                "query_tld": config.query_tld,
                "seed": config.seed,
            }

        for r in results:
            p = r.profile
            data["resolvers"].append({
                "rank": r.rank,
                "tie_group": r.tie_group,
                "label": p.label,
                "address": p.address,
                "overall_score": round(p.overall_score, 3),
                "success_rate_pct": round(p.success_rate, 2),
                "intercepts_nxdomain": p.intercepts_nxdomain,
                "uncertainty_ms": round(p.uncertainty_ms, 3),
                "warm": _set_dict(p.warm),
                "cold": _set_dict(p.cold),
                "tld": _set_dict(p.tld) if p.tld is not None else None,
            })

        return json.dumps(data, indent=indent)

    @staticmethod
    def save(
        results: list[RankedResolver],
        path: Path,
        config: Optional[BenchmarkConfig] = None,
    ) -> None:
        """Save ranked results to a JSON file."""
        with open(path, "w") as f:
            f.write(JSONOutput.format(results, config))


class RichConsoleOutput:
    """Rich library console output with colors and tables."""

    @staticmethod
    def build_table(results: list[RankedResolver], query_tld: bool = True) -> Table:
        table = Table(
            title="Benchmark Results",
            box=box.ROUNDED,
            header_style="bold magenta",
        )

        table.add_column("Rank", justify="right")
        table.add_column("Resolver", style="cyan")
        table.add_column("Score", justify="right", style="bold")
        table.add_column("Warm p50", justify="right", style="green")
        table.add_column("Warm p95", justify="right", style="yellow")
        table.add_column("Cold p50", justify="right", style="green")
        table.add_column("Cold p95", justify="right", style="yellow")
        if query_tld:
            table.add_column("TLD p50", justify="right", style="green")
            table.add_column("TLD p95", justify="right", style="yellow")
        table.add_column("Success", justify="right")
        table.add_column("NXDOMAIN")

        for r in results:
            p = r.profile
            row = [
                r.display_rank,
                escape(p.address if p.label in p.address else f"{p.label} ({p.address})"),
                f"{p.overall_score:.1f}",
                f"{p.warm.p50_ms:.1f} ms",
                f"{p.warm.p95_ms:.1f} ms",
                f"{p.cold.p50_ms:.1f} ms",
                f"{p.cold.p95_ms:.1f} ms",
            ]
            if query_tld:
                if p.tld is not None:
                    row.extend([f"{p.tld.p50_ms:.1f} ms", f"{p.tld.p95_ms:.1f} ms"])
                else:
                    row.extend(["-", "-"])
            row.append(f"{p.success_rate:.1f}%")
            row.append("[red]hijack[/red]" if p.intercepts_nxdomain else "ok")
            table.add_row(*row)

        return table

    @staticmethod
    def print(
        results: list[RankedResolver],
        query_tld: bool = True,
        console: Optional[Console] = None,
    ) -> None:
        """Print ranked results as a table."""
        console = console or Console()
        console.print()
        if not results:
            console.print("[bold yellow]No resolvers to rank[/bold yellow]")
            return
        console.print(RichConsoleOutput.build_table(results, query_tld))
        if any(r.tie_group for r in results):
            console.print(
                "[dim]Ranks shown as a range are statistically tied.[/dim]"
            )
        console.print()


def print_config_summary(
    resolvers: list[ResolverTarget],
    warm_count: int,
    cold_count: int,
    tld_count: int,
    config: BenchmarkConfig,
    console: Optional[Console] = None,
) -> None:
    """Print a summary of the benchmark configuration before running."""
    console = console or Console()
    console.print("[bold blue]DNS Benchmark Configuration[/bold blue]")
    console.print(f"  [dim]Resolvers:[/dim]    {len(resolvers)}")
    for r in resolvers:
        console.print(escape(f"    - {r.label} ({r.key})"))
    console.print(f"  [dim]Warm domains:[/dim] {warm_count}")
    console.print(f"  [dim]Cold domains:[/dim] {cold_count}")
    if config.query_tld:
        console.print(f"  [dim]TLD domains:[/dim]  {tld_count}")
    console.print(f"  [dim]Rounds:[/dim]       {config.rounds}")
    console.print(f"  [dim]Timeout:[/dim]      {config.timeout_penalty_ms:.0f} ms")
    console.print(f"  [dim]Concurrency:[/dim]  {config.max_inflight}")
    console.print(f"  [dim]Spacing:[/dim]      {config.inter_query_spacing * 1000:.0f} ms")
    console.print(f"  [dim]Query AAAA:[/dim]   {'yes' if config.query_aaaa else 'no'}")
    console.print(f"  [dim]DNSSEC:[/dim]       {'yes' if config.dnssec else 'no'}")
    if config.discover:
        console.print(f"  [dim]Discovery:[/dim]    top {config.top_n}")
    if config.seed is not None:
        console.print(f"  [dim]Seed:[/dim]         {config.seed}")
    console.print()
