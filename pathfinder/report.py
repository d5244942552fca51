"""Report generation (JSON, CSV, text summary, console)."""

import csv, io, json
from pathlib import Path
from typing import Iterable, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import ScanConfig, ScanResult
from .stats import LiveStats, Statistics

CSV_HEADER = ["Path", "URL", "Status", "Final URL", "Redirects", "Length", "Hash", "Direct200", "Time(ms)"]


def format_size(n: int) -> str:
    unit = 1024
    if n < unit:
        return f"{n}B"
    div, exp = unit, 0
    q = n // unit
    while q >= unit:
        div *= unit
        exp += 1
        q //= unit
    return f"{n / div:.1f}{'KMGTPE'[exp]}B"


def to_json(results: Iterable[ScanResult]) -> str:
    return json.dumps([r.model_dump(mode="json") for r in results], indent=2)


def to_csv(results: Iterable[ScanResult]) -> str:
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow(CSV_HEADER)
    for r in results:
        w.writerow([
            r.path,
            r.url,
            r.status,
            r.final_url,
            len(r.redirect_chain),
            r.content_length,
            r.content_hash[:12],
            "Yes" if r.is_direct_success else "No",
            int(r.response_time * 1000),
        ])
    return buf.getvalue()


def write_export(results: Iterable[ScanResult], path: str, fmt: str = "json") -> int:
    """Write results to ``path``; returns how many were written."""
    results = list(results)
    if fmt == "csv":
        text = to_csv(results)
    elif fmt == "json":
        text = to_json(results)
    else:
        raise ValueError(f"unknown export format: {fmt}")
    Path(path).write_text(text, encoding="utf-8")
    return len(results)


def format_duration(seconds: float) -> str:
    s = int(round(seconds))
    h, rem = divmod(s, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def scan_duration(live: LiveStats) -> float:
    if live.start_time and live.end_time:
        return (live.end_time - live.start_time).total_seconds()
    return live.elapsed()


def summary_text(
    stats: Statistics,
    live: Optional[LiveStats] = None,
    target: str = "",
    config: Optional[ScanConfig] = None,
) -> str:
    rule = "=" * 80
    with stats.lock:
        direct = sorted(stats.direct, key=lambda r: r.path)
        redirects = sorted(stats.redirects, key=lambda r: r.path)
        other = sorted(stats.other, key=lambda r: (r.status, r.path))
        targets = sorted(stats.redirect_targets.items(), key=lambda kv: (-kv[1], kv[0]))
        total = stats.total_scanned

    lines: List[str] = ["", rule, "SCAN SUMMARY", rule, ""]
    if target:
        lines.append(f"Target URL: {target}")
    if config is not None:
        lines.append(f"Scan method: {config.method}")
        lines.append(f"Concurrency: {config.concurrency} workers")
        lines.append(f"Timeout: {config.timeout:g} seconds")
        rate = f"{config.rate_limit} req/s" if config.rate_limit else "Unlimited"
        lines.append(f"Rate limit: {rate}")
    if live is not None and live.start_time:
        lines.append(f"Scan started: {live.start_time:%Y-%m-%d %H:%M:%S %Z}")
        lines.append(f"Scan duration: {format_duration(scan_duration(live))}")
        lines.append(f"Average speed: {live.speed:.0f} req/s")
    if target or config is not None or (live is not None and live.start_time):
        lines.append("")

    lines.append(f"Total paths scanned: {total}")
    lines.append(f"Direct 200s found: {len(direct)}")
    lines.append(f"Redirects found: {len(redirects)}")
    if live is not None:
        lines.append(f"Protected (401/403): {live.protected.value}")
        lines.append(f"Errors: {live.errors.value}")
    lines.append("")

    if direct:
        lines += [rule, "[+] DIRECT 200s (hosted content, no redirects)", rule]
        for r in direct:
            lines.append(f"  {r.url}")
            lines.append(
                f"     Length: {format_size(r.content_length)} | Hash: {r.content_hash[:12]}... "
                f"| Time: {int(r.response_time * 1000)}ms"
            )
        lines.append("")

    if redirects:
        lines += [rule, "[>] REDIRECT CHAINS", rule]
        for r in redirects:
            lines.append(f"  {r.url}")
            for hop in r.redirect_chain:
                lines.append(f"     {hop.status} {hop.url}")
            lines.append(f"     -> {r.status} {r.final_url}")
        lines.append("")

    if targets:
        lines += [rule, "[>] REDIRECT TARGETS", rule]
        for url, count in targets:
            lines.append(f"  {count:>5}  {url}")
        lines.append("")

    if other:
        lines += [rule, "[!] PROTECTED AND SERVER ERRORS (401/403/5xx)", rule]
        for r in other:
            lines.append(f"  [{r.status}] {r.url}")
        lines.append("")
    return "\n".join(lines)


def print_console(target: str, stats: Statistics, live: LiveStats) -> None:
    console = Console()
    console.print(Panel(f"[bold]PathFinder - Results for {target}[/bold]", box=box.DOUBLE))
    snap = live.snapshot()
    summary = (
        f"[green]Direct: {snap['direct']}[/green]  "
        f"[cyan]Redirects: {snap['redirects']}[/cyan]  "
        f"[yellow]Protected: {snap['protected']}[/yellow]  "
        f"[red]Errors: {snap['errors']}[/red]  "
        f"[dim]{snap['completed']}/{snap['total']} @ {snap['speed']:.0f} req/s[/dim]"
    )
    console.print(Panel(summary, title="Summary", border_style="blue"))

    findings = stats.findings()
    if not findings:
        console.print("[green]No findings.[/green]")
        return

    table = Table(title="Findings", show_header=True, header_style="bold")
    table.add_column("Status", width=7)
    table.add_column("Path", width=40)
    table.add_column("Final URL", width=50)
    table.add_column("Size", width=9)
    for r in sorted(findings, key=lambda x: (x.status, x.path)):
        style = "green" if r.is_direct_success else "cyan" if r.redirect_chain else "yellow"
        table.add_row(f"[{style}]{r.status}[/]", r.path, r.final_url, format_size(r.content_length))
    console.print(table)
