"""
PathFinder - web path discovery from the command line.

Usage:
  pathfinder -u https://example.com -w wordlist.txt
  pathfinder -u https://example.com -w words.txt -x php,bak --mc 200,301 -o out.csv --format csv
  pathfinder -u https://example.com -w words.txt --rate 20 -H "Authorization: Bearer x"
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict, List, Optional

from .errors import PathFinderError
from .models import ScanConfig
from .report import print_console, summary_text, write_export
from .scanner import Scanner
from .settings import configure_logging, settings
from .wordlists import load_wordlist

log = logging.getLogger("pathfinder.cli")


def parse_int_list(s: str) -> List[int]:
    out = []
    for part in (s or "").split(","):
        part = part.strip()
        if part.isdigit():
            out.append(int(part))
    return out


def parse_str_list(s: str) -> List[str]:
    return [p.strip() for p in (s or "").split(",") if p.strip()]


def parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    headers = {}
    for raw in values or []:
        name, sep, value = raw.partition(":")
        if sep and name.strip():
            headers[name.strip()] = value.strip()
    return headers


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pathfinder",
        description="Discover hosted paths on a web server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument("-u", "--url", required=True, help="Target base URL")
    p.add_argument("-w", "--wordlist", default=settings.wordlist, help="Wordlist file")
    p.add_argument("--max-paths", type=int, default=None, help="Read at most N wordlist entries (default: all)")
    p.add_argument("-c", "--concurrency", type=int, default=settings.concurrency)
    p.add_argument("-t", "--timeout", type=float, default=settings.timeout, help="Per-request timeout (s)")
    p.add_argument("-X", "--method", default="GET")
    p.add_argument("--rate", type=int, default=0, help="Max requests/sec (0 = unlimited)")
    p.add_argument("--delay", type=int, default=0, help="Delay before each request (ms)")
    p.add_argument("--mc", default="", help="Only keep these status codes (comma-separated)")
    p.add_argument("--fc", default="", help="Drop these status codes")
    p.add_argument("--fs", default="", help="Drop responses of these sizes")
    p.add_argument("-x", "--extensions", default="", help="Also try these extensions")
    p.add_argument("-H", "--header", action="append", help="Custom header 'Name: value' (repeatable)")
    p.add_argument("--cookie", default="")
    p.add_argument("-o", "--output", metavar="FILE", help="Export findings to FILE")
    p.add_argument("--format", choices=("json", "csv"), default="json")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def config_from_args(args: argparse.Namespace) -> ScanConfig:
    return ScanConfig(
        match_status=tuple(parse_int_list(args.mc)),
        exclude_status=tuple(parse_int_list(args.fc)),
        exclude_sizes=tuple(parse_int_list(args.fs)),
        extensions=tuple(parse_str_list(args.extensions)),
        headers=parse_headers(args.header),
        cookie=args.cookie,
        method=args.method,
        rate_limit=args.rate,
        delay=args.delay,
        concurrency=args.concurrency,
        timeout=args.timeout,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "")

    try:
        scanner = Scanner(args.url, config_from_args(args))
        paths = load_wordlist(args.wordlist, args.max_paths)
    except (PathFinderError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(scanner.run_scan(paths))
    except KeyboardInterrupt:
        log.warning("Interrupted")
    scanner.live.observe_completion()

    print_console(scanner.base, scanner.stats, scanner.live)
    print(summary_text(scanner.stats, scanner.live, target=scanner.base, config=scanner.config))

    if args.output:
        n = write_export(scanner.stats.findings(), args.output, args.format)
        print(f"[OK] Exported {n} results to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
