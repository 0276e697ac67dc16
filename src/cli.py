"""Click CLI — the main entry point for icao-consensus.

Commands:
  icao canonicalize INPUT OUTPUT     Expand + merge a raw range table
  icao classify ICAO [REG] [CALL]    Compare allocation, registration and operator countries
  icao lookup ICAO                   Show the allocation containing an address
  icao find-gaps [START END]         List unallocated spans in a region
  icao plan [START END]              Propose allocations for missing countries
  icao mismatches                    Show logged mismatch reports
  icao serve                         Launch the JSON API

Exit code is 0 on success and 1 on any load, parse or validation error.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import exporters
from .config import load_config
from .consensus import (
    ClassificationInput,
    ClassificationVerdict,
    Status,
    build_report,
    classify as classify_aircraft,
    display_country,
)
from .gaps import DEFAULT_ALLOCATION_SIZE, DEFAULT_PENDING, PendingCountry, allocate, find_gaps, missing_countries
from .icao import lookup as lookup_allocation
from .merge import DEFAULT_BLOCK_SIZE, canonicalize as canonicalize_ranges
from .ranges import format_address, parse_address
from .tables import Tables, load_ranges, load_tables

console = Console()


class AddressType(click.ParamType):
    """6-digit hex ICAO address -> int. Bad input exits 1, like any validation error."""
    name = "icao"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return parse_address(value)
        except ValueError as e:
            raise click.ClickException(str(e)) from e

    """Non-negative integer, decimal or 0x-prefixed hex (1024 or 0x400)."""
class SizeType(click.ParamType):
    """Positive integer, decimal or 0x-prefixed hex (1024 or 0x400)."""
    name = "size"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            size = int(value, 0)
        except ValueError:
            raise click.ClickException(f"{value!r} is not an integer") from None
        if size < 0:
            raise click.ClickException(f"{value!r} must not be negative")
        return size


ADDRESS = AddressType()
SIZE = SizeType()


def _fail(e: Exception):
    """Report a load/validation error and exit 1."""
    raise click.ClickException(str(e)) from e


def _tables(ranges: str | None, prefixes: str | None, operators: str | None) -> Tables:
    cfg = load_config()["tables"]
    try:
        return load_tables(
            ranges or cfg.get("ranges"),
            prefixes or cfg.get("prefixes"),
            operators or cfg.get("operators"),
        )
    except (OSError, ValueError) as e:
        _fail(e)


def _config_value(section: str, key: str, default):
    """Config value, or `default` when unset. A configured 0 is kept."""
    value = load_config()[section].get(key)
    return default if value is None else value


def _region(start: int | None, end: int | None) -> tuple[int, int]:
    cfg = load_config()["gaps"]
    try:
        if start is None:
            start = parse_address(str(cfg["region_start"]))
        if end is None:
            end = parse_address(str(cfg["region_end"]))
    except ValueError as e:
        _fail(e)
    return start, end


_table_options = [
    click.option("--ranges", type=click.Path(), default=None, help="Range table JSON (default: built-in)"),
    click.option("--prefixes", type=click.Path(), default=None, help="Prefix table JSON (default: built-in)"),
    click.option("--operators", type=click.Path(), default=None, help="Operator table JSON (default: built-in)"),
]


def table_options(fn):
    for opt in reversed(_table_options):
        fn = opt(fn)
    return fn


@click.group()
@click.version_option(version="0.1.0", prog_name="icao-consensus")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """Aircraft country resolution — allocation ranges, registrations, callsigns."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@cli.command()
@click.argument("input_path", metavar="INPUT", type=click.Path())
@click.argument("output_path", metavar="OUTPUT", type=click.Path())
@click.option("--block-size", type=SIZE, default=None, help="Canonical block size (default 256)")
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json")
def canonicalize(input_path: str, output_path: str, block_size: int | None, fmt: str):
    """Expand a raw range table into canonical blocks and merge it back down.

    Nothing is written if any record is malformed or two ranges overlap.
    """
    if block_size is None:
        block_size = _config_value("canonical", "block_size", DEFAULT_BLOCK_SIZE)
    try:
        raw = load_ranges(input_path)
        table = canonicalize_ranges(raw, block_size=block_size)
        exporters.EXPORTERS[fmt](table, path=output_path)
    except (OSError, ValueError) as e:
        _fail(e)

    console.print(
        f"Merged [bold]{len(raw)}[/] input ranges into [bold]{len(table)}[/] "
        f"ranges (block size {block_size}) → {output_path}"
    )


@cli.command()
@click.argument("address", type=ADDRESS)
@click.argument("registration", required=False)
@click.argument("callsign", required=False)
@table_options
@click.option("--json", "as_json", is_flag=True, help="Print the verdict as JSON")
@click.option("--log-db", type=click.Path(), default=None, help="Append mismatches to this SQLite log")
@click.option("--webhook", type=str, default=None, help="POST mismatch reports to this URL")
def classify(address: int, registration: str | None, callsign: str | None,
             ranges: str | None, prefixes: str | None, operators: str | None,
             as_json: bool, log_db: str | None, webhook: str | None):
    """Compare the countries named by an address, a registration and a callsign.

    \b
    Examples:
      icao classify 464A91 OH-LWA
      icao classify 4B7FAC HB-RSJ SWR123 --json
    """
    tables = _tables(ranges, prefixes, operators)
    inp = ClassificationInput(address=address, registration=registration, callsign=callsign)
    verdict = classify_aircraft(tables.ranges, tables.prefixes, tables.operators, inp)
    report = build_report(inp, verdict)

    if as_json:
        body = {
            "icao": format_address(address),
            "registration": registration,
            "callsign": callsign,
            "verdict": verdict.to_dict(),
            "display_country": display_country(verdict, registration),
            "report": report.to_dict() if report else None,
        }
        click.echo(json.dumps(body, indent=2))
    else:
        _print_verdict(inp, verdict)

    if report is None:
        return

    cfg = load_config()
    webhook = webhook or cfg.get("webhook")
    if webhook:
        from .notifications import ReportDispatcher, WebhookConfig
        for t in ReportDispatcher([WebhookConfig(url=webhook)]).notify(report):
            t.join(timeout=15)
    if log_db:
        from .reports import MismatchLog
        log = MismatchLog(log_db)
        try:
            log.append(report)
        finally:
            log.close()
        if not as_json:
            console.print(f"[dim]Logged to {log_db}[/]")


@cli.command()
@click.argument("address", type=ADDRESS)
@click.option("--ranges", type=click.Path(), default=None, help="Range table JSON (default: built-in)")
def lookup(address: int, ranges: str | None):
    """Show the allocation containing an address."""
    tables = _tables(ranges, None, None)
    allocation = lookup_allocation(tables.ranges, address)
    if allocation is None:
        console.print(f"[yellow]{format_address(address)}[/] is not in any allocated range")
        return
    mil = " [red]MIL[/]" if allocation.is_military else ""
    console.print(
        f"{format_address(address)}: [bold]{allocation.country_code}[/]{mil} "
        f"({allocation.start_hex}-{allocation.end_hex}, {allocation.size} addresses)"
    )


@cli.command("find-gaps")
@click.argument("start", type=ADDRESS, required=False)
@click.argument("end", type=ADDRESS, required=False)
@click.option("--min-size", type=SIZE, default=None, help="Smallest gap to report (e.g. 1024 or 0x400)")
@click.option("--ranges", type=click.Path(), default=None, help="Range table JSON (default: built-in)")
@click.option("--json", "as_json", is_flag=True, help="Print gaps as JSON")
def find_gaps_cmd(start: int | None, end: int | None, min_size: int | None,
                  ranges: str | None, as_json: bool):
    """List unallocated spans between START and END (default: configured region)."""
    start, end = _region(start, end)
    if min_size is None:
        min_size = _config_value("gaps", "min_size", 0)
    tables = _tables(ranges, None, None)
    try:
        found = find_gaps(tables.ranges, start, end, min_size)
    except ValueError as e:
        _fail(e)

    if as_json:
        click.echo(exporters.export_gaps_json(found), nl=False)
        return

    table = Table(title=f"Gaps in {format_address(start)}-{format_address(end)} (≥ {min_size})")
    table.add_column("#", justify="right")
    table.add_column("Start", style="cyan")
    table.add_column("End", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Size (hex)", justify="right")
    for i, gap in enumerate(found, 1):
        table.add_row(str(i), gap.start_hex, gap.end_hex, str(gap.size), f"0x{gap.size:X}")
    console.print(table)
    console.print(f"{len(found)} gap(s)")


@cli.command()
@click.argument("start", type=ADDRESS, required=False)
@click.argument("end", type=ADDRESS, required=False)
@click.option("--pending", type=click.Path(), default=None,
              help='JSON list of {"code", "priority", "name"} (default: built-in list)')
@click.option("--size", "block_size", type=SIZE, default=None, help="Addresses per new allocation")
@click.option("--ranges", type=click.Path(), default=None, help="Range table JSON (default: built-in)")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write proposed ranges as JSON")
def plan(start: int | None, end: int | None, pending: str | None, block_size: int | None,
         ranges: str | None, output: str | None):
    """Propose allocations for pending countries missing from a region."""
    start, end = _region(start, end)
    if block_size is None:
        block_size = _config_value("allocation", "block_size", DEFAULT_ALLOCATION_SIZE)
    tables = _tables(ranges, None, None)

    try:
        pending_list = _load_pending(pending) if pending else DEFAULT_PENDING
        missing = missing_countries(tables.ranges, pending_list, start, end)
        found = find_gaps(tables.ranges, start, end, min_size=0)
        proposed = allocate(missing, found, block_size=block_size)
    except (OSError, ValueError) as e:
        _fail(e)

    if not missing:
        console.print("[green]All pending countries already have allocations in this region.[/]")
        return

    table = Table(title="Proposed allocations")
    table.add_column("Country", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Start")
    table.add_column("End")
    priorities = {p.code.upper(): p.priority for p in missing}
    for r in proposed:
        table.add_row(r.country_code, str(priorities.get(r.country_code, "")), r.start_hex, r.end_hex)
    console.print(table)

    unplaced = len(missing) - len(proposed)
    if unplaced:
        console.print(f"[yellow]{unplaced} country(ies) did not fit in the available gaps[/]")
    if output:
        exporters.export_json(proposed, path=output)
        console.print(f"Wrote {len(proposed)} allocation(s) to {output}")


def _load_pending(path: str) -> list[PendingCountry]:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of pending countries")
    result = []
    for i, item in enumerate(data):
        if not isinstance(item, dict) or not isinstance(item.get("code"), str):
            raise ValueError(f"{path}: entry {i} needs a 'code'")
        priority = item.get("priority", 0)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValueError(f"{path}: entry {i} priority must be an integer")
        result.append(PendingCountry(item["code"].upper(), priority, item.get("name", "")))
    return result


@cli.command()
@click.option("--db-path", type=click.Path(), default=None, help="Mismatch log path")
@click.option("--limit", type=int, default=20, help="Number of reports to show")
@click.option("--icao", type=str, default=None, help="Only reports for this address")
def mismatches(db_path: str | None, limit: int, icao: str | None):
    """Show logged mismatch reports."""
    from .reports import MismatchLog

    db_path = db_path or load_config()["reports"]["path"]
    if not Path(db_path).exists():
        _fail(FileNotFoundError(f"No mismatch log at {db_path}"))

    log = MismatchLog(db_path)
    rows = log.recent(limit=limit, address=icao)
    total = log.count()
    log.close()

    table = Table(title=f"Mismatches ({len(rows)} of {total})")
    table.add_column("ICAO", style="cyan")
    table.add_column("Reg")
    table.add_column("Callsign")
    table.add_column("Allocation")
    table.add_column("Registration")
    table.add_column("Operator")
    table.add_column("Time")
    for r in rows:
        table.add_row(
            r["address"],
            r["registration"] or "-",
            r["callsign"] or "-",
            r["allocation_country"] or "-",
            r["registration_country"] or "-",
            r["operator_country"] or "-",
            r["timestamp"],
        )
    console.print(table)


@cli.command()
@table_options
@click.option("--reports", type=click.Path(), default=None, help="Mismatch log path")
@click.option("--host", default="127.0.0.1", help="Host to bind")
@click.option("--port", type=int, default=8080, help="Port to bind")
@click.option("--debug", is_flag=True, help="Enable Flask debug mode")
def serve(ranges: str | None, prefixes: str | None, operators: str | None,
          reports: str | None, host: str, port: int, debug: bool):
    """Launch the JSON API."""
    from .web.app import create_app

    tables = _tables(ranges, prefixes, operators)
    app = create_app(tables=tables, reports_path=reports or load_config()["reports"]["path"])
    console.print(f"[bold green]icao-consensus API[/] → http://{host}:{port}/api/stats")
    app.run(host=host, port=port, debug=debug)


def _print_verdict(inp: ClassificationInput, verdict: ClassificationVerdict):
    """Print the per-source breakdown and the verdict."""
    console.print(f"\n[bold]ICAO {format_address(inp.address)}[/]")
    console.print(f"  Registration: {inp.registration or 'N/A'}")
    console.print(f"  Callsign:     {inp.callsign or 'N/A'}")

    table = Table(title="Sources")
    table.add_column("Source", style="cyan")
    table.add_column("Country")
    table.add_column("Matched on")

    alloc = verdict.allocation
    table.add_row(
        "allocation",
        verdict.allocation_country or "-",
        f"{alloc.start_hex}-{alloc.end_hex}" + (" (military)" if alloc.is_military else "")
        if alloc else "no range",
    )
    reg = verdict.registration_match
    table.add_row(
        "registration",
        verdict.registration_country or "-",
        f"prefix {reg.matched_prefix}" if reg else ("no prefix match" if inp.registration else "not given"),
    )
    cs = verdict.callsign_match
    table.add_row(
        "operator",
        verdict.operator_country or "-",
        f"{cs.code} {cs.operator.name}" if cs else ("no operator match" if inp.callsign else "not given"),
    )
    console.print(table)

    if verdict.status is Status.MISMATCH:
        console.print(f"[bold red]MISMATCH[/]: {', '.join(sorted(verdict.country_set))}")
        for line in verdict.detail.describe():
            console.print(f"  • {line}")
    elif verdict.status is Status.AGREEMENT:
        label = "partial data" if verdict.is_partial else "all sources"
        console.print(f"[bold green]AGREEMENT[/]: {next(iter(verdict.country_set))} ({label})")
    else:
        console.print("[yellow]INSUFFICIENT DATA[/]: no source resolved a country")

    shown = display_country(verdict, inp.registration)
    if shown:
        console.print(f"  Display country: {shown}")
