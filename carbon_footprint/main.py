"""
main.py – CLI entry point for the carbon footprint calculator.

Usage
-----
Calculate a footprint from a survey JSON file:
    carbon-footprint calculate --file survey.json
    carbon-footprint calculate --file survey.json --recommend --save

Inspect emission factors and reference data:
    carbon-footprint factors --category electricity
    carbon-footprint lookup electricity us
    carbon-footprint countries

Database (requires DATABASE_URL):
    carbon-footprint test-db
    carbon-footprint init-db
    carbon-footprint seed-factors

Run the HTTP API:
    carbon-footprint serve --port 8000
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from carbon_footprint import db
from carbon_footprint.calculations import build_submission, calculate_footprint
from carbon_footprint.config import Config, configure_logging, get_config
from carbon_footprint.countries import list_countries, summarize
from carbon_footprint.emission_factors import seed_factors
from carbon_footprint.recommendations import generate_recommendations, potential_savings
from carbon_footprint.schemas import FootprintResult, Recommendation
from carbon_footprint.storage import MemorySubmissionStore, build_store, load_registry
from carbon_footprint.validators import SurveyValidationError, validate_survey

console = Console()


def _require_database(config: Config) -> str | None:
    if not config.database_url:
        console.print(
            "[red]Error:[/] DATABASE_URL is not set. Set it in .env or the environment."
        )
        return None
    return config.database_url


# ─────────────────────────────────────────────────────────────
# Output helpers
# ─────────────────────────────────────────────────────────────

def _print_result(result: FootprintResult, location: str) -> None:
    summary = summarize(result, location)
    table = Table(title="Annual footprint (tonnes CO₂e)")
    table.add_column("Category", style="cyan")
    table.add_column("Emissions", justify="right", style="green")
    table.add_column("Share", justify="right")
    table.add_row("Home", f"{result.home_emissions:.1f}", f"{summary.percentages['home']}%")
    table.add_row("Transport", f"{result.transport_emissions:.1f}", f"{summary.percentages['transport']}%")
    table.add_row("Food", f"{result.food_emissions:.1f}", f"{summary.percentages['food']}%")
    table.add_row("[bold]Total[/]", f"[bold]{result.total_emissions:.1f}[/]", "")
    console.print(table)

    comparison = summary.comparison
    direction = "below" if comparison.is_better else "above"
    console.print(
        f"  {comparison.percent_difference}% {direction} the {comparison.location} average "
        f"of {comparison.average:.1f} t; {summary.carbon_budget_percentage}% of the 2.5 t budget."
    )


def _print_recommendations(recommendations: list[Recommendation]) -> None:
    table = Table(title="Recommendations", show_lines=True)
    table.add_column("Category", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Saving (t)", justify="right", style="green")
    for rec in recommendations:
        table.add_row(rec.category, rec.title, f"{rec.potential_reduction:.1f}")
    console.print(table)
    console.print(f"  Potential savings: [green]{potential_savings(recommendations):.1f}[/] t CO₂e / year")


# ─────────────────────────────────────────────────────────────
# Sub-commands
# ─────────────────────────────────────────────────────────────

def cmd_calculate(args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint calculate --file survey.json."""
    path = Path(args.file)
    if not path.exists():
        console.print(f"[red]Error:[/] file not found: {path}")
        return 1
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        console.print(f"[red]Error:[/] {path.name} is not valid JSON: {exc}")
        return 1

    try:
        survey = validate_survey(payload, default_location=config.default_location)
    except SurveyValidationError as exc:
        console.print(f"[red]{exc}[/]")
        return 1

    registry = load_registry(config)
    result = calculate_footprint(survey, registry)
    recommendations = generate_recommendations(result, survey) if args.recommend else []

    if args.json:
        out = result.model_dump(by_alias=True)
        if args.recommend:
            out["recommendations"] = [r.model_dump(by_alias=True) for r in recommendations]
        console.print_json(data=out)
    else:
        console.print(
            Panel(f"[bold]{survey.calculation_type.title()}[/] footprint – {survey.location}", style="blue")
        )
        _print_result(result, survey.location)
        if recommendations:
            _print_recommendations(recommendations)

    if args.save:
        store = build_store(config)
        if isinstance(store, MemorySubmissionStore):
            console.print("[yellow]DATABASE_URL not set; submission not saved.[/]")
            return 0
        record = store.save(build_submission(survey, result, recommendations))
        console.print(f"[green]Saved submission {record.id}.[/]")
    return 0


def cmd_factors(args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint factors [--category C]."""
    registry = load_registry(config)
    factors = registry.factors(args.category)
    if not factors:
        console.print(f"[yellow]No factors for category {args.category!r}.[/]")
        return 1
    table = Table(title="Emission factors")
    table.add_column("Category", style="cyan")
    table.add_column("Key")
    table.add_column("Value", justify="right", style="green")
    table.add_column("Unit", style="dim")
    for f in factors:
        table.add_row(f.category, f.key, f"{f.value:g}", f.unit)
    console.print(table)
    return 0


def cmd_lookup(args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint lookup CATEGORY KEY."""
    registry = load_registry(config)
    resolution = registry.resolve(args.category, args.key)
    console.print(
        f"{args.category}/{args.key} = [green]{resolution.value:g}[/] "
        f"[dim]({resolution.tier}"
        + (f", matched {resolution.matched_key}" if resolution.matched_key else "")
        + ")[/]"
    )
    return 0


def cmd_countries(_args: argparse.Namespace, _config: Config) -> int:
    """Handle: carbon-footprint countries."""
    table = Table(title="Countries")
    table.add_column("Code", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Region")
    table.add_column("Avg (t)", justify="right")
    table.add_column("kg/kWh", justify="right", style="green")
    for c in list_countries():
        table.add_row(c.code, c.name, c.region, f"{c.average_footprint:.1f}", f"{c.electricity_factor:g}")
    console.print(table)
    return 0


def cmd_test_db(_args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint test-db. Verify the PostgreSQL connection."""
    database_url = _require_database(config)
    if database_url is None:
        return 1
    ok, err = db.ping_database(database_url)
    if ok:
        console.print("[green]PostgreSQL connection OK.[/]")
        return 0
    console.print(f"[red]PostgreSQL connection failed:[/] {err}")
    return 1


def cmd_init_db(_args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint init-db. Apply schema/footprint.sql."""
    database_url = _require_database(config)
    if database_url is None:
        return 1
    console.print("[cyan]Applying schema (schema/footprint.sql) …[/]")
    ok, err = db.apply_schema(database_url)
    if ok:
        console.print("[green]Schema applied successfully.[/]")
        return 0
    console.print(f"[red]Schema apply failed:[/] {err}")
    return 1


def cmd_seed_factors(_args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint seed-factors. Upsert the built-in factors."""
    database_url = _require_database(config)
    if database_url is None:
        return 1
    conn = db.get_connection(database_url)
    try:
        count = db.upsert_emission_factors(conn, seed_factors())
        conn.commit()
    except Exception as exc:  # noqa: BLE001
        conn.rollback()
        console.print(f"[red]Seeding failed:[/] {exc}")
        return 1
    finally:
        conn.close()
    console.print(f"[green]Upserted {count} emission factors.[/]")
    return 0


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Handle: carbon-footprint serve. Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "footprint_api.main:app",
        host=args.host or config.api_host,
        port=args.port or config.api_port,
        reload=args.reload,
        log_level=config.log_level.lower(),
    )
    return 0


# ─────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    """Construct and return the top-level argument parser."""
    root = argparse.ArgumentParser(
        prog="carbon-footprint",
        description="Carbon footprint calculator – local CLI tool.",
    )
    root.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log each formula term (DEBUG level)",
    )
    sub = root.add_subparsers(dest="command", required=True)

    # ── calculate ──────────────────────────────────────────────
    p_calc = sub.add_parser("calculate", help="Calculate a footprint from a survey JSON file.")
    p_calc.add_argument("--file", required=True, help="Path to the survey JSON file")
    p_calc.add_argument("--recommend", action="store_true", help="Also generate recommendations")
    p_calc.add_argument("--save", action="store_true", help="Store the submission (requires DATABASE_URL)")
    p_calc.add_argument("--json", action="store_true", help="Print JSON instead of tables")

    # ── factors / lookup ──────────────────────────────────────
    p_factors = sub.add_parser("factors", help="List emission factors.")
    p_factors.add_argument("--category", default=None, help="Only this category (e.g. car, flight)")

    p_lookup = sub.add_parser("lookup", help="Resolve one factor through the fallback chain.")
    p_lookup.add_argument("category")
    p_lookup.add_argument("key")

    # ── countries ─────────────────────────────────────────────
    sub.add_parser("countries", help="List countries with average footprints.")

    # ── database ──────────────────────────────────────────────
    sub.add_parser("test-db", help="Test PostgreSQL connection using DATABASE_URL.")
    sub.add_parser("init-db", help="Apply schema/footprint.sql to the database.")
    sub.add_parser("seed-factors", help="Upsert the built-in emission factors into the database.")

    # ── serve ─────────────────────────────────────────────────
    p_serve = sub.add_parser("serve", help="Run the HTTP API.")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.add_argument("--reload", action="store_true")

    return root


# ─────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────

_DISPATCH = {
    "calculate": cmd_calculate,
    "factors": cmd_factors,
    "lookup": cmd_lookup,
    "countries": cmd_countries,
    "test-db": cmd_test_db,
    "init-db": cmd_init_db,
    "seed-factors": cmd_seed_factors,
    "serve": cmd_serve,
}


def run(argv: list[str] | None = None) -> int:
    """Parse *argv* and run the sub-command. Returns the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = get_config()
    configure_logging("DEBUG" if args.verbose else config.log_level)

    handler = _DISPATCH.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args, config)


def main() -> None:
    """Parse arguments and dispatch to the correct sub-command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
