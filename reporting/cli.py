#!/usr/bin/env python3
"""
CLI for running property valuations.

Usage:
    python -m reporting.cli value <subject_json> [options]
    python -m reporting.cli import-csv <comparables_csv>

Examples:
    # Recommended method for the subject, comparables from CSV
    python -m reporting.cli value subject.json --comparables comps.csv

    # Reconcile every method the inputs allow
    python -m reporting.cli value subject.json --comparables comps.json \\
        --land-value 1200000 --construction-cost 9000 --monthly-rent 7500 --method hybrid

    # Inspect how a CSV export is parsed
    python -m reporting.cli import-csv transactions.csv
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from core.ingestion import import_comparables_from_json, parse_csv, parse_property
from core.valuation import (
    CoefficientTableError,
    SalesComparisonDetails,
    ValuationContext,
    ValuationEngine,
    ValuationError,
    ValuationMethod,
    load_tables,
)
from utils.config import Config

from .sections import ReportGenerator


logger = logging.getLogger(__name__)

METHOD_CHOICES = (
    "auto",
    "comparable-sales",
    "professional",
    "cost-approach",
    "income-approach",
    "hybrid",
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _print_json(payload) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value}") from None


def load_comparables(path: Path, sale_date_default=None):
    """
    Load comparables from a CSV or JSON file.

    Returns:
        Tuple of (comparables, error dicts)
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".csv":
        result = parse_csv(text, sale_date_default=sale_date_default)
    else:
        result = import_comparables_from_json(text)
    return list(result.comparables), [e.to_dict() for e in result.errors]


def _run_method(method, engine, subject, comparables, args, config):
    """Run a single method, or raise ValuationError when its inputs are missing."""
    if method == ValuationMethod.COMPARABLE_SALES:
        return engine.calculate_comparable_sales_approach(subject, comparables)
    if method == ValuationMethod.COST_APPROACH:
        if args.land_value is None or args.construction_cost is None:
            raise ValuationError("Cost approach needs --land-value and --construction-cost")
        return engine.calculate_cost_approach(subject, args.land_value, args.construction_cost)
    if method == ValuationMethod.INCOME_APPROACH:
        if args.monthly_rent is None:
            raise ValuationError("Income approach needs --monthly-rent")
        return engine.calculate_income_approach(
            subject,
            args.monthly_rent,
            vacancy_rate=_or_default(args.vacancy_rate, config.default_vacancy_rate),
            operating_expense_ratio=_or_default(args.opex_ratio, config.default_opex_ratio),
            capitalization_rate=_or_default(args.cap_rate, config.default_cap_rate),
        )
    raise ValuationError(f"Unsupported method: {method.value}")


def _or_default(value, default):
    return default if value is None else value


def _run_hybrid(engine, subject, comparables, args, config):
    results = []
    if any(c.selected for c in comparables):
        results.append(engine.calculate_comparable_sales_approach(subject, comparables))
    if args.land_value is not None and args.construction_cost is not None:
        results.append(_run_method(ValuationMethod.COST_APPROACH, engine, subject, comparables, args, config))
    if args.monthly_rent is not None:
        results.append(_run_method(ValuationMethod.INCOME_APPROACH, engine, subject, comparables, args, config))
    return engine.reconcile_valuations(results), results


def _report_comparables(valuations, comparables):
    """Comparables for the report, carrying the adjustments the sales comparison applied."""
    adjusted = {}
    for valuation in valuations:
        if isinstance(valuation.details, SalesComparisonDetails):
            adjusted.update((c.id, c) for c in valuation.details.comparables)
    return [adjusted.get(c.id, c) for c in comparables]


def cmd_value(args):
    """Value a subject property and print the result as JSON."""
    config = Config.load()

    subject_path = Path(args.subject_file)
    if not subject_path.exists():
        print(f"Error: File not found: {subject_path}", file=sys.stderr)
        return 1

    try:
        data = json.loads(subject_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    subject, validation = parse_property(data)
    if subject is None:
        print("Error: Invalid property data:", file=sys.stderr)
        for error in validation.errors:
            print(f"  - {error}", file=sys.stderr)
        return 1

    comparables, import_errors = [], []
    if args.comparables:
        comp_path = Path(args.comparables)
        if not comp_path.exists():
            print(f"Error: File not found: {comp_path}", file=sys.stderr)
            return 1
        comparables, import_errors = load_comparables(comp_path, args.valuation_date)
        if import_errors:
            print(f"Warning: {len(import_errors)} comparable rows rejected", file=sys.stderr)

    try:
        engine = ValuationEngine(
            tables=load_tables(args.tables or config.tables_path),
            reference_date=args.valuation_date,
        )
    except (CoefficientTableError, OSError) as e:
        print(f"Error: Could not load coefficient tables: {e}", file=sys.stderr)
        return 1

    screening = engine.screen_comparables(subject, comparables)
    comparables = list(screening.comparables)

    recommendation = engine.recommend_valuation_method(
        subject,
        ValuationContext(
            comparables=tuple(comparables),
            has_land_value=args.land_value is not None,
            has_construction_cost_per_sqm=args.construction_cost is not None,
            has_monthly_rent=args.monthly_rent is not None,
        ),
    )

    try:
        if args.method == "hybrid":
            result, valuations = _run_hybrid(engine, subject, comparables, args, config)
            valuations = valuations + [result]
        elif args.method == "professional":
            result = engine.calculate_comparable_sales_approach_professional(subject, comparables)
            valuations = [result]
        else:
            method = (
                recommendation.recommended_method
                if args.method == "auto"
                else ValuationMethod.from_string(args.method)
            )
            result = _run_method(method, engine, subject, comparables, args, config)
            valuations = [result]
    except ValuationError as e:
        logger.warning("Valuation of %s failed: %s", subject.id, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    payload = {
        "recommendation": recommendation.to_dict(),
        "result": result.to_dict(),
        "import_errors": import_errors,
        "outlier_ids": list(screening.outlier_ids),
    }
    if args.sections:
        generator = ReportGenerator(currency=config.currency)
        payload["sections"] = [
            s.to_dict()
            for s in generator.generate_standard_sections(
                subject, valuations, _report_comparables(valuations, comparables)
            )
        ]

    _print_json(payload)
    return 0


def cmd_import_csv(args):
    """Parse a CSV export and print the comparables and row errors."""
    input_path = Path(args.csv_file)

    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    result = parse_csv(input_path.read_text(encoding="utf-8"), sale_date_default=args.sale_date)
    _print_json(result.to_dict())

    if result.errors and not result.comparables:
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Appraisal Valuation Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli value subject.json --comparables comps.csv
    python -m reporting.cli import-csv transactions.csv

Environment:
    VALUATION_TABLES_PATH, LOG_LEVEL, DEFAULT_VACANCY_RATE,
    DEFAULT_OPEX_RATIO, DEFAULT_CAP_RATE, CURRENCY
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Value command
    value_parser = subparsers.add_parser(
        "value",
        help="Value a subject property",
    )
    value_parser.add_argument("subject_file", help="Path to subject property JSON")
    value_parser.add_argument("--comparables", help="Comparables file (.csv or .json)")
    value_parser.add_argument(
        "--method",
        choices=METHOD_CHOICES,
        default="auto",
        help="Valuation method (default: recommended for the property type)",
    )
    value_parser.add_argument("--land-value", type=float, help="Land value")
    value_parser.add_argument("--construction-cost", type=float, help="Construction cost per sqm")
    value_parser.add_argument("--monthly-rent", type=float, help="Monthly rent")
    value_parser.add_argument("--vacancy-rate", type=float, help="Vacancy rate (fraction)")
    value_parser.add_argument("--opex-ratio", type=float, help="Operating expense ratio (fraction)")
    value_parser.add_argument("--cap-rate", type=float, help="Capitalisation rate (fraction)")
    value_parser.add_argument(
        "--valuation-date",
        type=_parse_date,
        help="Valuation date YYYY-MM-DD (default: today)",
    )
    value_parser.add_argument("--tables", help="Coefficient tables JSON override")
    value_parser.add_argument(
        "--sections",
        action="store_true",
        help="Include generated report sections in the output",
    )
    value_parser.set_defaults(func=cmd_value)

    # Import command
    import_parser = subparsers.add_parser(
        "import-csv",
        help="Parse comparables from a CSV export",
    )
    import_parser.add_argument("csv_file", help="Path to CSV file")
    import_parser.add_argument(
        "--sale-date",
        type=_parse_date,
        help="Sale date for rows without one (default: today)",
    )
    import_parser.set_defaults(func=cmd_import_csv)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    configure_logging(Config.load().log_level)
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
