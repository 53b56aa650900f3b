"""
Pipeline runner CLI - makes the metric computation run human-visible.
Usage:
  python pipeline/run.py compute 2025-01-01 2025-03-31
  python pipeline/run.py recompute --days 30
  python pipeline/run.py today
"""

import os
import sys
import logging
import argparse
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pipeline.compute_metrics_dag import run_compute_metrics, ComputeMetricsConfig
from pipeline.engine_config import load_engine_config, EngineConfigError
from storage.loaders import init_database, get_connection, PersistenceError


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date format: {value}. Use YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Compute monetary and FX metrics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python pipeline/run.py compute 2025-01-01 2025-03-31
  python pipeline/run.py recompute --days 60
  python pipeline/run.py today
        """
    )
    parser.add_argument('--config', default=None, help='Path to engine config YAML')
    parser.add_argument('--db-path', default=None, help='Override database path')

    subparsers = parser.add_subparsers(dest='command', required=True)

    compute = subparsers.add_parser('compute', help='Compute metrics for a date range')
    compute.add_argument('from_date', type=_parse_date)
    compute.add_argument('to_date', type=_parse_date)

    recompute = subparsers.add_parser('recompute', help='Recompute the recent window')
    recompute.add_argument('--days', type=int, default=30,
                           help='Business days to recompute (default: 30)')

    subparsers.add_parser('today', help='Compute metrics for today only')

    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        engine_config = load_engine_config(args.config)
    except EngineConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    if args.db_path:
        engine_config.db_path = args.db_path

    try:
        if args.command == 'compute':
            config = ComputeMetricsConfig(from_date=args.from_date, to_date=args.to_date)
        elif args.command == 'recompute':
            config = ComputeMetricsConfig.recent_window(days=args.days)
        else:
            config = ComputeMetricsConfig.today()
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    db_path = Path(engine_config.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(str(db_path))
    init_database(conn)

    print(f"🚀 Running compute_metrics ({args.command})")
    print(f"📅 Date range: {config.from_date} to {config.to_date} ({config.days_range} days)")
    print()

    try:
        result = run_compute_metrics(config, conn, engine_config=engine_config)
    except PersistenceError as e:
        print("❌ Pipeline Failed:")
        print(f"   Error: {e}")
        conn.close()
        sys.exit(1)

    print("📊 Pipeline Results:")
    print(f"   Status: {result['status'].upper()}")
    print(f"   Run ID: {result['run_id']}")
    print(f"   Duration: {result['duration_seconds']:.1f}s")
    print()

    print("✅ Data Processing:")
    print(f"   Points loaded: {result['rows_loaded']}")
    print(f"   Metrics computed: {result['metrics_computed']}")
    print(f"   Inserted / updated: {result['inserted']} / {result['updated']}")
    print()

    _display_calculator_results(result)

    print(f"💾 Data stored in: {db_path}")
    conn.close()


def _display_calculator_results(result: dict):
    """Display per-calculator counts."""
    if not result['calculators']:
        return

    print("🧮 Calculators:")
    for name, count in result['calculators'].items():
        marker = "⏭️" if name in result['skipped_calculators'] else "✔️"
        print(f"   {marker} {name:22} {count:6d} points")
    print()


if __name__ == '__main__':
    main()
