#!/usr/bin/env python3
"""
CLI tool for displaying computed metrics.
Usage: python analysis/show_metrics.py [METRIC_ID ...] [options]
"""

import sys
import json
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from pipeline.engine_config import load_engine_config, EngineConfigError
from storage.loaders import get_connection
from storage.metrics_reader import get_latest_metrics, list_metric_ids


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Display the latest value of computed metrics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python analysis/show_metrics.py
  python analysis/show_metrics.py ratio.reserves_to_base fx.brecha_mep
  python analysis/show_metrics.py delta.base_30d.pct --format json
        """
    )

    parser.add_argument('metric_ids', nargs='*',
                        help='Metric ids to show (default: every stored metric)')
    parser.add_argument('--db-path', default=None,
                        help='SQLite database (default: from engine config)')
    parser.add_argument('--format',
                        choices=['summary', 'json'],
                        default='summary',
                        help='Output format (default: summary)')

    args = parser.parse_args(argv)

    db_path = args.db_path
    if db_path is None:
        try:
            db_path = load_engine_config().db_path
        except EngineConfigError as e:
            print(f"❌ {e}", file=sys.stderr)
            sys.exit(1)

    if not Path(db_path).exists():
        print(f"❌ Database not found: {db_path}", file=sys.stderr)
        print("💡 Run metrics first: python pipeline/run.py recompute", file=sys.stderr)
        sys.exit(1)

    conn = get_connection(db_path)
    try:
        metric_ids = args.metric_ids or list_metric_ids(conn)
        latest = get_latest_metrics(conn, metric_ids)
    finally:
        conn.close()

    if args.format == 'json':
        print(json.dumps(latest, indent=2))
    else:
        _display_summary(latest)


def _display_summary(latest: dict):
    """Display one line per metric, grouped by family."""
    print("📊 Latest Metrics")
    print("=" * 60)

    current_family = None
    for item in latest['items']:
        family = item['metric_id'].split('.')[0]
        if family != current_family:
            print(f"\n{_family_label(family)}")
            current_family = family

        print(f"   {item['metric_id']:36} {_format_value(item):>14}  ({item['date']})")

    if latest['missing']:
        print("\n⚠️  No data:")
        for metric_id in latest['missing']:
            print(f"   {metric_id}")


def _family_label(family: str) -> str:
    labels = {
        'delta': '📈 Deltas',
        'mon': '🏦 Monetary aggregates',
        'ratio': '⚖️  Ratios',
        'fx': '💱 FX',
        'data': '📋 Data health',
    }
    return labels.get(family, family)


def _format_value(item: dict) -> str:
    value = item['value']
    metadata = item.get('metadata', {})

    if metadata.get('units') == 'percent':
        return f"{value:+.2f}%"
    if metadata.get('units') == 'hours':
        return f"{value:.1f}h"
    if metadata.get('scale') == 'million':
        return f"{value:,.1f}M"
    return f"{value:.4f}"


if __name__ == '__main__':
    main()
