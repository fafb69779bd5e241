"""CLI for scoring candidate sites from a JSON file.

Usage:
    python -m sitescore.cli sites.json
    python -m sitescore.cli sites.json --json
    cat sites.json | python -m sitescore.cli -
"""

import argparse
import json
import sys

from sitescore.engine.batch import BatchResult, score_batch


def print_table(result: BatchResult) -> None:
    print(f"\n{'=' * 78}")
    print(f"  {'#':>3}  {'Station':<16} {'Flow':>8} {'S/D':>7} {'Score':>6}  Recommendation")
    print(f"{'=' * 78}")
    for item in result.items:
        station = str(item.record.get("station") or item.record.get("mrt_station") or "-")[:16]
        if item.result is None:
            print(f"  {item.index + 1:>3}  {station:<16} ERROR: {item.error}")
            continue
        r = item.result
        print(
            f"  {item.index + 1:>3}  {station:<16} {r.flow_accessibility:>8,} "
            f"{float(r.supply_demand_ratio):>7.2f} {float(r.composite_score):>6.1f}  "
            f"{r.recommendation_tier.value}"
        )
    print()
    print(f"  Total: {result.total}   Succeeded: {result.succeeded}   Failed: {result.failed}")
    print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Score candidate cafe sites")
    parser.add_argument("path", help="JSON file holding an array of site records, or - for stdin")
    parser.add_argument("--json", action="store_true", help="Print results as JSON instead of a table")
    args = parser.parse_args(argv)

    if args.path == "-":
        records = json.load(sys.stdin)
    else:
        with open(args.path, encoding="utf-8") as f:
            records = json.load(f)
    if not isinstance(records, list):
        parser.error("input must be a JSON array of site records")

    result = score_batch(records)
    if args.json:
        print(json.dumps(
            {
                "data": [item.as_dict() for item in result.items],
                "total": result.total,
                "succeeded": result.succeeded,
                "failed": result.failed,
            },
            ensure_ascii=False,
            indent=2,
        ))
    else:
        print_table(result)
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
