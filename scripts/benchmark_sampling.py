#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str((Path(__file__).resolve().parent.parent / "src")))

from backend.models.options import SAMPLING_ALGORITHMS  # noqa: E402
from backend.services.data_generator import generate_series, generate_test_lines  # noqa: E402
from backend.services.logging import configure_logging, install_global_exception_hooks  # noqa: E402
from backend.services.sampling import analyze_data, benchmark_sampling  # noqa: E402


def _parse_algorithms(value: Optional[str]) -> List[str]:
    if not value:
        return list(SAMPLING_ALGORITHMS)
    names = [name.strip() for name in value.split(",") if name.strip()]
    unknown = [name for name in names if name not in SAMPLING_ALGORITHMS]
    if unknown:
        raise argparse.ArgumentTypeError(f"Unknown algorithm(s): {', '.join(unknown)}")
    return names


def main() -> int:
    parser = argparse.ArgumentParser(description="Compare sampling algorithms on generated data.")
    parser.add_argument("--points", type=int, default=100_000, help="Dataset size (default: 100000)")
    parser.add_argument("--target", type=int, default=800, help="Target point count (default: 800)")
    parser.add_argument(
        "--algorithms",
        type=_parse_algorithms,
        default=None,
        help="Comma-separated algorithm names (default: all)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the generated data")
    parser.add_argument("--verbose", action="store_true", help="Log sampling details at DEBUG level")
    parser.add_argument(
        "--dates",
        action="store_true",
        help="Use daily date-keyed rows instead of a numeric x axis",
    )
    args = parser.parse_args()

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    install_global_exception_hooks()

    if args.points < 1 or args.target < 1:
        print("--points and --target must be positive", file=sys.stderr)
        return 1

    if args.dates:
        data = generate_test_lines(args.points, lines=1, seed=args.seed)[0]["data"]
        x_key = "date"
    else:
        data = generate_series(args.points, seed=args.seed)
        x_key = "x"

    analysis = analyze_data(data)
    volatility = "n/a" if analysis.to_dict()["volatility"] is None else f"{analysis.volatility:.3f}"
    print(f"{len(data)} points, volatility {volatility}, recommended: {analysis.recommended_algorithm}")

    report = benchmark_sampling(data, args.algorithms or list(SAMPLING_ALGORITHMS), args.target, x_key=x_key)
    print(f"\n{'algorithm':<16}{'time (ms)':>12}{'points':>10}{'ratio':>10}")
    for name, entry in sorted(report.items(), key=lambda item: item[1].processing_time):
        if not entry.success:
            print(f"{name:<16}{'failed':>12}  {entry.error}")
            continue
        print(
            f"{name:<16}{entry.processing_time:>12.2f}{entry.sampled_points:>10}"
            f"{entry.compression_ratio:>10.1f}"
        )
    return 0 if all(entry.success for entry in report.values()) else 1


if __name__ == "__main__":
    raise SystemExit(main())
