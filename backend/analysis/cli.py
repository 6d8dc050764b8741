"""CLI entry point for event-level click analysis.

Subcommands:
  bin      Bin one feature per event and print the count table
  analyze  Bin, compute dissimilarities, ordinate (NMDS/MDS) and cluster (DBSCAN)
  sample   Subsample at most N clicks per event with a seeded generator

Usage (from backend/ directory):
  python -m analysis.cli bin --input clicks.csv --feature peak_khz --bin-width 1
  python -m analysis.cli analyze --input clicks.csv --feature peak_khz \\
      --bin-width 1 --range-start 100 --range-end 150 --output-json ./results.json
  python -m analysis.cli sample --input clicks.csv --per-event 50 --output sampled.csv
"""

import argparse
import logging
import sys
from pathlib import Path

from clickbin.config import settings
from clickbin.errors import ClickBinError


def _load(args: argparse.Namespace):
    from clickbin.services.preprocessing import select_features
    from clickbin.storage.dataset_loader import load_clicks

    clicks = load_clicks(
        Path(args.input),
        event_column=args.event_column,
        species_column=args.species_column or None,
    )
    if getattr(args, "features", None):
        clicks = select_features(clicks, args.features.split(","))
    return clicks


def _cmd_bin(args: argparse.Namespace) -> None:
    from analysis.report import print_count_table, write_json_report
    from clickbin.services.event_binner import bin_events

    clicks = _load(args)
    table = bin_events(
        clicks,
        args.feature,
        args.bin_width,
        range_start=args.range_start,
        range_end=args.range_end,
        out_of_range=args.out_of_range,
    )
    print_count_table(table, max_bins=args.max_bins)

    if args.output_json:
        write_json_report(Path(args.output_json), table.model_dump(mode="json"))


def _cmd_analyze(args: argparse.Namespace) -> None:
    from analysis.report import (
        print_cluster_table,
        print_count_table,
        print_ordination_table,
        write_json_report,
    )
    from clickbin.models.analysis import AnalysisParams
    from clickbin.services.pipeline import run_analysis

    clicks = _load(args)
    params = AnalysisParams(
        feature_name=args.feature,
        bin_width=args.bin_width,
        range_start=args.range_start,
        range_end=args.range_end,
        out_of_range=args.out_of_range,
        log_transform=args.log,
        log_offset=args.log_offset,
        sample_per_event=args.per_event,
        metric=args.metric,
        binary=args.binary,
        n_components=args.components,
        metric_mds=args.metric_mds,
        eps=args.eps,
        min_samples=args.min_samples,
        seed=args.seed,
    )
    print(f"Analysing {len(clicks)} clicks from {args.input}")
    result = run_analysis(clicks, params)

    print_count_table(result.counts, max_bins=args.max_bins)
    print_ordination_table(result.ordination)
    print_cluster_table(result.clustering)

    if args.output_json:
        report = {"params": params.model_dump(mode="json"), **result.model_dump(mode="json")}
        write_json_report(Path(args.output_json), report)


def _cmd_sample(args: argparse.Namespace) -> None:
    import numpy as np

    from clickbin.services.preprocessing import sample_clicks
    from clickbin.storage.dataset_loader import write_clicks

    clicks = _load(args)
    rng = np.random.default_rng(args.seed)
    sampled = sample_clicks(clicks, args.per_event, rng)
    output = write_clicks(sampled, Path(args.output))
    print(f"Kept {len(sampled)} of {len(clicks)} clicks → {output}")


def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input", required=True, help="Click table (.csv, .json or .parquet)")
    p.add_argument("--event-column", default="event_id", help="Event identifier column (default: event_id)")
    p.add_argument("--species-column", default="species", help="Species column; empty string if absent")
    p.add_argument("--features", default=None, help="Comma-separated feature columns to keep (default: all numeric)")


def _add_binning_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--feature", default=settings.default_feature, help=f"Feature to bin (default: {settings.default_feature})")
    p.add_argument("--bin-width", type=float, default=settings.default_bin_width, help="Bin width (default: %(default)s)")
    p.add_argument("--range-start", type=float, default=None, help="Left edge of first bin (default: observed min)")
    p.add_argument("--range-end", type=float, default=None, help="Right edge of last bin (default: observed max)")
    p.add_argument("--out-of-range", choices=["exclude", "error"], default="exclude", help="Out-of-range values policy")
    p.add_argument("--max-bins", type=int, default=12, help="Bins to show in the terminal table")
    p.add_argument("--output-json", default=None, help="Write results to this JSON file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Event-level click binning and dissimilarity analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- bin ---
    p_bin = subparsers.add_parser("bin", help="Bin one feature per event")
    _add_input_args(p_bin)
    _add_binning_args(p_bin)

    # --- analyze ---
    p_analyze = subparsers.add_parser("analyze", help="Bin, ordinate and cluster events")
    _add_input_args(p_analyze)
    _add_binning_args(p_analyze)
    p_analyze.add_argument("--log", action="store_true", help="Log10-transform the feature before binning")
    p_analyze.add_argument("--log-offset", type=float, default=0.0, help="Offset added before the log transform")
    p_analyze.add_argument("--per-event", type=int, default=None, help="Subsample at most N clicks per event")
    p_analyze.add_argument(
        "--metric",
        choices=["braycurtis", "jaccard", "euclidean", "canberra", "cityblock"],
        default=settings.default_metric,
        help="Dissimilarity metric (default: %(default)s)",
    )
    p_analyze.add_argument("--binary", action="store_true", help="Use presence/absence per bin")
    p_analyze.add_argument("--components", type=int, default=2, help="Ordination axes (default: 2)")
    p_analyze.add_argument("--metric-mds", action="store_true", help="Metric MDS instead of NMDS")
    p_analyze.add_argument("--eps", type=float, default=settings.dbscan_eps, help="DBSCAN eps (default: %(default)s)")
    p_analyze.add_argument("--min-samples", type=int, default=settings.dbscan_min_samples, help="DBSCAN min_samples")
    p_analyze.add_argument("--seed", type=int, default=settings.random_seed, help="Random seed (default: %(default)s)")

    # --- sample ---
    p_sample = subparsers.add_parser("sample", help="Subsample clicks per event")
    _add_input_args(p_sample)
    p_sample.add_argument("--per-event", type=int, required=True, help="Maximum clicks kept per event")
    p_sample.add_argument("--seed", type=int, default=settings.random_seed, help="Random seed (default: %(default)s)")
    p_sample.add_argument("--output", required=True, help="Output CSV path")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else settings.log_level)

    commands = {"bin": _cmd_bin, "analyze": _cmd_analyze, "sample": _cmd_sample}
    try:
        commands[args.command](args)
    except (ClickBinError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
