"""Terminal table formatting and JSON report writer for click analyses."""

import json
from pathlib import Path

from clickbin.models.analysis import ClusteringResult, OrdinationResult
from clickbin.models.binning import EventCountTable


def _fmt(val: float, decimals: int = 3) -> str:
    return f"{val:.{decimals}f}"


def _bin_label(left: float, right: float) -> str:
    return f"{left:g}-{right:g}"


def print_count_table(table: EventCountTable, max_bins: int = 12) -> None:
    """Print the event x bin count matrix (first max_bins bins) to terminal."""
    bins = table.bins()
    shown = bins[:max_bins]
    widths = [12] + [max(7, len(_bin_label(*b)) + 2) for b in shown] + [7, 9]
    headers = ["Event"] + [_bin_label(*b) for b in shown] + ["Total", "Excluded"]

    sep = "+" + "+".join("-" * w for w in widths) + "+"
    header_row = "|" + "|".join(h.center(w) for h, w in zip(headers, widths)) + "|"

    print(f"\n{'=' * 56}")
    print(f"  Feature: {table.feature_name}   Bin width: {_fmt(table.bin_width)}")
    print(f"  Range: [{_fmt(table.range_start)}, {_fmt(table.range_end)}]   Bins: {table.n_bins}")
    if len(bins) > max_bins:
        print(f"  (showing first {max_bins} of {len(bins)} bins)")
    print(sep)
    print(header_row)
    print(sep)

    for eid in table.event_ids:
        counts = table.counts[eid]
        cells = [str(eid)[: widths[0]]] + [str(c) for c in counts[:max_bins]]
        cells += [str(sum(counts)), str(table.excluded[eid])]
        print("|" + "|".join(c.center(w) for c, w in zip(cells, widths)) + "|")
    print(sep)
    print(f"  Clicks: {table.total_clicks}   Excluded (out of range): {table.total_excluded}")
    print()


def print_ordination_table(ordination: OrdinationResult) -> None:
    """Print ordination coordinates per event."""
    print(f"\n{'=' * 56}")
    print(f"  {ordination.method.upper()} ({ordination.n_components} axes)   Stress: {_fmt(ordination.stress, 4)}")
    headers = ["Event"] + [f"Axis {i + 1}" for i in range(ordination.n_components)]
    widths = [12] + [10] * ordination.n_components
    sep = "+" + "+".join("-" * w for w in widths) + "+"
    print(sep)
    print("|" + "|".join(h.center(w) for h, w in zip(headers, widths)) + "|")
    print(sep)
    for eid in ordination.event_ids:
        cells = [str(eid)[: widths[0]]] + [_fmt(v) for v in ordination.coordinates[eid]]
        print("|" + "|".join(c.center(w) for c, w in zip(cells, widths)) + "|")
    print(sep)


def print_cluster_table(clustering: ClusteringResult) -> None:
    """Print DBSCAN cluster summaries."""
    print(f"\n{'=' * 56}")
    print(f"  DBSCAN (eps={clustering.eps}, min_samples={clustering.min_samples})")
    headers = ["Cluster", "Events", "Species", "Share"]
    widths = [9, 8, 20, 8]
    sep = "+" + "+".join("-" * w for w in widths) + "+"
    print(sep)
    print("|" + "|".join(h.center(w) for h, w in zip(headers, widths)) + "|")
    print(sep)
    for c in clustering.clusters:
        cells = [
            str(c.id),
            str(c.event_count),
            (c.dominant_species or "-")[: widths[2]],
            f"{c.species_fraction * 100:.1f}%",
        ]
        print("|" + "|".join(cell.center(w) for cell, w in zip(cells, widths)) + "|")
    print(sep)
    print(f"  Noise events: {len(clustering.noise_event_ids)}")
    print()


def write_json_report(output_path: Path, report: dict) -> None:
    """Write results to JSON file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=lambda x: x.tolist() if hasattr(x, "tolist") else x)
    print(f"Results written to {output_path}")
