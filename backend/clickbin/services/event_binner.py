"""Event-level frequency binning.

Turns a click-level table into an event x bin count matrix:
1. Resolve the bin range (supplied, or observed min/max of the feature)
2. Build contiguous bins of fixed width, the last one clipped to the range end
3. Count each event's clicks per bin, tallying out-of-range clicks separately

Every event present in the input appears in the result, even when all of its
clicks fall outside the range.
"""

import logging
import math
import numbers
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from clickbin.errors import (
    EmptyInputError,
    InvalidParameterError,
    MissingFieldError,
    ValueOutOfRangeError,
)
from clickbin.models.binning import EventCountTable, OutOfRangePolicy
from clickbin.models.click import ClickRecord, EventId

logger = logging.getLogger(__name__)

OUT_OF_RANGE_POLICIES = ("exclude", "error")

# Relative tolerance when deciding whether the range is an exact multiple of the width
_RATIO_TOLERANCE = 1e-9

Click = ClickRecord | Mapping[str, Any]


def _field(click: Click, name: str, index: int) -> Any:
    if isinstance(click, Mapping):
        if name not in click:
            raise MissingFieldError(name, index)
        return click[name]
    if name in ("event_id", "species"):
        return getattr(click, name)
    features = click.model_extra or {}
    if name not in features:
        raise MissingFieldError(name, index)
    return features[name]


def _numeric(value: Any, name: str, index: int) -> float:
    if value is None or isinstance(value, bool):
        raise MissingFieldError(name, index, "value is not numeric")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MissingFieldError(name, index, f"value {value!r} is not numeric") from None
    if math.isnan(number):
        raise MissingFieldError(name, index, "value is NaN")
    return number


def _event_id(value: Any, index: int) -> EventId:
    if value is None:
        raise MissingFieldError("event_id", index)
    if isinstance(value, str):
        return value
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        return int(value)
    raise MissingFieldError(
        "event_id", index, f"{value!r} is not a string or integer id"
    )


def extract_feature(
    clicks: Sequence[Click], feature_name: str
) -> tuple[list[EventId], np.ndarray]:
    """Pull (event_ids, values) out of the clicks, validating every record.

    Event ids must be strings or integers, and two distinct ids may not share
    a text form (1 and "1"), since results are keyed by that text in JSON.
    """
    event_ids: list[EventId] = []
    by_text: dict[str, EventId] = {}
    values = np.empty(len(clicks), dtype=float)
    for i, click in enumerate(clicks):
        event_id = _event_id(_field(click, "event_id", i), i)
        other = by_text.setdefault(str(event_id), event_id)
        if other != event_id:
            raise InvalidParameterError(
                f"event_id {event_id!r} on click {i} clashes with event_id {other!r}"
            )
        event_ids.append(event_id)
        values[i] = _numeric(_field(click, feature_name, i), feature_name, i)
    return event_ids, values


def n_bins_for(range_start: float, range_end: float, bin_width: float) -> int:
    """ceil((end - start) / width), snapping float noise to the nearest integer."""
    ratio = (range_end - range_start) / bin_width
    nearest = round(ratio)
    if nearest >= 1 and math.isclose(ratio, nearest, rel_tol=_RATIO_TOLERANCE):
        return int(nearest)
    return max(1, math.ceil(ratio))


def build_bin_edges(range_start: float, range_end: float, bin_width: float) -> np.ndarray:
    """Edges of consecutive [left, left + width) bins covering [start, end].

    The final edge is clipped to range_end, so the last bin may be narrower.
    """
    _validate_width(bin_width)
    if not (math.isfinite(range_start) and math.isfinite(range_end)):
        raise InvalidParameterError("range bounds must be finite")
    if range_start >= range_end:
        raise InvalidParameterError(
            f"range_start ({range_start}) must be less than range_end ({range_end})"
        )
    n_bins = n_bins_for(range_start, range_end, bin_width)
    edges = range_start + np.arange(n_bins + 1, dtype=float) * bin_width
    edges[-1] = range_end
    return edges


def _validate_width(bin_width: float) -> None:
    if isinstance(bin_width, bool) or not isinstance(bin_width, numbers.Real):
        raise InvalidParameterError(f"bin_width must be a number, got {bin_width!r}")
    if not math.isfinite(bin_width) or bin_width <= 0:
        raise InvalidParameterError(f"bin_width must be positive, got {bin_width}")


def _single_bin_edges(value: float, bin_width: float) -> np.ndarray:
    """One bin starting at value, for an observed range of zero width."""
    if not math.isfinite(value):
        raise InvalidParameterError("range bounds must be finite")
    end = value + bin_width
    if end == value:
        # Width below the float spacing at this magnitude
        end = float(np.nextafter(value, np.inf))
    logger.debug(f"Zero-width observed range at {value}; using a single bin [{value}, {end}]")
    return np.array([value, end])


def _resolve_range(
    values: np.ndarray,
    range_start: float | None,
    range_end: float | None,
) -> tuple[float, float]:
    start = float(values.min()) if range_start is None else float(range_start)
    end = float(values.max()) if range_end is None else float(range_end)
    if start >= end:
        raise InvalidParameterError(
            f"range_start ({start}) must be less than range_end ({end})"
        )
    return start, end


def assign_bins(values: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Bin index per value; -1 for values outside [edges[0], edges[-1]].

    A value on an interior edge belongs to the bin it left-bounds. The final
    bin is closed on the right.
    """
    n_bins = len(edges) - 1
    idx = np.searchsorted(edges, values, side="right") - 1
    idx[values == edges[-1]] = n_bins - 1
    idx[(values < edges[0]) | (values > edges[-1])] = -1
    return idx


def bin_events(
    clicks: Sequence[Click],
    feature_name: str,
    bin_width: float,
    range_start: float | None = None,
    range_end: float | None = None,
    out_of_range: OutOfRangePolicy = "exclude",
) -> EventCountTable:
    """Count each event's clicks per fixed-width bin of one numeric feature.

    Args:
        clicks: Ordered click records (ClickRecord or mappings) with event_id
            and a numeric value for feature_name.
        feature_name: Feature to bin on.
        bin_width: Positive bin width.
        range_start: Left edge of the first bin. Observed minimum if omitted.
        range_end: Right edge of the last bin (inclusive). Observed maximum if omitted.
        out_of_range: "exclude" counts values outside the range per event;
            "error" raises ValueOutOfRangeError on the first one.

    Returns:
        EventCountTable with one count vector per event, identical bin order.

    Raises:
        EmptyInputError: no clicks.
        MissingFieldError: a click lacks event_id or a numeric feature value.
        InvalidParameterError: bad width, inverted range or unknown policy.
    """
    if clicks is None or len(clicks) == 0:
        raise EmptyInputError("No clicks to bin")
    _validate_width(bin_width)
    if out_of_range not in OUT_OF_RANGE_POLICIES:
        raise InvalidParameterError(
            f"out_of_range must be one of {OUT_OF_RANGE_POLICIES}, got {out_of_range!r}"
        )
    if range_start is not None and range_end is not None and range_start >= range_end:
        raise InvalidParameterError(
            f"range_start ({range_start}) must be less than range_end ({range_end})"
        )

    event_ids, values = extract_feature(clicks, feature_name)
    if range_start is None and range_end is None and values.min() == values.max():
        edges = _single_bin_edges(float(values[0]), float(bin_width))
    else:
        start, end = _resolve_range(values, range_start, range_end)
        edges = build_bin_edges(start, end, bin_width)
    start, end = float(edges[0]), float(edges[-1])
    n_bins = len(edges) - 1
    bin_idx = assign_bins(values, edges)

    if out_of_range == "error" and np.any(bin_idx < 0):
        first = int(np.flatnonzero(bin_idx < 0)[0])
        raise ValueOutOfRangeError(
            f"Click {first} has {feature_name}={values[first]} outside [{start}, {end}]"
        )

    # Insertion order of the dict fixes the event order (first appearance)
    counts: dict[EventId, list[int]] = {}
    excluded: dict[EventId, int] = {}
    for event_id, b in zip(event_ids, bin_idx):
        if event_id not in counts:
            counts[event_id] = [0] * n_bins
            excluded[event_id] = 0
        if b < 0:
            excluded[event_id] += 1
        else:
            counts[event_id][int(b)] += 1

    table = EventCountTable(
        feature_name=feature_name,
        bin_width=float(bin_width),
        range_start=start,
        range_end=end,
        bin_edges=[float(e) for e in edges],
        event_ids=list(counts),
        counts=counts,
        excluded=excluded,
        total_clicks=len(clicks),
    )

    logger.debug(
        f"Binned {len(clicks)} clicks on '{feature_name}' into {n_bins} bins "
        f"for {len(counts)} events ({table.total_excluded} excluded)"
    )
    return table
