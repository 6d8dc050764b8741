"""Click-table preparation ahead of binning.

Named-field selection, log transforms and per-event subsampling. Sampling
takes an explicit numpy Generator so each call is reproducible on its own.
"""

import logging
import math
from collections import Counter
from collections.abc import Sequence

import numpy as np

from clickbin.errors import EmptyInputError, InvalidParameterError, MissingFieldError
from clickbin.models.click import RESERVED_FIELDS, ClickRecord, EventId

logger = logging.getLogger(__name__)


def select_features(
    clicks: Sequence[ClickRecord], feature_names: Sequence[str]
) -> list[ClickRecord]:
    """Keep event_id, species and the named features only."""
    if not feature_names:
        raise InvalidParameterError("At least one feature name is required")
    reserved = [name for name in feature_names if name in RESERVED_FIELDS]
    if reserved:
        raise InvalidParameterError(f"{reserved} are not feature fields")

    selected: list[ClickRecord] = []
    for i, click in enumerate(clicks):
        features = click.features
        missing = [name for name in feature_names if name not in features]
        if missing:
            raise MissingFieldError(missing[0], i)
        selected.append(click.with_features({name: features[name] for name in feature_names}))
    return selected


def log_transform(
    clicks: Sequence[ClickRecord],
    feature_names: Sequence[str],
    base: float = 10.0,
    offset: float = 0.0,
) -> list[ClickRecord]:
    """Replace each named feature with log_base(value + offset)."""
    if base <= 0 or base == 1:
        raise InvalidParameterError(f"log base must be positive and not 1, got {base}")

    transformed: list[ClickRecord] = []
    for i, click in enumerate(clicks):
        features = click.features
        for name in feature_names:
            if name not in features or features[name] is None:
                raise MissingFieldError(name, i)
            try:
                shifted = float(features[name]) + offset
            except (TypeError, ValueError):
                raise MissingFieldError(
                    name, i, f"value {features[name]!r} is not numeric"
                ) from None
            if shifted <= 0:
                raise InvalidParameterError(
                    f"Cannot log-transform {name}={features[name]} (offset {offset}) on click {i}"
                )
            features[name] = math.log(shifted, base)
        transformed.append(click.with_features(features))
    return transformed


def group_by_event(clicks: Sequence[ClickRecord]) -> dict[EventId, list[int]]:
    """Map event_id -> positions of its clicks, in order of first appearance."""
    groups: dict[EventId, list[int]] = {}
    for i, click in enumerate(clicks):
        groups.setdefault(click.event_id, []).append(i)
    return groups


def sample_clicks(
    clicks: Sequence[ClickRecord], per_event: int, rng: np.random.Generator
) -> list[ClickRecord]:
    """Draw at most per_event clicks from each event without replacement.

    Events with fewer clicks keep all of them. Surviving clicks stay in their
    original order.
    """
    if not clicks:
        raise EmptyInputError("No clicks to sample")
    if per_event < 1:
        raise InvalidParameterError(f"per_event must be at least 1, got {per_event}")

    keep: list[int] = []
    for positions in group_by_event(clicks).values():
        if len(positions) <= per_event:
            keep.extend(positions)
        else:
            chosen = rng.choice(len(positions), size=per_event, replace=False)
            keep.extend(positions[int(c)] for c in chosen)
    keep.sort()

    logger.debug(f"Sampled {len(keep)} of {len(clicks)} clicks (max {per_event} per event)")
    return [clicks[i] for i in keep]


def event_species(clicks: Sequence[ClickRecord]) -> dict[EventId, str | None]:
    """Majority species label per event; ties go to the label seen first."""
    species: dict[EventId, str | None] = {}
    for event_id, positions in group_by_event(clicks).items():
        labels = [clicks[i].species for i in positions if clicks[i].species is not None]
        # Counter preserves insertion order, so most_common breaks ties by first appearance
        species[event_id] = Counter(labels).most_common(1)[0][0] if labels else None
    return species
