import logging

import numpy as np
from scipy.spatial.distance import pdist, squareform

from clickbin.errors import InvalidParameterError
from clickbin.models.analysis import DissimilarityMatrix
from clickbin.models.binning import EventCountTable

logger = logging.getLogger(__name__)

SUPPORTED_METRICS = ("braycurtis", "jaccard", "euclidean", "canberra", "cityblock")


def dissimilarity_matrix(
    table: EventCountTable, metric: str = "braycurtis", binary: bool = False
) -> DissimilarityMatrix:
    """Pairwise event dissimilarities from an event x bin count table.

    binary=True compares presence/absence per bin instead of counts.
    Two empty events are identical (0.0); scipy's NaN for an empty row paired
    with a non-empty one is reported as maximal dissimilarity (1.0) for the
    bounded metrics.
    """
    if metric not in SUPPORTED_METRICS:
        raise InvalidParameterError(
            f"Unsupported metric {metric!r}; choose one of {SUPPORTED_METRICS}"
        )

    matrix, event_ids = table.to_matrix()
    if len(event_ids) < 2:
        raise InvalidParameterError(
            f"Need at least 2 events for a dissimilarity matrix, got {len(event_ids)}"
        )

    X = (matrix > 0).astype(float) if binary else matrix.astype(float)
    if metric == "jaccard":
        X = X > 0

    with np.errstate(divide="ignore", invalid="ignore"):
        condensed = pdist(X, metric=metric)
    D = squareform(condensed)

    nan_mask = np.isnan(D)
    if nan_mask.any():
        empty = ~X.any(axis=1)
        both_empty = np.logical_and.outer(empty, empty)
        D[nan_mask & both_empty] = 0.0
        D[nan_mask & ~both_empty] = 1.0
        logger.debug(f"Filled {int(nan_mask.sum())} undefined dissimilarities involving empty events")
    np.fill_diagonal(D, 0.0)

    return DissimilarityMatrix(
        event_ids=event_ids,
        metric=metric,
        binary=binary,
        values=D.tolist(),
    )
