"""Ordination of events from a precomputed dissimilarity matrix.

Wraps scikit-learn's SMACOF-based MDS: non-metric (NMDS) by default, metric
MDS on request. The random state is always passed in explicitly.
"""

import logging

import numpy as np
from sklearn.manifold import MDS

from clickbin.errors import InvalidParameterError
from clickbin.models.analysis import DissimilarityMatrix, OrdinationResult

logger = logging.getLogger(__name__)


def ordinate(
    distances: DissimilarityMatrix,
    n_components: int = 2,
    metric: bool = False,
    n_init: int = 4,
    max_iter: int = 300,
    random_state: int | np.random.RandomState | None = 42,
) -> OrdinationResult:
    """Embed events in n_components dimensions.

    Returns coordinates keyed by event id and the final stress of the fit.
    """
    D = distances.to_array()
    n_events = len(distances.event_ids)
    if n_components < 1 or n_components >= n_events:
        raise InvalidParameterError(
            f"n_components must be in [1, {n_events - 1}] for {n_events} events, got {n_components}"
        )
    if n_init < 1 or max_iter < 1:
        raise InvalidParameterError("n_init and max_iter must be positive")

    method = "mds" if metric else "nmds"
    logger.info(f"Running {method.upper()} on {n_events} events ({n_components} components)")

    mds = MDS(
        n_components=n_components,
        metric=metric,
        dissimilarity="precomputed",
        n_init=n_init,
        max_iter=max_iter,
        random_state=random_state,
    )
    embedding = mds.fit_transform(D)
    stress = float(mds.stress_)

    logger.info(f"{method.upper()} stress: {stress:.4f}")
    return OrdinationResult(
        event_ids=list(distances.event_ids),
        method=method,
        n_components=n_components,
        coordinates={
            eid: [float(v) for v in embedding[i]]
            for i, eid in enumerate(distances.event_ids)
        },
        stress=stress,
    )
