import logging
from collections import Counter

import numpy as np
from sklearn.cluster import DBSCAN

from clickbin.errors import InvalidParameterError
from clickbin.models.analysis import ClusterInfo, ClusteringResult, DissimilarityMatrix
from clickbin.models.click import EventId

logger = logging.getLogger(__name__)


def cluster_events(
    distances: DissimilarityMatrix,
    eps: float,
    min_samples: int,
    species: dict[EventId, str | None] | None = None,
) -> ClusteringResult:
    """Group events with DBSCAN on the precomputed dissimilarity matrix.

    When a species mapping is given, each cluster reports its dominant species
    and the fraction of members carrying it.
    """
    if eps <= 0:
        raise InvalidParameterError(f"eps must be positive, got {eps}")
    if min_samples < 1:
        raise InvalidParameterError(f"min_samples must be at least 1, got {min_samples}")

    event_ids = list(distances.event_ids)
    db = DBSCAN(eps=eps, min_samples=min_samples, metric="precomputed")
    labels = db.fit_predict(distances.to_array())

    clusters = summarize_clusters(event_ids, labels, species or {})
    noise = [eid for eid, label in zip(event_ids, labels) if label < 0]
    logger.info(
        f"DBSCAN (eps={eps}, min_samples={min_samples}): "
        f"{len(clusters)} clusters, {len(noise)} noise events"
    )

    return ClusteringResult(
        eps=eps,
        min_samples=min_samples,
        labels={eid: int(label) for eid, label in zip(event_ids, labels)},
        clusters=clusters,
        noise_event_ids=noise,
    )


def summarize_clusters(
    event_ids: list[EventId],
    labels: np.ndarray,
    species: dict[EventId, str | None],
) -> list[ClusterInfo]:
    """One ClusterInfo per non-noise label, sorted by cluster id."""
    members: dict[int, list[EventId]] = {}
    for eid, label in zip(event_ids, labels):
        if label >= 0:
            members.setdefault(int(label), []).append(eid)

    clusters: list[ClusterInfo] = []
    for cid in sorted(members):
        ids = members[cid]
        known = [species[eid] for eid in ids if species.get(eid) is not None]
        dominant, fraction = None, 0.0
        if known:
            dominant, count = Counter(known).most_common(1)[0]
            fraction = round(count / len(ids), 3)
        clusters.append(
            ClusterInfo(
                id=cid,
                event_count=len(ids),
                event_ids=ids,
                dominant_species=dominant,
                species_fraction=fraction,
            )
        )
    return clusters
