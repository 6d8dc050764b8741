from typing import Literal

import numpy as np
from pydantic import BaseModel, Field

from clickbin.config import settings
from clickbin.models.binning import EventCountTable, OutOfRangePolicy
from clickbin.models.click import ClickRecord, EventId

DistanceMetric = Literal["braycurtis", "jaccard", "euclidean", "canberra", "cityblock"]


class DissimilarityMatrix(BaseModel):
    event_ids: list[EventId]
    metric: str
    binary: bool = False
    values: list[list[float]]  # square, symmetric, zero diagonal

    def to_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=float)


class OrdinationResult(BaseModel):
    event_ids: list[EventId]
    method: str  # "nmds" or "mds"
    n_components: int
    coordinates: dict[EventId, list[float]]
    stress: float

    def to_array(self) -> np.ndarray:
        return np.array([self.coordinates[eid] for eid in self.event_ids], dtype=float)


class ClusterInfo(BaseModel):
    id: int
    event_count: int
    event_ids: list[EventId]
    dominant_species: str | None = None  # most common species among members
    species_fraction: float = 0.0  # share of members carrying dominant_species


class ClusteringResult(BaseModel):
    eps: float
    min_samples: int
    labels: dict[EventId, int]  # -1 = noise
    clusters: list[ClusterInfo]
    noise_event_ids: list[EventId]


class AnalysisParams(BaseModel):
    feature_name: str = Field(default_factory=lambda: settings.default_feature)
    bin_width: float = Field(default_factory=lambda: settings.default_bin_width)
    range_start: float | None = None
    range_end: float | None = None
    out_of_range: OutOfRangePolicy = "exclude"

    # Preprocessing
    log_transform: bool = False
    log_offset: float = 0.0
    sample_per_event: int | None = None

    # Dissimilarity
    metric: DistanceMetric = Field(default_factory=lambda: settings.default_metric)
    binary: bool = False

    # Ordination (metric_mds=False -> NMDS)
    n_components: int = 2
    metric_mds: bool = False
    n_init: int = Field(default_factory=lambda: settings.nmds_n_init)
    max_iter: int = Field(default_factory=lambda: settings.nmds_max_iter)

    # Density clustering
    eps: float = Field(default_factory=lambda: settings.dbscan_eps)
    min_samples: int = Field(default_factory=lambda: settings.dbscan_min_samples)

    seed: int = Field(default_factory=lambda: settings.random_seed)


class AnalysisRequest(BaseModel):
    title: str | None = None
    clicks: list[ClickRecord]
    params: AnalysisParams = Field(default_factory=AnalysisParams)


class AnalysisResult(BaseModel):
    counts: EventCountTable
    distances: DissimilarityMatrix
    ordination: OrdinationResult
    clustering: ClusteringResult
