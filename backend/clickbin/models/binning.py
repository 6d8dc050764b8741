from typing import Literal

import numpy as np
from pydantic import BaseModel, Field

from clickbin.config import settings
from clickbin.models.click import ClickRecord, EventId

OutOfRangePolicy = Literal["exclude", "error"]


class EventCountTable(BaseModel):
    """Event x bin count matrix produced by one binning call."""

    feature_name: str
    bin_width: float
    range_start: float
    range_end: float
    bin_edges: list[float]  # n_bins + 1 ascending edges
    event_ids: list[EventId]  # order of first appearance
    counts: dict[EventId, list[int]]
    excluded: dict[EventId, int]  # clicks outside [range_start, range_end]
    total_clicks: int

    @property
    def n_bins(self) -> int:
        return len(self.bin_edges) - 1

    @property
    def total_excluded(self) -> int:
        return sum(self.excluded.values())

    def bins(self) -> list[tuple[float, float]]:
        return list(zip(self.bin_edges[:-1], self.bin_edges[1:]))

    def to_matrix(self) -> tuple[np.ndarray, list[EventId]]:
        """Rows in event_ids order, columns in ascending bin order."""
        matrix = np.array(
            [self.counts[eid] for eid in self.event_ids], dtype=np.int64
        ).reshape(len(self.event_ids), self.n_bins)
        return matrix, list(self.event_ids)


class BinningRequest(BaseModel):
    clicks: list[ClickRecord]
    feature_name: str = Field(default_factory=lambda: settings.default_feature)
    bin_width: float = Field(default_factory=lambda: settings.default_bin_width)
    range_start: float | None = None
    range_end: float | None = None
    out_of_range: OutOfRangePolicy = "exclude"
