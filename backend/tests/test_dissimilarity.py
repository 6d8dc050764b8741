import numpy as np
import pytest

from clickbin.errors import InvalidParameterError
from clickbin.services.dissimilarity import dissimilarity_matrix
from clickbin.services.event_binner import bin_events


def _table(rows: dict[str, list[float]], width: float = 1.0, start: float = 0.0, end: float = 3.0):
    clicks = [{"event_id": eid, "f": v} for eid, values in rows.items() for v in values]
    return bin_events(clicks, "f", width, range_start=start, range_end=end)


class TestBrayCurtis:

    def test_known_values(self):
        # A=[1,1,0]  B=[0,0,1]  C=[1,0,0]
        table = _table({"A": [0.5, 1.5], "B": [2.5], "C": [0.2]})
        D = dissimilarity_matrix(table).to_array()

        assert D[0, 1] == pytest.approx(1.0)
        assert D[0, 2] == pytest.approx(1 / 3)
        assert D[1, 2] == pytest.approx(1.0)

    def test_symmetric_zero_diagonal(self, event_clicks):
        table = bin_events(event_clicks, "peak_khz", 0.5)
        D = dissimilarity_matrix(table).to_array()

        np.testing.assert_allclose(D, D.T)
        np.testing.assert_array_equal(np.diag(D), 0.0)
        assert D.shape == (6, 6)

    def test_empty_events_filled(self):
        # "out1" and "out2" have every click excluded from the range
        table = _table({"A": [0.5], "out1": [9.0], "out2": [8.0]})
        dist = dissimilarity_matrix(table)
        D = dist.to_array()

        assert not np.isnan(D).any()
        assert D[1, 2] == 0.0
        assert D[0, 1] == 1.0
        assert dist.event_ids == ["A", "out1", "out2"]


class TestOptions:

    def test_binary_presence_absence(self):
        # A=[3,0,0]  B=[1,0,0] identical in presence/absence
        table = _table({"A": [0.1, 0.2, 0.3], "B": [0.4]})
        assert dissimilarity_matrix(table).to_array()[0, 1] == pytest.approx(0.5)
        assert dissimilarity_matrix(table, binary=True).to_array()[0, 1] == pytest.approx(0.0)

    def test_jaccard(self):
        # A=[1,1,0]  B=[1,0,1]
        table = _table({"A": [0.5, 1.5], "B": [0.5, 2.5]})
        assert dissimilarity_matrix(table, metric="jaccard").to_array()[0, 1] == pytest.approx(2 / 3)

    def test_euclidean(self):
        table = _table({"A": [0.5, 0.6], "B": [2.5]})
        D = dissimilarity_matrix(table, metric="euclidean").to_array()
        assert D[0, 1] == pytest.approx(np.sqrt(5.0))

    def test_unsupported_metric(self, event_clicks):
        table = bin_events(event_clicks, "peak_khz", 0.5)
        with pytest.raises(InvalidParameterError):
            dissimilarity_matrix(table, metric="mahalanobis")

    def test_single_event_rejected(self):
        table = _table({"A": [0.5]})
        with pytest.raises(InvalidParameterError):
            dissimilarity_matrix(table)
