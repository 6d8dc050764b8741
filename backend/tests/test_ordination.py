import numpy as np
import pytest

from clickbin.errors import InvalidParameterError
from clickbin.models.analysis import DissimilarityMatrix
from clickbin.services.density_clustering import cluster_events
from clickbin.services.dissimilarity import dissimilarity_matrix
from clickbin.services.event_binner import bin_events
from clickbin.services.ordination import ordinate


@pytest.fixture
def distances(event_clicks) -> DissimilarityMatrix:
    table = bin_events(event_clicks, "peak_khz", 1.0, range_start=120.0, range_end=132.0)
    return dissimilarity_matrix(table)


@pytest.fixture
def two_groups() -> DissimilarityMatrix:
    D = np.full((5, 5), 0.9)
    D[:2, :2] = 0.1
    D[2:4, 2:4] = 0.1
    np.fill_diagonal(D, 0.0)
    return DissimilarityMatrix(
        event_ids=["a", "b", "c", "d", "lone"], metric="braycurtis", values=D.tolist()
    )


class TestOrdination:

    def test_nmds_shape_and_keys(self, distances):
        result = ordinate(distances, n_components=2, random_state=0)
        assert result.method == "nmds"
        assert result.event_ids == distances.event_ids
        assert result.to_array().shape == (6, 2)
        assert result.stress >= 0.0

    def test_seeded_runs_reproducible(self, distances):
        first = ordinate(distances, random_state=3)
        second = ordinate(distances, random_state=3)
        np.testing.assert_allclose(first.to_array(), second.to_array())

    def test_metric_mds_separates_groups(self, distances):
        result = ordinate(distances, n_components=2, metric=True, random_state=0)
        coords = result.to_array()
        low, high = coords[:3], coords[3:]
        within = np.linalg.norm(low[0] - low[1])
        between = np.linalg.norm(low.mean(axis=0) - high.mean(axis=0))
        assert result.method == "mds"
        assert between > within

    def test_metric_mds_embeds_the_given_dissimilarities(self):
        # Points 0, 1 and 3 on a line
        line = DissimilarityMatrix(
            event_ids=["x", "y", "z"],
            metric="euclidean",
            values=[[0.0, 1.0, 3.0], [1.0, 0.0, 2.0], [3.0, 2.0, 0.0]],
        )
        result = ordinate(line, n_components=1, metric=True, n_init=8, random_state=0)
        coords = result.to_array()[:, 0]
        recovered = np.abs(coords[:, None] - coords[None, :])
        np.testing.assert_allclose(recovered, line.to_array(), atol=0.05)

    def test_too_many_components(self, distances):
        with pytest.raises(InvalidParameterError):
            ordinate(distances, n_components=6)

    def test_zero_components(self, distances):
        with pytest.raises(InvalidParameterError):
            ordinate(distances, n_components=0)


class TestDensityClustering:

    def test_two_clusters_and_noise(self, two_groups):
        result = cluster_events(two_groups, eps=0.3, min_samples=2)

        assert result.labels == {"a": 0, "b": 0, "c": 1, "d": 1, "lone": -1}
        assert [c.event_ids for c in result.clusters] == [["a", "b"], ["c", "d"]]
        assert result.noise_event_ids == ["lone"]

    def test_dominant_species(self, two_groups):
        species = {"a": "Kogia", "b": "Kogia", "c": "Phocoena", "d": None, "lone": "Kogia"}
        result = cluster_events(two_groups, eps=0.3, min_samples=2, species=species)

        first, second = result.clusters
        assert (first.dominant_species, first.species_fraction) == ("Kogia", 1.0)
        assert (second.dominant_species, second.species_fraction) == ("Phocoena", 0.5)

    def test_binned_events_split_by_species(self, distances, event_clicks):
        species = {c.event_id: c.species for c in event_clicks}
        result = cluster_events(distances, eps=0.6, min_samples=2, species=species)

        assert len(result.clusters) == 2
        assert {c.dominant_species for c in result.clusters} == {"Kogia", "Phocoena"}
        assert all(c.species_fraction == 1.0 for c in result.clusters)

    def test_invalid_params(self, two_groups):
        with pytest.raises(InvalidParameterError):
            cluster_events(two_groups, eps=0, min_samples=2)
        with pytest.raises(InvalidParameterError):
            cluster_events(two_groups, eps=0.3, min_samples=0)
