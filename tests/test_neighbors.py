"""Tests for the nearest-neighbour search service, sort helper and local regressor."""

import math

import numpy as np
import pytest

from regdrop.selection.neighbors import NearestNeighborSearch, sort_by_distance
from regdrop.selection.regressor import LocalRegressor


REFERENCE = np.array([[0.0, 0.0], [2.0, 0.0], [0.0, 3.0], [10.0, 40.0]])


class TestNearestNeighborSearch:

    def test_raw_distances(self):
        search = NearestNeighborSearch(normalize=False)
        search.set_reference_set(REFERENCE)
        rows, distances = search.k_nearest(np.array([0.0, 0.0]), 3)
        assert rows.tolist() == [0, 1, 2]
        assert distances.tolist() == pytest.approx([0.0, 2.0, 3.0])

    def test_normalized_ranges_change_the_nearest(self):
        search = NearestNeighborSearch(normalize=True).fit_ranges(REFERENCE)
        search.set_reference_set(REFERENCE)
        rows, _ = search.k_nearest(np.array([0.0, 0.0]), 2)
        assert rows.tolist() == [0, 2]

    def test_k_capped_by_reference_size(self):
        search = NearestNeighborSearch(normalize=False)
        search.set_reference_set(REFERENCE[:2])
        rows, distances = search.k_nearest(np.array([0.0, 0.0]), 5)
        assert len(rows) == 2
        assert len(distances) == 2

    def test_empty_reference(self):
        search = NearestNeighborSearch(normalize=False)
        search.set_reference_set(np.empty((0, 2)))
        rows, distances = search.k_nearest(np.array([0.0, 0.0]), 3)
        assert rows.size == 0 and distances.size == 0

    def test_ranges_survive_shrinking_reference(self):
        search = NearestNeighborSearch(normalize=True).fit_ranges(REFERENCE)
        before = search.distance(REFERENCE[0], REFERENCE[1])
        search.set_reference_set(REFERENCE[:2])
        assert search.distance(REFERENCE[0], REFERENCE[1]) == pytest.approx(before)
        assert before == pytest.approx(0.2)


class TestSortByDistance:

    def test_ascending(self):
        items, dists = sort_by_distance(["a", "b", "c"], [3.0, 1.0, 2.0])
        assert items == ["b", "c", "a"]
        assert dists == [1.0, 2.0, 3.0]

    def test_descending(self):
        items, _ = sort_by_distance(["a", "b", "c"], [3.0, 1.0, 2.0], ascending=False)
        assert items == ["a", "c", "b"]

    def test_stable_on_ties(self):
        items, _ = sort_by_distance([5, 6, 7], [1.0, 1.0, 0.5])
        assert items == [7, 5, 6]


class TestLocalRegressor:

    def test_empty_training_set_is_infinite_error(self):
        reg = LocalRegressor(n_neighbors=1)
        model = reg.train(np.empty((0, 1)), np.empty(0))
        assert model is None
        assert math.isinf(reg.evaluate(model, np.array([0.0]), 1.0))

    def test_nearest_neighbour_prediction(self):
        reg = LocalRegressor(n_neighbors=1)
        model = reg.train(np.array([[0.0], [10.0]]), np.array([0.0, 10.0]))
        assert reg.evaluate(model, np.array([1.0]), 2.0) == pytest.approx(2.0)

    def test_k_capped_by_training_size(self):
        reg = LocalRegressor(n_neighbors=3)
        model = reg.train(np.array([[0.0], [10.0]]), np.array([0.0, 10.0]))
        assert reg.evaluate(model, np.array([1.0]), 5.0) == pytest.approx(0.0)
