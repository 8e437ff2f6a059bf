import numpy as np
from typing import Optional, Tuple
from sklearn.neighbors import NearestNeighbors
from sklearn.preprocessing import MinMaxScaler

from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class NearestNeighborSearch:
    """
    Euclidean k-NN search over a mutable reference point set.

    With ``normalize`` the attribute ranges are learnt once by ``fit_ranges``
    and every point is min-max scaled before distances are measured, so a
    shrinking reference set does not change the metric.
    """

    def __init__(self, normalize: bool = True):
        self.normalize = normalize
        self._scaler: Optional[MinMaxScaler] = None
        self._index: Optional[NearestNeighbors] = None
        self._reference = np.empty((0, 0))

    def fit_ranges(self, points: np.ndarray) -> "NearestNeighborSearch":
        if self.normalize and len(points):
            self._scaler = MinMaxScaler().fit(points)
        return self

    def transform(self, points: np.ndarray) -> np.ndarray:
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        if self._scaler is None:
            return points
        return self._scaler.transform(points)

    @property
    def size(self) -> int:
        return len(self._reference)

    def set_reference_set(self, points: np.ndarray):
        self._reference = self.transform(points) if len(points) else np.empty((0, 0))
        if len(self._reference):
            self._index = NearestNeighbors(algorithm="brute", metric="euclidean").fit(self._reference)
        else:
            self._index = None

    def k_nearest(self, point: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Return (rows, distances) of the k reference points closest to ``point``,
        ordered by ascending distance. Rows index the reference set.
        """
        k = min(int(k), self.size)
        if k <= 0 or self._index is None:
            return np.array([], dtype=np.int64), np.array([], dtype=np.float64)
        distances, rows = self._index.kneighbors(self.transform(point), n_neighbors=k)
        return rows[0].astype(np.int64), distances[0]

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        ta, tb = self.transform(a), self.transform(b)
        return float(np.linalg.norm(ta[0] - tb[0]))

    def distances_to(self, point: np.ndarray, others: np.ndarray) -> np.ndarray:
        if len(others) == 0:
            return np.array([], dtype=np.float64)
        return np.linalg.norm(self.transform(others) - self.transform(point)[0], axis=1)


def sort_by_distance(items, distances, ascending: bool = True):
    """Stable sort of ``items`` by ``distances``. Returns (items, distances) as lists."""
    distances = np.asarray(distances, dtype=np.float64)
    order = np.argsort(distances if ascending else -distances, kind="stable")
    items = list(items)
    return [items[i] for i in order], distances[order].tolist()
