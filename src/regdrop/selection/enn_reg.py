import numpy as np
from typing import List, Sequence, Tuple

from regdrop.dataservice.dataset import Dataset
from regdrop.exceptions import InvalidArgumentError
from regdrop.selection.neighbors import NearestNeighborSearch
from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class ENNRegFilter:
    """Edited nearest neighbour for regression (ENN-Reg).

    Every instance is predicted as the mean target of its k nearest
    instances in the full set, the instance itself being the nearest. It is
    flagged as noise when the absolute error exceeds ``alpha * std`` of the
    same k targets. Flagged instances are removed together at the end, so
    the verdicts do not depend on the visiting order.

    With k=1 the neighbourhood is the instance alone and nothing is flagged.
    For k >= 2 no instance is flagged once ``alpha >= sqrt(k - 1)``, since a
    member of a sample never lies further than that many standard
    deviations from the sample mean.
    """

    def __init__(self, n_neighbors: int = 1, alpha: float = 1.0, normalize: bool = True):
        if n_neighbors < 1:
            raise InvalidArgumentError(f"n_neighbors must be >= 1, got {n_neighbors}")
        if alpha < 0:
            raise InvalidArgumentError(f"alpha must be >= 0, got {alpha}")
        self.n_neighbors = int(n_neighbors)
        self.alpha = float(alpha)
        self.normalize = normalize

    def noise_mask(self, dataset: Dataset) -> np.ndarray:
        """Boolean mask, True for instances ENN-Reg would remove."""
        n = len(dataset)
        mask = np.zeros(n, dtype=bool)
        if n < 2:
            return mask

        X, y = dataset.features, dataset.targets
        search = NearestNeighborSearch(normalize=self.normalize).fit_ranges(X)
        search.set_reference_set(X)
        k = min(self.n_neighbors, n)

        for i in range(n):
            rows, _ = search.k_nearest(X[i], k)
            # drawn from the full set, so the neighbourhood holds the instance itself
            neighbourhood = [i] + [r for r in rows if r != i][:k - 1]
            targets = y[neighbourhood]
            theta = self.alpha * float(np.std(targets))
            error = abs(float(np.mean(targets)) - y[i])
            mask[i] = error > theta
        return mask

    def run(self, dataset: Dataset, indices: Sequence[int]) -> Tuple[Dataset, List[int]]:
        if len(dataset) != len(indices):
            raise ValueError(f"dataset ({len(dataset)}) and indices ({len(indices)}) differ in length")
        if len(dataset) < 2:
            logger.warning("[ENN-Reg] Need >= 2 instances, returning input unchanged")
            return dataset.copy(), list(indices)

        logger.info(f"[ENN-Reg] Filtering {len(dataset)} instances (k={self.n_neighbors}, alpha={self.alpha})")
        keep = np.where(~self.noise_mask(dataset))[0]
        filtered = dataset.subset(keep)
        filtered_indices = [indices[i] for i in keep]
        logger.info(f"[ENN-Reg] Kept {len(filtered)} of {len(dataset)} instances")
        return filtered, filtered_indices
