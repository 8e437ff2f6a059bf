from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np

from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Instance:
    """A feature vector plus its numeric target. Compared by value."""
    features: Tuple[float, ...]
    target: float

    @classmethod
    def of(cls, features: Sequence[float], target: float) -> "Instance":
        return cls(tuple(float(v) for v in features), float(target))


class Dataset:
    """
    Ordered, index-addressable set of regression instances.

    Backed by a (N, D) float feature matrix and an (N,) target vector so that
    neighbour search and local models can work on the arrays directly.
    Every mutating method accepts the parallel original-index list and keeps
    it in lockstep.
    """

    def __init__(self, features: np.ndarray, targets: np.ndarray):
        features = np.asarray(features, dtype=np.float64)
        targets = np.asarray(targets, dtype=np.float64).reshape(-1)
        if features.ndim == 1:
            features = features.reshape(len(targets), -1) if len(targets) else features.reshape(0, 0)
        if features.ndim != 2:
            raise ValueError(f"features must be 2-D, got shape {features.shape}")
        if len(features) != len(targets):
            raise ValueError(f"features ({len(features)}) and targets ({len(targets)}) differ in length")
        self._features = features.copy()
        self._targets = targets.copy()

    @classmethod
    def from_instances(cls, instances: Sequence[Instance], n_features: Optional[int] = None) -> "Dataset":
        if not instances:
            return cls(np.empty((0, n_features or 0)), np.empty(0))
        X = np.array([inst.features for inst in instances], dtype=np.float64)
        y = np.array([inst.target for inst in instances], dtype=np.float64)
        return cls(X, y)

    # ------------------------------------------------------------------
    # read access
    # ------------------------------------------------------------------
    @property
    def features(self) -> np.ndarray:
        return self._features

    @property
    def targets(self) -> np.ndarray:
        return self._targets

    @property
    def n_features(self) -> int:
        return self._features.shape[1]

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self) -> Iterator[Instance]:
        for i in range(len(self)):
            yield self.instance(i)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Dataset):
            return NotImplemented
        return (self._features.shape == other._features.shape
                and np.array_equal(self._features, other._features)
                and np.array_equal(self._targets, other._targets))

    def __repr__(self) -> str:
        return f"Dataset(n={len(self)}, d={self.n_features})"

    def instance(self, position: int) -> Instance:
        return Instance.of(self._features[position], self._targets[position])

    def position_of(self, instance: Instance) -> int:
        """First position holding a value-equal instance, -1 if absent."""
        for i in range(len(self)):
            if self.instance(i) == instance:
                return i
        return -1

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------
    def copy(self) -> "Dataset":
        return Dataset(self._features, self._targets)

    def subset(self, positions: Sequence[int]) -> "Dataset":
        idx = np.asarray(positions, dtype=np.int64)
        return Dataset(self._features[idx].reshape(len(idx), self.n_features), self._targets[idx])

    def append(self, instance: Instance, index_map: Optional[List[int]] = None, original_index: Optional[int] = None):
        row = np.asarray(instance.features, dtype=np.float64).reshape(1, -1)
        if len(self) and row.shape[1] != self.n_features:
            raise ValueError(f"instance has {row.shape[1]} features, dataset has {self.n_features}")
        self._features = np.vstack([self._features.reshape(-1, row.shape[1]), row])
        self._targets = np.append(self._targets, instance.target)
        if index_map is not None:
            index_map.append(len(index_map) if original_index is None else int(original_index))

    def delete(self, position: int, index_map: Optional[List[int]] = None):
        if not 0 <= position < len(self):
            raise IndexError(f"position {position} out of range for dataset of {len(self)}")
        self._features = np.delete(self._features, position, axis=0)
        self._targets = np.delete(self._targets, position)
        if index_map is not None:
            del index_map[position]

    def remove_duplicates(self, index_map: Optional[List[int]] = None) -> int:
        """Keep the first of every value-identical instance. Returns how many were dropped."""
        seen = set()
        keep = []
        for i in range(len(self)):
            key = tuple(self._features[i].tolist()) + (float(self._targets[i]),)
            if key in seen:
                continue
            seen.add(key)
            keep.append(i)

        dropped = len(self) - len(keep)
        if dropped:
            self._features = self._features[keep]
            self._targets = self._targets[keep]
            if index_map is not None:
                index_map[:] = [index_map[i] for i in keep]
            logger.debug(f"[Dataset] Removed {dropped} duplicate instances, {len(keep)} remain")
        return dropped
