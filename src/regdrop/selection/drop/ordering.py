from abc import ABC, abstractmethod
from typing import List

import numpy as np

from regdrop.exceptions import InvalidArgumentError
from regdrop.selection.drop.graph import NeighborGraph
from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class OrderingStrategy(ABC):
    """Decides the order in which the editing loop visits the working set."""

    @abstractmethod
    def order(self, graph: NeighborGraph, ascending: bool = False) -> List[int]:
        """Return ``order`` with ``order[new_position] = old_position``."""


class EnemyDistanceOrdering(OrderingStrategy):
    """
    Sort instances by the distance to their nearest enemy.

    For regression an enemy of ``p`` is a neighbour whose target deviates
    from ``p``'s by more than ``beta`` standard deviations of the targets in
    ``p``'s neighbour list. Instances without an enemy among their neighbours
    are treated as infinitely far from one. The default order is descending,
    so interior instances are visited first and noise near the boundaries
    last.
    """

    def __init__(self, beta: float = 5.0):
        if not 0 <= beta <= 100:
            raise InvalidArgumentError(f"beta must lie in [0, 100], got {beta}")
        self.beta = float(beta)

    def enemy_distances(self, graph: NeighborGraph) -> np.ndarray:
        targets = graph.targets
        distances = np.full(len(graph), np.inf)
        for p in range(len(graph)):
            neighbours = graph.neighbors(p)
            if not neighbours:
                continue
            threshold = self.beta * float(np.std(targets[neighbours]))
            to_neighbours = graph.distances(p, neighbours)
            for q, d in zip(neighbours, to_neighbours):
                if abs(targets[q] - targets[p]) > threshold:
                    distances[p] = d
                    break
        return distances

    def order(self, graph: NeighborGraph, ascending: bool = False) -> List[int]:
        distances = self.enemy_distances(graph)
        keys = distances if ascending else -distances
        order = np.argsort(keys, kind="stable")
        n_enemies = int(np.isfinite(distances).sum())
        logger.debug(f"[DROP] Ordered {len(order)} instances by enemy distance "
                     f"({n_enemies} with an enemy in range, beta={self.beta})")
        return order.tolist()
