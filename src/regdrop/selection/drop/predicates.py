"""Removal criteria for the DROP editing loop.

Both criteria look only at the associates of the candidate: the instances
whose local prediction could change if the candidate disappeared.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from regdrop.exceptions import InvalidArgumentError
from regdrop.selection.drop.graph import NeighborGraph
from regdrop.selection.regressor import LocalRegressor


@dataclass(frozen=True)
class RemovalDecision:
    remove: bool
    score_with: float
    score_without: float
    n_associates: int


class RemovalPredicate(ABC):
    name = "base"

    def __init__(self, alpha: float = 1.0):
        if not 0 <= alpha <= 100:
            raise InvalidArgumentError(f"alpha must lie in [0, 100], got {alpha}")
        self.alpha = float(alpha)

    @abstractmethod
    def evaluate(self, graph: NeighborGraph, position: int) -> RemovalDecision:
        ...

    def should_remove(self, graph: NeighborGraph, position: int) -> bool:
        return self.evaluate(graph, position).remove


class ThresholdPredicate(RemovalPredicate):
    """
    Count associates predicted within theta with and without the candidate.

    theta is ``alpha * std`` of the targets in the associate's full neighbour
    list. The "with" set is the first k neighbours (the candidate among
    them), the "without" set the first k neighbours once the candidate is
    dropped. Removal fires when ``without >= with``.

    The with-set is always capped at k, not at ``len(list) - 1``. The two
    agree on full k+1 lists. On a list left short by repair the with-set
    keeps k members, so it still matches the window a k-NN prediction of
    the associate would use.
    """
    name = "threshold"

    @staticmethod
    def predicts(targets: np.ndarray, members: Sequence[int], target: float, theta: float) -> bool:
        if len(members) == 0:
            return False
        return abs(float(np.mean(targets[list(members)])) - target) <= theta

    def evaluate(self, graph: NeighborGraph, position: int) -> RemovalDecision:
        k = graph.n_neighbors
        targets = graph.targets
        associates = graph.associates(position)
        with_count = without_count = 0

        for assoc in associates:
            neighbours = graph.neighbors(assoc)
            theta = self.alpha * float(np.std(targets[neighbours])) if neighbours else 0.0
            with_set = neighbours[:k]
            without_set = [q for q in neighbours if q != position][:k]
            if self.predicts(targets, with_set, targets[assoc], theta):
                with_count += 1
            if self.predicts(targets, without_set, targets[assoc], theta):
                without_count += 1

        return RemovalDecision(without_count >= with_count, with_count, without_count, len(associates))


class ErrorPredicate(RemovalPredicate):
    """
    Compare the summed local-model error on the associates with and without
    the candidate in their training neighbourhood. Removal fires when
    ``error_without <= error_with + alpha``.
    """
    name = "error"

    def __init__(self, alpha: float = 1.0, n_neighbors: int = 1):
        super().__init__(alpha)
        self.regressor = LocalRegressor(n_neighbors=n_neighbors)

    def evaluate(self, graph: NeighborGraph, position: int) -> RemovalDecision:
        targets = graph.targets
        associates = graph.associates(position)
        error_with = error_without = 0.0

        for assoc in associates:
            point = graph.coordinates([assoc])
            train = [q for q in graph.neighbors(assoc) if q != position]

            model = self.regressor.train(graph.coordinates(train), targets[train])
            error_without += self.regressor.evaluate(model, point, targets[assoc])

            train.append(position)
            model = self.regressor.train(graph.coordinates(train), targets[train])
            error_with += self.regressor.evaluate(model, point, targets[assoc])

        return RemovalDecision(error_without <= error_with + self.alpha,
                               error_with, error_without, len(associates))
