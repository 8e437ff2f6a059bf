import numpy as np
from typing import Optional
from sklearn.neighbors import KNeighborsRegressor


class LocalRegressor:
    """k-NN regressor used as a black-box local error estimator.

    ``train`` on an empty set yields no model; evaluating it gives an
    infinite error, so an instance is never judged redundant on the
    strength of a model that cannot predict.
    """

    def __init__(self, n_neighbors: int = 1):
        self.n_neighbors = int(n_neighbors)

    def train(self, points: np.ndarray, targets: np.ndarray) -> Optional[KNeighborsRegressor]:
        if len(targets) == 0:
            return None
        model = KNeighborsRegressor(n_neighbors=min(self.n_neighbors, len(targets)), algorithm="brute")
        return model.fit(np.atleast_2d(points), np.asarray(targets, dtype=np.float64))

    def evaluate(self, model: Optional[KNeighborsRegressor], point: np.ndarray, target: float) -> float:
        """Absolute error of ``model`` on a single instance (RMSE of one test case)."""
        if model is None:
            return float("inf")
        prediction = model.predict(np.atleast_2d(point))[0]
        return float(abs(prediction - target))
