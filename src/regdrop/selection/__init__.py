from .enn_reg import ENNRegFilter
from .neighbors import NearestNeighborSearch
from .regressor import LocalRegressor
from .selector import RegDropSelector

__all__ = [
    'ENNRegFilter',
    'NearestNeighborSearch',
    'LocalRegressor',
    'RegDropSelector',
]
