"""regdrop: DROP instance selection for regression training sets.

Removes instances whose absence does not hurt the local k-NN prediction of
the instances that depend on them, following the DROP1/2/3 family adapted
to numeric targets with either a threshold or an error criterion.
"""
from .dataservice import DataService, Dataset, Instance
from .exceptions import EngineError, InvalidArgumentError, NotEnoughInstancesError, RegDropError
from .selection import ENNRegFilter, RegDropSelector
from .selection.drop import VARIANTS, DropEngine, EngineState, Phase, make_engine

__version__ = "0.1.0"

__all__ = [
    "DataService", "Dataset", "Instance",
    "RegDropError", "InvalidArgumentError", "NotEnoughInstancesError", "EngineError",
    "ENNRegFilter", "RegDropSelector",
    "VARIANTS", "DropEngine", "EngineState", "Phase", "make_engine",
]
