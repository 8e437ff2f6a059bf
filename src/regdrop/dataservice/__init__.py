from .dataset import Dataset, Instance
from .data_service import DataService

__all__ = [
    "Dataset",
    "Instance",
    "DataService",
]
