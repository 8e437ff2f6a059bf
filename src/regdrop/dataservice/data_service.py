from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from regdrop.dataservice.dataset import Dataset
from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class DataService:
    """Static utility class for moving regression data between pandas and Dataset"""

    @staticmethod
    def info_dataset(df: pd.DataFrame, target_column: str):
        logger.info(f"[+] Dataset shape: {df.shape}")
        logger.info(f"[+] Target summary: {df[target_column].describe().to_dict()}")

    @staticmethod
    def load_data(file_path: str) -> pd.DataFrame:
        logger.debug(f"[+] Loading data from {file_path}")
        return pd.read_csv(file_path)

    @staticmethod
    def export_data(df: pd.DataFrame, file_path: str):
        """Export dataframe to CSV file"""
        df.to_csv(file_path, index=False)

    @staticmethod
    def feature_columns(df: pd.DataFrame, target_column: str) -> List[str]:
        if target_column not in df.columns:
            raise KeyError(f"Target column '{target_column}' not found in columns {list(df.columns)}")
        feature_cols = [c for c in df.columns if c != target_column]
        non_numeric = [c for c in feature_cols if not pd.api.types.is_numeric_dtype(df[c])]
        if non_numeric:
            raise ValueError(f"Non-numeric feature columns are not supported: {non_numeric}")
        if not pd.api.types.is_numeric_dtype(df[target_column]):
            raise ValueError(f"Target column '{target_column}' must be numeric")
        return feature_cols

    @staticmethod
    def to_dataset(df: pd.DataFrame, target_column: str,
                   feature_cols: Optional[List[str]] = None) -> Tuple[Dataset, List[int]]:
        """Convert a dataframe to a Dataset plus the positional index of every row."""
        if feature_cols is None:
            feature_cols = DataService.feature_columns(df, target_column)
        X = df[feature_cols].to_numpy(dtype=np.float64)
        y = df[target_column].to_numpy(dtype=np.float64)
        return Dataset(X.reshape(len(df), len(feature_cols)), y), list(range(len(df)))

    @staticmethod
    def to_dataframe(dataset: Dataset, feature_cols: List[str], target_column: str) -> pd.DataFrame:
        df = pd.DataFrame(dataset.features, columns=feature_cols)
        df[target_column] = dataset.targets
        return df
