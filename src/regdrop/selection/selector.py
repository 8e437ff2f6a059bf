import time
from typing import Optional

import pandas as pd

from regdrop.configs import drop as drop_config
from regdrop.dataservice.data_service import DataService
from regdrop.exceptions import NotEnoughInstancesError
from regdrop.selection.drop.engine import DropEngine
from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class RegDropSelector:
    """Reduce a regression dataframe with one of the DROP variants.

    Feature columns must be numeric. The returned frame holds the retained
    rows untouched, with their original index, in their original order.
    If the data cannot be reduced (a single distinct row, or everything
    flagged as noise) the duplicate-free input is returned instead.
    """

    def __init__(self,
                 variant: str = drop_config.DEFAULT_VARIANT,
                 n_neighbors: int = drop_config.DEFAULT_N_NEIGHBORS,
                 alpha: float = drop_config.DEFAULT_ALPHA,
                 beta: float = drop_config.DEFAULT_BETA,
                 normalize: bool = drop_config.DEFAULT_NORMALIZE,
                 progress: bool = False):
        self.engine = DropEngine(variant=variant, n_neighbors=n_neighbors, alpha=alpha, beta=beta,
                                 normalize=normalize)
        self.progress = progress
        self.cpu_time: Optional[float] = None
        self.wall_time: Optional[float] = None
        self.selected_positions_: Optional[list] = None

    def select(self, df: pd.DataFrame, target_col: str = drop_config.TARGET_COLUMN) -> pd.DataFrame:
        dataset, positions = DataService.to_dataset(df, target_col)
        logger.info(f"[Selector] Running {self.engine.variant.name} on {len(df)} rows "
                    f"(k={self.engine.num_neighbors}, alpha={self.engine.alpha}, beta={self.engine.beta})")

        wall_start = time.perf_counter()
        self.engine.reset(dataset, positions)
        try:
            self.engine.all_steps(progress=self.progress)
            selected = self.engine.output_indices
        except NotEnoughInstancesError as e:
            logger.warning(f"[Selector] {e}; returning the duplicate-free input")
            deduped = dataset.copy()
            selected = list(positions)
            deduped.remove_duplicates(selected)
        self.cpu_time = self.engine.elapsed_cpu_time
        self.wall_time = time.perf_counter() - wall_start

        self.selected_positions_ = sorted(selected)
        reduced = df.iloc[self.selected_positions_]
        reduction_pct = (1 - len(reduced) / len(df)) * 100 if len(df) else 0.0
        logger.info(f"[Selector] Retained {len(reduced)}/{len(df)} rows ({reduction_pct:.1f}% reduction) "
                    f"in {self.wall_time:.2f}s")
        return reduced
