"""Step-driven DROP editing engine for regression.

The engine is a small state machine::

    UNINITIALIZED -> (NOISE_FILTER) -> NEIGHBOR_COMPUTE -> (ORDER) -> ITERATING -> DONE

``step()`` performs one unit of work and reports whether more remain, so a
caller can inspect ``state``, ``solution_set`` and ``graph`` between
decisions or simply call ``all_steps()``. Parameters are read when the
neighbour graph is built; changing them later affects the next ``reset``.
"""
import numbers
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from tqdm import tqdm

from regdrop.configs import drop as drop_config
from regdrop.dataservice.dataset import Dataset
from regdrop.exceptions import EngineError, InvalidArgumentError, NotEnoughInstancesError
from regdrop.selection.enn_reg import ENNRegFilter
from regdrop.selection.neighbors import NearestNeighborSearch
from regdrop.selection.drop.graph import NeighborGraph
from regdrop.selection.drop.ordering import EnemyDistanceOrdering, OrderingStrategy
from regdrop.selection.drop.predicates import (
    ErrorPredicate, RemovalDecision, RemovalPredicate, ThresholdPredicate,
)
from regdrop.selection.drop.variants import Criterion, VariantConfig, get_variant
from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class Phase(str, Enum):
    UNINITIALIZED = "uninitialized"
    NOISE_FILTER = "noise_filter"
    NEIGHBOR_COMPUTE = "neighbor_compute"
    ORDER = "order"
    ITERATING = "iterating"
    DONE = "done"


@dataclass(frozen=True)
class EngineState:
    phase: Phase
    position: int = 0


def validate_num_neighbors(k) -> int:
    if isinstance(k, bool) or not isinstance(k, numbers.Integral):
        raise InvalidArgumentError(f"Number of neighbours must be an integer, got {k!r}")
    if k < 1:
        raise InvalidArgumentError(f"Number of neighbours must be >= 1, got {k}")
    if k % 2 == 0:
        raise InvalidArgumentError(f"Number of neighbours must be odd, got {k}")
    return int(k)


def validate_percentage(name: str, value) -> float:
    value = float(value)
    if not drop_config.PARAMETER_MIN <= value <= drop_config.PARAMETER_MAX:
        raise InvalidArgumentError(
            f"{name} must lie in [{drop_config.PARAMETER_MIN:g}, {drop_config.PARAMETER_MAX:g}], got {value}"
        )
    return value


class DropEngine:

    def __init__(self,
                 variant=drop_config.DEFAULT_VARIANT,
                 n_neighbors: int = drop_config.DEFAULT_N_NEIGHBORS,
                 alpha: float = drop_config.DEFAULT_ALPHA,
                 beta: float = drop_config.DEFAULT_BETA,
                 normalize: bool = drop_config.DEFAULT_NORMALIZE,
                 ordering: Optional[OrderingStrategy] = None,
                 predicate: Optional[RemovalPredicate] = None):
        self.variant: VariantConfig = get_variant(variant)
        self.normalize = normalize
        self._k = validate_num_neighbors(n_neighbors)
        self._alpha = validate_percentage("alpha", alpha)
        self._beta = validate_percentage("beta", beta)
        self._ordering_override = ordering
        self._predicate_override = predicate

        self._state: Optional[EngineState] = None
        self._train: Optional[Dataset] = None
        self._input_indices: List[int] = []
        self._solution: Optional[Dataset] = None
        self._output_indices: List[int] = []
        self._graph: Optional[NeighborGraph] = None
        self._working_indices: List[int] = []
        self._predicate: Optional[RemovalPredicate] = None
        self.last_decision: Optional[RemovalDecision] = None
        self.n_removed = 0
        self._cpu_time = 0.0
        self._wall_time = 0.0

    # ------------------------------------------------------------------
    # parameters
    # ------------------------------------------------------------------
    @property
    def num_neighbors(self) -> int:
        return self._k

    def set_num_neighbors(self, k: int):
        self._k = validate_num_neighbors(k)

    @property
    def alpha(self) -> float:
        return self._alpha

    def set_alpha(self, alpha: float):
        self._alpha = validate_percentage("alpha", alpha)

    @property
    def beta(self) -> float:
        return self._beta

    def set_beta(self, beta: float):
        self._beta = validate_percentage("beta", beta)

    # ------------------------------------------------------------------
    # results and inspection
    # ------------------------------------------------------------------
    @property
    def state(self) -> Optional[EngineState]:
        return self._state

    @property
    def solution_set(self) -> Dataset:
        self._require_reset()
        return self._solution.copy()

    @property
    def output_indices(self) -> List[int]:
        self._require_reset()
        return list(self._output_indices)

    @property
    def graph(self) -> Optional[NeighborGraph]:
        return self._graph

    @property
    def working_set(self) -> Optional[Dataset]:
        return None if self._graph is None else self._graph.dataset.copy()

    @property
    def working_indices(self) -> List[int]:
        return list(self._working_indices)

    @property
    def elapsed_cpu_time(self) -> float:
        return self._cpu_time

    @property
    def elapsed_wall_time(self) -> float:
        return self._wall_time

    @property
    def _uses_ordering(self) -> bool:
        return self.variant.ordering or self._ordering_override is not None

    def _require_reset(self):
        if self._state is None:
            raise EngineError("reset() must be called first")

    # ------------------------------------------------------------------
    # driving
    # ------------------------------------------------------------------
    def reset(self, dataset: Dataset, original_indices: Optional[Sequence[int]] = None):
        if dataset is None or len(dataset) == 0:
            raise NotEnoughInstancesError(0, "input")
        indices = list(range(len(dataset))) if original_indices is None else [int(i) for i in original_indices]
        if len(indices) != len(dataset):
            raise InvalidArgumentError(
                f"Got {len(indices)} original indices for {len(dataset)} instances"
            )

        self._train = dataset.copy()
        self._input_indices = indices
        self._solution = dataset.copy()
        self._output_indices = list(indices)
        self._graph = None
        self._working_indices = []
        self._predicate = None
        self.last_decision = None
        self.n_removed = 0
        self._cpu_time = 0.0
        self._wall_time = 0.0
        self._state = EngineState(Phase.UNINITIALIZED)

    def step(self) -> bool:
        """Run one step. True while more steps remain."""
        self._require_reset()
        if self._state.phase is Phase.DONE:
            return False

        cpu_start, wall_start = time.process_time(), time.perf_counter()
        try:
            phase = self._state.phase
            if phase is Phase.UNINITIALIZED and self.variant.noise_filter:
                return self._noise_filter_step()
            if phase in (Phase.UNINITIALIZED, Phase.NOISE_FILTER):
                return self._neighbor_step()
            if phase is Phase.NEIGHBOR_COMPUTE and self._uses_ordering:
                return self._order_step()
            return self._decision_step()
        finally:
            self._cpu_time += time.process_time() - cpu_start
            self._wall_time += time.perf_counter() - wall_start

    def all_steps(self, progress: bool = False):
        self._require_reset()
        with tqdm(total=len(self._train) + 3, desc=f"{self.variant.name}", unit="step",
                  disable=not progress) as pbar:
            while self.step():
                pbar.update(1)
                if self._state.phase is Phase.ITERATING:
                    pbar.set_postfix({"Position": self._state.position, "Retained": len(self._solution)})
        logger.info(f"[DROP] {self.variant.name}: kept {len(self._solution)} of {len(self._train)} instances "
                    f"(cpu {self._cpu_time:.2f}s, wall {self._wall_time:.2f}s)")

    # ------------------------------------------------------------------
    # phases
    # ------------------------------------------------------------------
    def _noise_filter_step(self) -> bool:
        noise_filter = ENNRegFilter(n_neighbors=self._k, alpha=self._alpha, normalize=self.normalize)
        filtered, indices = noise_filter.run(self._train, self._input_indices)
        self._solution, self._output_indices = filtered, indices
        if len(filtered) <= 1:
            self._state = EngineState(Phase.DONE)
            raise NotEnoughInstancesError(len(filtered), "noise filtering")
        self._state = EngineState(Phase.NOISE_FILTER)
        return True

    def _neighbor_step(self) -> bool:
        solution = self._solution.copy()
        indices = list(self._output_indices)
        dropped = solution.remove_duplicates(indices)
        if dropped:
            logger.debug(f"[DROP] Dropped {dropped} duplicate instances")
        if len(solution) <= 1:
            self._solution, self._output_indices = solution, indices
            self._state = EngineState(Phase.DONE)
            raise NotEnoughInstancesError(len(solution), "duplicate removal")

        search = NearestNeighborSearch(normalize=self.normalize).fit_ranges(solution.features)
        graph = NeighborGraph(solution.copy(), self._k, search)
        graph.build()
        predicate = self._predicate_override or self._make_predicate()

        self._solution, self._output_indices = solution, indices
        self._graph = graph
        self._working_indices = list(indices)
        self._predicate = predicate
        self._state = EngineState(Phase.NEIGHBOR_COMPUTE)
        logger.debug(f"[DROP] Graph ready over {len(graph)} instances "
                     f"(k={self._k}, criterion={predicate.name})")
        return True

    def _order_step(self) -> bool:
        ordering = self._ordering_override or EnemyDistanceOrdering(beta=self._beta)
        order = ordering.order(self._graph, ascending=False)
        self._graph.reorder(order)
        self._working_indices = [self._working_indices[o] for o in order]
        self._solution = self._graph.dataset.copy()
        self._output_indices = list(self._working_indices)
        self._state = EngineState(Phase.ORDER)
        return True

    def _make_predicate(self) -> RemovalPredicate:
        if self.variant.criterion is Criterion.THRESHOLD:
            return ThresholdPredicate(alpha=self._alpha)
        return ErrorPredicate(alpha=self._alpha, n_neighbors=self._k)

    def _decision_step(self) -> bool:
        p = self._state.position if self._state.phase is Phase.ITERATING else 0
        n = len(self._graph)

        decision = self._predicate.evaluate(self._graph, p)
        self.last_decision = decision
        if decision.remove and len(self._solution) > 1:
            self._remove(p)

        if p >= n - 1:
            self._state = EngineState(Phase.DONE, p)
            return False
        self._state = EngineState(Phase.ITERATING, p + 1)
        return True

    def _remove(self, position: int):
        solution_position = self._graph.solution_position(position)
        # graph first: remove() commits all or nothing
        self._graph.remove(position)
        self._solution.delete(solution_position, self._output_indices)
        self.n_removed += 1
        logger.debug(f"[DROP] Removed working position {position} "
                     f"(original index {self._working_indices[position]}), {len(self._solution)} retained")


def make_engine(variant=drop_config.DEFAULT_VARIANT,
                n_neighbors: int = drop_config.DEFAULT_N_NEIGHBORS,
                alpha: float = drop_config.DEFAULT_ALPHA,
                beta: float = drop_config.DEFAULT_BETA,
                normalize: bool = drop_config.DEFAULT_NORMALIZE) -> DropEngine:
    return DropEngine(variant=variant, n_neighbors=n_neighbors, alpha=alpha, beta=beta, normalize=normalize)
