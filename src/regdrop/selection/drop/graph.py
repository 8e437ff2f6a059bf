"""Neighbour / associate graph over a working set of regression instances.

Nodes are integer positions in the working set. ``neighbors(p)`` holds the
(at most) k+1 nearest *retained* instances of ``p`` in ascending distance,
``associates(p)`` the positions that list ``p`` among their neighbours.
Removed instances keep their position so that their associates can still be
rewired and so that the editing loop keeps judging every instance against
the whole working population.
"""
from bisect import bisect_left
from typing import List, Optional, Sequence, Tuple

import numpy as np

from regdrop.dataservice.dataset import Dataset
from regdrop.exceptions import EngineError
from regdrop.selection.neighbors import NearestNeighborSearch, sort_by_distance
from regdrop.utils.logging import get_logger

logger = get_logger(__name__)


class NeighborGraph:

    def __init__(self, working: Dataset, n_neighbors: int, search: NearestNeighborSearch):
        self._working = working
        self.n_neighbors = int(n_neighbors)
        self._search = search
        self._neighbors: List[List[int]] = []
        self._associates: List[List[int]] = []
        self._retained: List[int] = []

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------
    @property
    def dataset(self) -> Dataset:
        return self._working

    @property
    def targets(self) -> np.ndarray:
        return self._working.targets

    @property
    def capacity(self) -> int:
        """Neighbour list length: k+1 so that with/without sets stay comparable."""
        return self.n_neighbors + 1

    @property
    def retained(self) -> List[int]:
        return list(self._retained)

    def __len__(self) -> int:
        return len(self._working)

    def is_retained(self, position: int) -> bool:
        i = bisect_left(self._retained, position)
        return i < len(self._retained) and self._retained[i] == position

    def solution_position(self, position: int) -> int:
        """Index of a working position inside the retained (solution) order."""
        i = bisect_left(self._retained, position)
        if i == len(self._retained) or self._retained[i] != position:
            raise EngineError(f"Working position {position} is not retained")
        return i

    def neighbors(self, position: int) -> List[int]:
        return list(self._neighbors[position])

    def associates(self, position: int) -> List[int]:
        return list(self._associates[position])

    def coordinates(self, positions: Sequence[int]) -> np.ndarray:
        """Points in the search metric space (min-max scaled when enabled)."""
        if len(positions) == 0:
            return np.empty((0, self._working.n_features))
        return self._search.transform(self._working.features[list(positions)])

    def distances(self, position: int, others: Sequence[int]) -> np.ndarray:
        return self._search.distances_to(self._working.features[position],
                                         self._working.features[list(others)])

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    def init_sets(self, capacity: int):
        self._neighbors = [[] for _ in range(capacity)]
        self._associates = [[] for _ in range(capacity)]

    def set_retained(self, positions: Sequence[int]):
        self._retained = sorted(int(p) for p in positions)
        self._search.set_reference_set(self._working.features[self._retained])

    def build(self):
        """Retain every working instance and compute both relations from scratch."""
        self.init_sets(len(self._working))
        self.set_retained(range(len(self._working)))
        self.compute_neighbor_set()
        self.compute_associate_set()

    def nearest(self, position: int, retained: Optional[List[int]] = None) -> Tuple[List[int], List[float]]:
        """The k+1 retained instances closest to ``position`` (itself excluded).

        ``retained`` must match the reference set the search currently holds;
        it defaults to the graph's own retained list.
        """
        retained = self._retained if retained is None else retained
        i = bisect_left(retained, position)
        wanted = self.capacity + (1 if i < len(retained) and retained[i] == position else 0)
        rows, distances = self._search.k_nearest(self._working.features[position], wanted)
        found = [(retained[r], d) for r, d in zip(rows, distances) if retained[r] != position]
        if len(found) > self.capacity:
            found = found[:self.capacity]
        if not found:
            return [], []
        positions, dists = zip(*found)
        return sort_by_distance(positions, dists, ascending=True)

    def compute_neighbor_set(self):
        for p in range(len(self._working)):
            self._neighbors[p], _ = self.nearest(p)

    def compute_associate_set(self):
        n = len(self._working)
        for j in range(n):
            for i in self._neighbors[j]:
                if i != j:
                    self._associates[i].append(j)
        for i in range(n):
            if self._associates[i]:
                self._associates[i], _ = sort_by_distance(
                    self._associates[i], self.distances(i, self._associates[i]), ascending=True)

    # ------------------------------------------------------------------
    # incremental repair
    # ------------------------------------------------------------------
    def replacement_for(self, position: int, old_neighbors: Sequence[int],
                        retained: Optional[List[int]] = None) -> Optional[int]:
        """Nearest retained instance not yet in ``old_neighbors``, or None.

        Only the first k+1 nearest are scanned; when all of them are already
        present there is no replacement and the list stays one short.
        """
        candidates, _ = self.nearest(position, retained)
        for candidate in candidates[:self.capacity]:
            if candidate not in old_neighbors:
                return candidate
        return None

    def new_neighbor(self, position: int, old_neighbors: List[int]) -> List[int]:
        """Append the replacement neighbour of ``position`` and register it as associate."""
        candidate = self.replacement_for(position, old_neighbors)
        if candidate is not None:
            old_neighbors.append(candidate)
            self._associates[candidate].append(position)
        return old_neighbors

    def remove(self, position: int):
        """Drop ``position`` from the retained set and rewire its associates.

        Each associate loses ``position`` as a neighbour and gains one
        replacement. Associate lists of the associates are not rebuilt.
        Replacements are all searched before anything is changed, so a
        failing search leaves the graph as it was.
        """
        i = self.solution_position(position)
        retained = self._retained[:i] + self._retained[i + 1:]
        self._search.set_reference_set(self._working.features[retained])
        try:
            repairs = []
            for assoc in self._associates[position]:
                neighbours = [q for q in self._neighbors[assoc] if q != position]
                repairs.append((assoc, neighbours, self.replacement_for(assoc, neighbours, retained)))
        except Exception:
            self._search.set_reference_set(self._working.features[self._retained])
            raise

        self._retained = retained
        for assoc, neighbours, candidate in repairs:
            if candidate is not None:
                neighbours.append(candidate)
                self._associates[candidate].append(assoc)
            self._neighbors[assoc] = neighbours

    # ------------------------------------------------------------------
    # reordering
    # ------------------------------------------------------------------
    def reorder(self, order: Sequence[int]):
        """Move instances and both relations to the working order ``order``.

        ``order[new] = old``; every stored position is remapped.
        """
        order = [int(o) for o in order]
        if sorted(order) != list(range(len(self._working))):
            raise EngineError("reorder() expects a permutation of the working positions")
        new_of = {old: new for new, old in enumerate(order)}
        working = self._working.subset(order)
        neighbours = [[new_of[q] for q in self._neighbors[old]] for old in order]
        associates = [[new_of[q] for q in self._associates[old]] for old in order]
        retained = sorted(new_of[p] for p in self._retained)
        self._search.set_reference_set(working.features[retained])

        self._working = working
        self._neighbors = neighbours
        self._associates = associates
        self._retained = retained

    # ------------------------------------------------------------------
    # checks
    # ------------------------------------------------------------------
    def check_invariants(self):
        """Raise EngineError unless list sizes and the inverse relation hold."""
        retained = set(self._retained)
        for p in self._retained:
            neighbours = self._neighbors[p]
            if len(neighbours) > self.capacity:
                raise EngineError(f"Position {p} has {len(neighbours)} neighbours, limit is {self.capacity}")
            if len(set(neighbours)) != len(neighbours):
                raise EngineError(f"Position {p} lists a neighbour twice")
            for q in neighbours:
                if q not in retained:
                    raise EngineError(f"Position {p} keeps removed instance {q} as neighbour")
                if p not in self._associates[q]:
                    raise EngineError(f"Position {p} is a neighbour-of {q} but not its associate")
        for q in self._retained:
            for p in self._associates[q]:
                if p in retained and q not in self._neighbors[p]:
                    raise EngineError(f"Position {p} is an associate of {q} without listing it as neighbour")
