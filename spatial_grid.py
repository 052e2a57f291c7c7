# spatial_grid.py
"""
Broad-phase spatial partitioning.

This module defines the SpatialHashGrid class, which buckets bodies into
cubic cells keyed by (floor(x/c), floor(y/c), floor(z/c)) and enumerates
candidate pairs from each body's own cell and its 26 neighbors.

Cells are encoded exactly (not hashed) into a single int64 key, sorted,
and looked up with a binary search, so distinct neighbor offsets can never
alias the same bucket and every candidate pair is produced exactly once.
"""
import logging
import numpy as np
from typing import Callable, Optional
from numba import jit

from utils import require_positive

# --- Data Contracts ---
#
# class SpatialHashGrid:
#   - rebuild(self, positions: np.ndarray, indices: Optional[np.ndarray]) -> None:
#     - Inputs:
#       - positions: (N, 3) float64 array.
#       - indices: int64 rows of positions to insert (default: all rows).
#     - Side Effects: Discards the previous partition.
#     - Invariants: every inserted row appears in exactly one bucket.
#
#   - neighbor_pairs(self) -> np.ndarray:
#     - Outputs: (M, 2) int64 array of candidate pairs (i, j), i < j,
#       sorted by i then j. Contains every pair whose cells touch.

# Cell coordinates saturate at +/- 2**20 cells. Saturation only merges far
# away cells, which adds candidates but never drops a touching pair.
_CELL_BIAS = 1 << 20
_CELL_SPAN = 1 << 21
_CELL_MAX = float(_CELL_BIAS - 1)
_CELL_MIN = float(-_CELL_BIAS)

@jit(nopython=True)
def _encode_cells_numba(positions, indices, cell_size, cells, keys):
    """
    Numba-jitted function computing the integer cell of each inserted row
    and its packed key.
    """
    for k in range(indices.shape[0]):
        i = indices[k]
        for axis in range(3):
            c = np.floor(positions[i, axis] / cell_size)
            # NaN fails both comparisons, so map it explicitly to cell 0.
            if not (c == c):
                c = 0.0
            if c > _CELL_MAX:
                c = _CELL_MAX
            elif c < _CELL_MIN:
                c = _CELL_MIN
            cells[k, axis] = int(c) + _CELL_BIAS
        keys[k] = (cells[k, 0] * _CELL_SPAN + cells[k, 1]) * _CELL_SPAN + cells[k, 2]

@jit(nopython=True)
def _neighbor_pairs_numba(indices, cells, order, unique_keys, starts, counts, out, fill):
    """
    Numba-jitted function enumerating candidate pairs over the 27-cell
    neighborhood of every inserted row.

    Runs once with fill=False to count and once with fill=True to write
    into out, which avoids growing a list inside the jitted code.
    """
    total = 0
    n_unique = unique_keys.shape[0]
    for k in range(indices.shape[0]):
        i = indices[k]
        cx = cells[k, 0]
        cy = cells[k, 1]
        cz = cells[k, 2]
        for dx in range(-1, 2):
            nx = cx + dx
            if nx < 0 or nx >= _CELL_SPAN:
                continue
            for dy in range(-1, 2):
                ny = cy + dy
                if ny < 0 or ny >= _CELL_SPAN:
                    continue
                for dz in range(-1, 2):
                    nz = cz + dz
                    if nz < 0 or nz >= _CELL_SPAN:
                        continue
                    nkey = (nx * _CELL_SPAN + ny) * _CELL_SPAN + nz
                    c = np.searchsorted(unique_keys, nkey)
                    if c >= n_unique or unique_keys[c] != nkey:
                        continue
                    for s in range(starts[c], starts[c] + counts[c]):
                        j = order[s]
                        if j > i:
                            if fill:
                                out[total, 0] = i
                                out[total, 1] = j
                            total += 1
    return total


class SpatialHashGrid:
    """
    Uniform grid over 3D space, rebuilt from scratch every sub-step.

    Bodies can travel more than one cell per tick under strong forces, so
    there is no incremental update path. Query results describe only the
    most recent rebuild and must not be read across ticks.
    """
    def __init__(self, cell_size: float):
        """
        Args:
            cell_size (float): Edge length of a cell. Around twice the
                average body radius keeps candidate lists short.
        """
        self.cell_size = require_positive("cell_size", cell_size)
        self._indices: Optional[np.ndarray] = None
        self._cells = np.zeros((0, 3), dtype=np.int64)
        self._keys = np.zeros(0, dtype=np.int64)
        self._order = np.zeros(0, dtype=np.int64)
        self._unique_keys = np.zeros(0, dtype=np.int64)
        self._starts = np.zeros(0, dtype=np.int64)
        self._counts = np.zeros(0, dtype=np.int64)
        self._pairs: Optional[np.ndarray] = None

    def set_cell_size(self, cell_size: float) -> None:
        self.cell_size = require_positive("cell_size", cell_size)
        self._indices = None

    def rebuild(self, positions: np.ndarray, indices: Optional[np.ndarray] = None) -> None:
        """
        Clears the grid and re-inserts every requested row of positions.

        Args:
            positions (np.ndarray): (N, 3) array of body positions.
            indices (Optional[np.ndarray]): Rows to insert. Defaults to all.
        """
        positions = np.ascontiguousarray(positions, dtype=np.float64)
        if indices is None:
            indices = np.arange(positions.shape[0], dtype=np.int64)
        else:
            indices = np.ascontiguousarray(indices, dtype=np.int64)

        n = indices.shape[0]
        if self._cells.shape[0] != n:
            self._cells = np.empty((n, 3), dtype=np.int64)
            self._keys = np.empty(n, dtype=np.int64)
        _encode_cells_numba(positions, indices, self.cell_size, self._cells, self._keys)

        # A stable sort keeps each bucket in ascending row order.
        sort_order = np.argsort(self._keys, kind='stable')
        self._order = indices[sort_order]
        self._unique_keys, self._starts, self._counts = np.unique(
            self._keys[sort_order], return_index=True, return_counts=True
        )
        self._starts = self._starts.astype(np.int64)
        self._counts = self._counts.astype(np.int64)
        self._indices = indices
        self._pairs = None

        logging.debug(
            f"SpatialHashGrid rebuilt: {n} bodies in {self._unique_keys.shape[0]} cells "
            f"(cell size {self.cell_size:.2f})."
        )

    def _require_built(self) -> None:
        if self._indices is None:
            raise RuntimeError("SpatialHashGrid queried before rebuild().")

    @property
    def cell_count(self) -> int:
        self._require_built()
        return int(self._unique_keys.shape[0])

    def cell_of(self, index: int) -> tuple:
        """Returns the integer cell coordinates of an inserted row."""
        self._require_built()
        k = np.flatnonzero(self._indices == index)
        if k.shape[0] == 0:
            raise ValueError(f"Row {index} is not in the grid.")
        cell = self._cells[k[0]] - _CELL_BIAS
        return (int(cell[0]), int(cell[1]), int(cell[2]))

    def bucket(self, cell: tuple) -> np.ndarray:
        """Returns the rows stored in a cell, in ascending order."""
        self._require_built()
        biased = [int(c) + _CELL_BIAS for c in cell]
        key = (biased[0] * _CELL_SPAN + biased[1]) * _CELL_SPAN + biased[2]
        c = int(np.searchsorted(self._unique_keys, key))
        if c >= self._unique_keys.shape[0] or self._unique_keys[c] != key:
            return np.zeros(0, dtype=np.int64)
        start = self._starts[c]
        return self._order[start:start + self._counts[c]].copy()

    def neighbor_pairs(self) -> np.ndarray:
        """Returns all candidate pairs (i < j), sorted by i then j."""
        self._require_built()
        if self._pairs is not None:
            return self._pairs

        empty = np.zeros((0, 2), dtype=np.int64)
        total = _neighbor_pairs_numba(
            self._indices, self._cells, self._order, self._unique_keys,
            self._starts, self._counts, empty, False
        )
        pairs = np.empty((total, 2), dtype=np.int64)
        if total > 0:
            _neighbor_pairs_numba(
                self._indices, self._cells, self._order, self._unique_keys,
                self._starts, self._counts, pairs, True
            )
            # Sort by index rather than by cell visiting order.
            pairs = pairs[np.lexsort((pairs[:, 1], pairs[:, 0]))]
        self._pairs = np.ascontiguousarray(pairs)
        return self._pairs

    @property
    def candidate_count(self) -> int:
        return int(self.neighbor_pairs().shape[0])

    def for_each_neighbor_pair(self, callback: Callable[[int, int], None]) -> None:
        """Calls callback(i, j) exactly once per candidate pair, i < j."""
        for i, j in self.neighbor_pairs():
            callback(int(i), int(j))
