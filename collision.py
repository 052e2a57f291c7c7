# collision.py
"""
Narrow-phase sphere collision resolution.

This module defines the CollisionResolver class. It uses the
SpatialHashGrid to find candidate pairs and then resolves them one after
another: a positional correction pushes overlapping spheres apart, and an
impulse along the contact normal removes the approaching component of
their relative velocity.

Resolution is sequential on purpose. A body moved by one pair is seen at
its new position by the next pair, so the pair order (ascending i, then
ascending j) is what makes a run reproducible.
"""
import logging
import numpy as np
from typing import Optional
from numba import jit

from constants import DEFAULT_CORRECTION_FACTOR, DEFAULT_RESTITUTION, COINCIDENT_NORMAL
from particle import ParticleSystem
from spatial_grid import SpatialHashGrid
from utils import require_positive, require_unit_interval

# --- Data Contracts ---
#
# class CollisionResolver:
#   - __init__(self, correction_factor: float, restitution: float,
#              cell_size: Optional[float]):
#     - Inputs: correction_factor and restitution in [0, 1]. cell_size of
#       None means "twice the largest radius", recomputed per call.
#   - resolve(self, system: ParticleSystem) -> int:
#     - Outputs: number of overlapping pairs that were resolved.
#     - Side Effects: Modifies positions and velocities of the system.
#     - Invariants: a configuration without overlaps is left untouched.

_NORMAL_X, _NORMAL_Y, _NORMAL_Z = COINCIDENT_NORMAL

@jit(nopython=True)
def _resolve_pairs_numba(positions, velocities, radii, pairs, correction_factor, restitution):
    """
    Numba-jitted function resolving candidate pairs in the given order.

    Uses squared distances for the reject test and takes one square root
    per contact.
    """
    contacts = 0
    for p in range(pairs.shape[0]):
        a = pairs[p, 0]
        b = pairs[p, 1]
        dx = positions[a, 0] - positions[b, 0]
        dy = positions[a, 1] - positions[b, 1]
        dz = positions[a, 2] - positions[b, 2]
        dist_sq = dx * dx + dy * dy + dz * dz
        min_dist = radii[a] + radii[b]
        if dist_sq >= min_dist * min_dist:
            continue

        contacts += 1
        dist = np.sqrt(dist_sq)
        if dist > 0.0:
            nx = dx / dist
            ny = dy / dist
            nz = dz / dist
        else:
            nx = _NORMAL_X
            ny = _NORMAL_Y
            nz = _NORMAL_Z

        # Each body moves by the corrected overlap; 0.5 closes it in one pass.
        push = (min_dist - dist) * correction_factor
        positions[a, 0] += nx * push
        positions[a, 1] += ny * push
        positions[a, 2] += nz * push
        positions[b, 0] -= nx * push
        positions[b, 1] -= ny * push
        positions[b, 2] -= nz * push

        rvx = velocities[a, 0] - velocities[b, 0]
        rvy = velocities[a, 1] - velocities[b, 1]
        rvz = velocities[a, 2] - velocities[b, 2]
        along_normal = rvx * nx + rvy * ny + rvz * nz
        if along_normal < 0.0:
            j = -(1.0 + restitution) * along_normal * 0.5
            velocities[a, 0] += nx * j
            velocities[a, 1] += ny * j
            velocities[a, 2] += nz * j
            velocities[b, 0] -= nx * j
            velocities[b, 1] -= ny * j
            velocities[b, 2] -= nz * j
    return contacts

def brute_force_pairs(positions: np.ndarray, radii: np.ndarray) -> set:
    """
    Returns every overlapping pair (i, j), i < j, by checking all pairs.

    O(N^2) reference for checking the broad phase.
    """
    n = positions.shape[0]
    overlapping = set()
    for i in range(n):
        delta = positions[i + 1:] - positions[i]
        dist_sq = np.einsum('ij,ij->i', delta, delta)
        min_dist = radii[i + 1:] + radii[i]
        for offset in np.flatnonzero(dist_sq < min_dist * min_dist):
            overlapping.add((i, i + 1 + int(offset)))
    return overlapping


class CollisionResolver:
    """
    Resolves sphere overlaps between the live bodies of a ParticleSystem.
    """
    def __init__(
        self,
        correction_factor: float = DEFAULT_CORRECTION_FACTOR,
        restitution: float = DEFAULT_RESTITUTION,
        cell_size: Optional[float] = None,
    ):
        self.correction_factor = require_unit_interval("correction_factor", correction_factor)
        self.restitution = require_unit_interval("restitution", restitution)
        self.cell_size = None if cell_size is None else require_positive("cell_size", cell_size)
        self.grid: Optional[SpatialHashGrid] = None
        self.last_candidate_count = 0
        self.last_contact_count = 0

        logging.info(
            f"CollisionResolver initialized: correction {self.correction_factor:.2f}, "
            f"restitution {self.restitution:.2f}, cell size "
            f"{'auto' if self.cell_size is None else f'{self.cell_size:.2f}'}."
        )

    def _cell_size_for(self, radii: np.ndarray) -> float:
        if self.cell_size is not None:
            return self.cell_size
        if radii.shape[0] == 0:
            return 1.0
        return max(2.0 * float(np.max(radii)), 1e-6)

    def resolve_arrays(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        radii: np.ndarray,
        indices: Optional[np.ndarray] = None,
    ) -> int:
        """
        Rebuilds the grid and resolves all contacts on bare arrays.

        Args:
            positions (np.ndarray): (N, 3) float64, modified in place.
            velocities (np.ndarray): (N, 3) float64, modified in place.
            radii (np.ndarray): (N,) float64.
            indices (Optional[np.ndarray]): Rows taking part. Defaults to all.

        Returns:
            int: The number of contacts resolved.
        """
        live_radii = radii if indices is None else radii[indices]
        cell_size = self._cell_size_for(live_radii)
        if self.grid is None:
            self.grid = SpatialHashGrid(cell_size)
        elif self.grid.cell_size != cell_size:
            self.grid.set_cell_size(cell_size)

        self.grid.rebuild(positions, indices)
        pairs = self.grid.neighbor_pairs()
        self.last_candidate_count = int(pairs.shape[0])
        if pairs.shape[0] == 0:
            self.last_contact_count = 0
            return 0

        self.last_contact_count = int(_resolve_pairs_numba(
            positions, velocities, radii, pairs,
            self.correction_factor, self.restitution
        ))
        logging.debug(
            f"Collision pass: {self.last_candidate_count} candidates, "
            f"{self.last_contact_count} contacts."
        )
        return self.last_contact_count

    def resolve(self, system: ParticleSystem) -> int:
        """Resolves contacts between the live bodies of system."""
        if system.count == 0:
            return 0
        return self.resolve_arrays(
            system.positions, system.velocities, system.radii, system.live_indices()
        )
