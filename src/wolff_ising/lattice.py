"""
Self-expanding square lattice for Ising simulations.

The lattice starts as a single site at the origin and grows in diamond-shaped
rings ("generations"). A lattice of generation 1 looks like this::

     +
    +-+
     +

and a lattice of generation 2 like this::

      -
     -+-
    -+-+-
     -+-
      -

Sites are addressed in two ways:

*   Cartesian coordinates ``(x, y)`` with the origin at ``(0, 0)``,
    ``x`` growing to the right and ``y`` growing upwards.
*   A linear index used for array storage. Index 0 is the origin; each ring is
    numbered clockwise starting at the top, in four sectors of ``g`` sites.
    For generation 2 (hex digits)::

          5
         c16
        b4027
         a38
          9

The two systems are converted with :func:`coord2indx` and :func:`indx2coord`.
Growth never renumbers existing sites, so storage is always a prefix of the
infinite enumeration.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional, Tuple

import numpy as np
from numba import njit

logger = logging.getLogger(__name__)

###############################################################################
# Constants
###############################################################################

SPIN0 = True  # spin of the origin in the initial Neel configuration

Coord = Tuple[int, int]
Neighbors = Tuple[int, int, int, int]


class LatticeCapacityError(RuntimeError):
    """Raised when growth would exceed the lattice's ``max_generation``."""


###############################################################################
# Index arithmetic (Numba kernels)
###############################################################################


@njit(cache=True)
def num_sites_up_to(gen: int) -> int:
    """Number of sites in a lattice of generation ``gen``."""
    return 2 * gen * gen + 2 * gen + 1


@njit(cache=True)
def generation_of(site: int) -> int:
    """Generation (ring) that linear index ``site`` belongs to."""
    if site < 0:
        raise ValueError("site index must be non-negative")
    if site == 0:
        return 0
    gen = int(0.5 * (math.sqrt(2.0 * site - 1.0) - 1.0)) + 1
    # float sqrt can be off by one for very large indices
    while num_sites_up_to(gen) <= site:
        gen += 1
    while gen > 1 and num_sites_up_to(gen - 1) > site:
        gen -= 1
    return gen


@njit(cache=True)
def coord2indx(x: int, y: int) -> int:
    """Linear index of the site at Cartesian coordinates ``(x, y)``."""
    gen = abs(x) + abs(y)
    if x >= 0 and y > 0:
        # Sector I
        return num_sites_up_to(gen - 1) + (gen + x - y) // 2
    elif x > 0 and y <= 0:
        # Sector II
        return num_sites_up_to(gen - 1) + (gen - x - y) // 2 + gen
    elif x <= 0 and y < 0:
        # Sector III
        return num_sites_up_to(gen - 1) + (gen - x + y) // 2 + 2 * gen
    elif x < 0 and y >= 0:
        # Sector IV
        return num_sites_up_to(gen - 1) + (gen + x + y) // 2 + 3 * gen
    return 0


@njit(cache=True)
def indx2coord(site: int) -> Tuple[int, int]:
    """Cartesian coordinates of linear index ``site``."""
    if site < 0:
        raise ValueError("site index must be non-negative")
    if site == 0:
        return 0, 0

    gen = generation_of(site)
    pos_in_gen = site - num_sites_up_to(gen - 1)
    pos = pos_in_gen % gen
    sector = pos_in_gen // gen

    if sector == 0:
        return pos, gen - pos
    elif sector == 1:
        return gen - pos, -pos
    elif sector == 2:
        return -pos, -gen + pos
    elif sector == 3:
        return -gen + pos, pos
    raise ValueError("site index maps to an invalid ring sector")


@njit(cache=True)
def _neighbor_block(start: int, stop: int) -> np.ndarray:
    """
    Neighbor table (up, right, down, left) for sites ``start .. stop - 1``.

    Neighbors are computed from coordinates, so rows may reference sites
    outside the currently materialized lattice.
    """
    out = np.empty((stop - start, 4), dtype=np.int64)
    for k in range(stop - start):
        x, y = indx2coord(start + k)
        out[k, 0] = coord2indx(x, y + 1)
        out[k, 1] = coord2indx(x + 1, y)
        out[k, 2] = coord2indx(x, y - 1)
        out[k, 3] = coord2indx(x - 1, y)
    return out


@njit(cache=True)
def _coord_block(start: int, stop: int) -> np.ndarray:
    """Coordinates of sites ``start .. stop - 1`` as an (N, 2) array."""
    out = np.empty((stop - start, 2), dtype=np.int64)
    for k in range(stop - start):
        x, y = indx2coord(start + k)
        out[k, 0] = x
        out[k, 1] = y
    return out


def neel_spin(gen: int) -> bool:
    """Initial spin shared by every site of generation ``gen``."""
    return SPIN0 if gen % 2 == 0 else not SPIN0


###############################################################################
# Lattice
###############################################################################


class GrowableLattice:
    """
    Unbounded square lattice that materializes one ring at a time.

    Spins and the (up, right, down, left) neighbor table are kept in NumPy
    arrays whose first ``num_sites`` rows are valid. Not thread-safe.

    Reads are split into two tiers: :meth:`spin` and :meth:`neighbors` only
    touch materialized sites and raise ``IndexError`` otherwise, while
    :meth:`ensure_materialized` (and :meth:`fetch_spin`, built on it) grows
    the lattice until the requested site exists.
    """

    def __init__(
        self,
        initial_generation: int = 0,
        *,
        max_generation: Optional[int] = None,
    ) -> None:
        if initial_generation < 0:
            raise ValueError(
                f"initial_generation must be non-negative, got {initial_generation}"
            )
        if max_generation is not None and max_generation < initial_generation:
            raise ValueError(
                f"max_generation ({max_generation}) is smaller than "
                f"initial_generation ({initial_generation})"
            )
        self.max_generation = max_generation

        capacity = num_sites_up_to(initial_generation)
        self._spins = np.empty(capacity, dtype=bool)
        self._neighbors = np.empty((capacity, 4), dtype=np.int64)

        # Generation 0: the origin alone
        self._gen = 0
        self._size = 1
        self._spins[0] = SPIN0
        self._neighbors[0] = _neighbor_block(0, 1)[0]

        for _ in range(initial_generation):
            self._grow()

    # ------------------------------------------------------------------ growth
    def _reserve(self, size: int) -> None:
        capacity = self._spins.shape[0]
        if size <= capacity:
            return
        capacity = max(size, 2 * capacity)
        spins = np.empty(capacity, dtype=bool)
        spins[: self._size] = self._spins[: self._size]
        neighbors = np.empty((capacity, 4), dtype=np.int64)
        neighbors[: self._size] = self._neighbors[: self._size]
        self._spins = spins
        self._neighbors = neighbors

    def _grow(self) -> None:
        """Append the next ring of ``4 * gen`` sites."""
        gen = self._gen + 1
        if self.max_generation is not None and gen > self.max_generation:
            raise LatticeCapacityError(
                f"lattice would grow to generation {gen}, "
                f"beyond max_generation={self.max_generation}"
            )

        start = self._size
        stop = num_sites_up_to(gen)
        self._reserve(stop)
        self._spins[start:stop] = neel_spin(gen)
        self._neighbors[start:stop] = _neighbor_block(start, stop)
        self._size = stop
        self._gen = gen
        logger.debug("lattice grown to generation %d (%d sites)", gen, stop)

    def ensure_materialized(self, site: int) -> int:
        """Grow ring by ring until ``site`` exists; return the generation."""
        if site < 0:
            raise ValueError(f"site index must be non-negative, got {site}")
        while site >= self._size:
            self._grow()
        return self._gen

    # ------------------------------------------------------------------ queries
    def generation(self) -> int:
        return self._gen

    @property
    def num_sites(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def is_materialized(self, site: int) -> bool:
        return 0 <= site < self._size

    def _check(self, site: int) -> None:
        if not 0 <= site < self._size:
            raise IndexError(
                f"site {site} is not materialized "
                f"(lattice generation {self._gen}, {self._size} sites)"
            )

    def spin(self, site: int) -> bool:
        """Spin of a materialized site. Never grows the lattice."""
        self._check(site)
        return bool(self._spins[site])

    def fetch_spin(self, site: int) -> bool:
        """Spin of ``site``, materializing it first if necessary."""
        self.ensure_materialized(site)
        return bool(self._spins[site])

    def neighbors(self, site: int) -> Neighbors:
        """(up, right, down, left) neighbor indices of a materialized site."""
        self._check(site)
        up, right, down, left = self._neighbors[site].tolist()
        return up, right, down, left

    @staticmethod
    def coord_of(site: int) -> Coord:
        x, y = indx2coord(site)
        return int(x), int(y)

    @staticmethod
    def index_of(coord: Coord) -> int:
        x, y = coord
        return int(coord2indx(x, y))

    def spins(self) -> np.ndarray:
        """Copy of the spins of all materialized sites."""
        return self._spins[: self._size].copy()

    def coords(self) -> np.ndarray:
        """(N, 2) integer array of the coordinates of all materialized sites."""
        return _coord_block(0, self._size)

    # ------------------------------------------------------------------ mutation
    def flip(self, sites: Iterable[int]) -> None:
        """
        Invert the spin of every site in ``sites``.

        All sites must already be materialized; otherwise ``IndexError`` is
        raised and no spin is changed.
        """
        idx = np.unique(np.fromiter(sites, dtype=np.int64))
        if idx.size == 0:
            return
        if idx[0] < 0 or idx[-1] >= self._size:
            bad = idx[(idx < 0) | (idx >= self._size)]
            raise IndexError(
                f"cannot flip unmaterialized sites {bad.tolist()} "
                f"(lattice has {self._size} sites)"
            )
        self._spins[idx] = ~self._spins[idx]

    def view(self) -> "LatticeView":
        return LatticeView(self)

    def __repr__(self) -> str:
        return f"GrowableLattice(generation={self._gen}, num_sites={self._size})"


class LatticeView:
    """Read-only facade over a :class:`GrowableLattice` handed to observers."""

    __slots__ = ("_lattice",)

    def __init__(self, lattice: GrowableLattice) -> None:
        self._lattice = lattice

    def generation(self) -> int:
        return self._lattice.generation()

    @property
    def num_sites(self) -> int:
        return self._lattice.num_sites

    def __len__(self) -> int:
        return self._lattice.num_sites

    def is_materialized(self, site: int) -> bool:
        return self._lattice.is_materialized(site)

    def spin(self, site: int) -> bool:
        return self._lattice.spin(site)

    def neighbors(self, site: int) -> Neighbors:
        return self._lattice.neighbors(site)

    def coord_of(self, site: int) -> Coord:
        return self._lattice.coord_of(site)

    def index_of(self, coord: Coord) -> int:
        return self._lattice.index_of(coord)

    def spins(self) -> np.ndarray:
        return self._lattice.spins()

    def coords(self) -> np.ndarray:
        return self._lattice.coords()

    def __repr__(self) -> str:
        return f"LatticeView({self._lattice!r})"


__all__ = [
    "SPIN0",
    "GrowableLattice",
    "LatticeView",
    "LatticeCapacityError",
    "coord2indx",
    "indx2coord",
    "generation_of",
    "num_sites_up_to",
    "neel_spin",
]
