"""
Wolff single-cluster Monte Carlo for the zero-field Ising model.

Every iteration grows one cluster from the origin of a
:class:`~wolff_ising.lattice.GrowableLattice`, flips it, and records which
sites took part. After ``N`` iterations the fraction of clusters containing
site ``i`` estimates the spin-spin correlation between ``i`` and the origin.

Bonds between equal neighbouring spins are activated with probability
``1 - exp(-2 beta)``. Because the cluster search reads neighbour spins with
the materializing accessor, the lattice grows whenever a cluster reaches its
outer ring.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from . import utils
from .lattice import GrowableLattice, LatticeView

logger = logging.getLogger(__name__)

BETA_CRITICAL = 0.5 * math.log(1.0 + math.sqrt(2.0))  # ~0.44068679

Cluster = List[int]


@dataclass(frozen=True)
class SolverView:
    """Read-only snapshot handed to observers after each iteration."""

    lattice: LatticeView
    beta: float
    n_iterations: int
    iteration: int


Observer = Callable[[SolverView, Tuple[int, ...], int], None]


@dataclass
class WolffConfig:
    beta: float = BETA_CRITICAL
    iterations: int = 100_000
    initial_generation: int = 0
    max_generation: Optional[int] = None
    seed: Optional[int] = None


def _check_beta(beta: float) -> float:
    beta = float(beta)
    if not math.isfinite(beta) or beta <= 0.0:
        raise ValueError(f"beta must be a finite positive number, got {beta}")
    return beta


class ClusterSolver:
    """
    Wolff cluster solver bound to one lattice.

    Observers registered in :attr:`on_update` are called synchronously, in
    registration order, after every iteration with
    ``(SolverView, cluster, iteration)``. They must not mutate the lattice.
    """

    def __init__(
        self,
        lattice: GrowableLattice,
        beta: float,
        *,
        seed: Optional[int] = None,
    ) -> None:
        self.lattice = lattice
        self.beta = _check_beta(beta)
        # expm1 keeps the probability accurate for tiny beta
        self.bond_probability = -math.expm1(-2.0 * self.beta)
        self.rng = np.random.default_rng(seed)

        self.on_update: List[Observer] = []
        self.n_iterations = 0
        self.last_counts: Optional[np.ndarray] = None

    def cluster_search(self) -> Cluster:
        """
        Grow one Wolff cluster starting at the origin.

        The cluster list doubles as the FIFO frontier: members appended during
        the sweep are visited later in the same sweep.
        """
        lattice = self.lattice
        p_add = self.bond_probability
        random = self.rng.random

        cluster = [0]
        members = {0}
        bonds_visited = set()

        current_idx = 0
        while current_idx < len(cluster):
            current = cluster[current_idx]
            current_spin = lattice.spin(current)
            for neighbor in lattice.neighbors(current):
                if lattice.fetch_spin(neighbor) != current_spin:
                    continue
                if neighbor in members:
                    continue
                bond = (current, neighbor) if current < neighbor else (neighbor, current)
                if bond in bonds_visited:
                    continue
                bonds_visited.add(bond)
                if random() < p_add:
                    cluster.append(neighbor)
                    members.add(neighbor)
            current_idx += 1

        return cluster

    def run(self, iterations: int) -> np.ndarray:
        """
        Run ``iterations`` Wolff updates and return the flip frequency per site.

        The result has one entry per materialized site at the end of the run;
        entry ``i`` is the fraction of iterations whose cluster contained ``i``.
        """
        if isinstance(iterations, bool) or int(iterations) != iterations or iterations <= 0:
            raise ValueError(f"iterations must be a positive integer, got {iterations!r}")
        iterations = int(iterations)

        lattice = self.lattice
        view = lattice.view()
        counts = np.zeros(lattice.num_sites, dtype=np.int64)

        logger.info(
            "Running Wolff: beta=%.6f, iterations=%d, start generation=%d",
            self.beta, iterations, lattice.generation(),
        )
        start_time = time.time()

        self.n_iterations = iterations
        try:
            for i in range(iterations):
                cluster = self.cluster_search()
                lattice.flip(cluster)

                if counts.shape[0] < lattice.num_sites:
                    counts = _extend(counts, lattice.num_sites)
                counts[cluster] += 1

                if self.on_update:
                    frozen = tuple(cluster)
                    state = SolverView(view, self.beta, iterations, i)
                    for callback in self.on_update:
                        callback(state, frozen, i)
        finally:
            self.n_iterations = 0

        counts = _extend(counts, lattice.num_sites)
        self.last_counts = counts

        logger.info(
            "Finished in %.2fs: generation=%d, sites=%d",
            time.time() - start_time, lattice.generation(), lattice.num_sites,
        )
        return counts / float(iterations)


def _extend(counts: np.ndarray, size: int) -> np.ndarray:
    """Zero-pad ``counts`` to ``size`` entries."""
    if counts.shape[0] >= size:
        return counts
    out = np.zeros(size, dtype=counts.dtype)
    out[: counts.shape[0]] = counts
    return out


def simulate(
    config: WolffConfig | None = None,
    observers: Sequence[Observer] = (),
) -> utils.CorrelationResult:
    """Build a lattice and solver from ``config``, run it and collect the result."""
    config = config or WolffConfig()
    lattice = GrowableLattice(
        config.initial_generation, max_generation=config.max_generation
    )
    solver = ClusterSolver(lattice, config.beta, seed=config.seed)
    solver.on_update.extend(observers)

    frequencies = solver.run(config.iterations)

    meta = {
        "model": "wolff",
        "beta": config.beta,
        "iterations": config.iterations,
        "seed": config.seed,
        "generation": lattice.generation(),
        "num_sites": lattice.num_sites,
    }
    return utils.CorrelationResult(
        coords=lattice.coords(), frequencies=frequencies, meta=meta
    )


def run_model(config: dict | None = None) -> utils.CorrelationResult:
    params = config or {}
    defaults = WolffConfig()
    return simulate(
        WolffConfig(
            beta=params.get("beta", defaults.beta),
            iterations=params.get("iterations", defaults.iterations),
            initial_generation=params.get("initial_generation", defaults.initial_generation),
            max_generation=params.get("max_generation", defaults.max_generation),
            seed=params.get("seed", defaults.seed),
        )
    )


__all__ = [
    "BETA_CRITICAL",
    "ClusterSolver",
    "SolverView",
    "WolffConfig",
    "simulate",
    "run_model",
]
