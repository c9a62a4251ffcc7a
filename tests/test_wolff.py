"""
Unit tests for the Wolff cluster solver.
"""

import math

import numpy as np
import pytest

from wolff_ising import utils
from wolff_ising.lattice import SPIN0, GrowableLattice, num_sites_up_to
from wolff_ising.wolff import (
    BETA_CRITICAL,
    ClusterSolver,
    SolverView,
    WolffConfig,
    run_model,
    simulate,
)

BETA_HOT = 1e-300  # bond probability ~2e-300
BETA_COLD = 50.0  # bond probability rounds to one


def test_bond_probability():
    solver = ClusterSolver(GrowableLattice(), BETA_CRITICAL)
    assert solver.bond_probability == pytest.approx(1.0 - math.exp(-2.0 * BETA_CRITICAL))
    assert ClusterSolver(GrowableLattice(), BETA_COLD).bond_probability == 1.0


@pytest.mark.parametrize("beta", [0.0, -0.5, float("nan"), float("inf")])
def test_invalid_beta(beta):
    with pytest.raises(ValueError):
        ClusterSolver(GrowableLattice(), beta)


@pytest.mark.parametrize("iterations", [0, -3, 2.5])
def test_invalid_iterations(iterations):
    solver = ClusterSolver(GrowableLattice(), 0.3, seed=1)
    with pytest.raises(ValueError):
        solver.run(iterations)


def test_hot_cluster_is_origin_only():
    lattice = GrowableLattice(3)
    solver = ClusterSolver(lattice, BETA_HOT, seed=7)
    for _ in range(20):
        cluster = solver.cluster_search()
        assert cluster == [0]
        lattice.flip(cluster)


def test_cold_cluster_is_full_flood_fill():
    """
    With every bond accepted, iteration k flips exactly generations 0..k-1:
    the Neel start makes each cluster stop at the next, opposite, ring.
    """
    lattice = GrowableLattice(0)
    solver = ClusterSolver(lattice, BETA_COLD, seed=3)
    for k in range(1, 8):
        cluster = solver.cluster_search()
        assert sorted(cluster) == list(range(num_sites_up_to(k - 1)))
        lattice.flip(cluster)
        assert lattice.generation() == k


def test_cold_cluster_is_connected_component():
    lattice = GrowableLattice(4)
    # carve a same-spin path from the origin: (0,0) -> (1,0) -> (1,1)
    path = [lattice.index_of(c) for c in [(1, 0), (1, 1)]]
    lattice.flip([path[0]])  # (1,0) now matches the origin; (1,1) already does
    solver = ClusterSolver(lattice, BETA_COLD, seed=0)

    cluster = solver.cluster_search()

    assert cluster[0] == 0
    assert len(cluster) == len(set(cluster))
    assert set(path) <= set(cluster)
    origin_spin = lattice.spin(0)
    for site in cluster:
        assert lattice.spin(site) == origin_spin
    # every same-spin neighbour of a member is also a member
    members = set(cluster)
    for site in cluster:
        for n in lattice.neighbors(site):
            if lattice.fetch_spin(n) == origin_spin:
                assert n in members


def test_cluster_search_does_not_flip():
    lattice = GrowableLattice(2)
    solver = ClusterSolver(lattice, 0.6, seed=11)
    before = lattice.spins()
    solver.cluster_search()
    assert np.array_equal(lattice.spins()[: before.shape[0]], before)


def test_run_frequencies():
    lattice = GrowableLattice(0)
    solver = ClusterSolver(lattice, BETA_CRITICAL, seed=2024)
    n = 200
    frequencies = solver.run(n)

    assert frequencies.shape == (lattice.num_sites,)
    assert np.all(frequencies >= 0.0)
    assert np.all(frequencies <= 1.0)
    # the origin seeds every cluster
    assert frequencies[0] == 1.0
    assert np.array_equal(solver.last_counts, np.rint(frequencies * n).astype(np.int64))
    assert solver.n_iterations == 0


def test_run_counts_cold_clusters():
    lattice = GrowableLattice(0)
    solver = ClusterSolver(lattice, BETA_COLD, seed=5)
    n = 4
    frequencies = solver.run(n)
    # site in generation g (g < n) is flipped in iterations g+1 .. n
    for site in range(lattice.num_sites):
        g = abs(lattice.coord_of(site)[0]) + abs(lattice.coord_of(site)[1])
        assert frequencies[site] == pytest.approx(max(0, n - g) / n)


def test_run_is_reproducible_with_seed():
    a = ClusterSolver(GrowableLattice(), 0.4, seed=99).run(100)
    b = ClusterSolver(GrowableLattice(), 0.4, seed=99).run(100)
    assert np.array_equal(a, b)


def test_observers_called_in_order():
    lattice = GrowableLattice(0)
    solver = ClusterSolver(lattice, 0.5, seed=1)
    calls = []

    def first(state, cluster, i):
        calls.append(("first", i))
        assert isinstance(state, SolverView)
        assert state.iteration == i
        assert state.n_iterations == 5
        assert state.beta == 0.5
        assert isinstance(cluster, tuple)
        assert cluster[0] == 0
        # the cluster was flipped before the callback
        assert state.lattice.spin(0) != (SPIN0 if i % 2 == 0 else not SPIN0)

    def second(state, cluster, i):
        calls.append(("second", i))
        assert not hasattr(state.lattice, "flip")

    solver.on_update.append(first)
    solver.on_update.append(second)
    solver.run(5)

    assert calls == [(name, i) for i in range(5) for name in ("first", "second")]


def test_observer_errors_propagate():
    solver = ClusterSolver(GrowableLattice(), 0.5, seed=1)

    def boom(state, cluster, i):
        raise RuntimeError("observer failed")

    solver.on_update.append(boom)
    with pytest.raises(RuntimeError, match="observer failed"):
        solver.run(3)
    assert solver.n_iterations == 0


def test_simulate_returns_result():
    result = simulate(WolffConfig(beta=0.3, iterations=50, seed=8, initial_generation=2))
    assert isinstance(result, utils.CorrelationResult)
    assert result.coords.shape == (result.frequencies.shape[0], 2)
    assert result.meta["model"] == "wolff"
    assert result.meta["num_sites"] == result.frequencies.shape[0]
    assert result.meta["generation"] >= 2


def test_run_model_from_dict():
    result = run_model({"beta": 0.2, "iterations": 10, "seed": 4})
    assert result.meta["iterations"] == 10
    assert result.frequencies[0] == 1.0
