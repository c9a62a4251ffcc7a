#!/usr/bin/env python3
"""
Wolff Ising Simulation Runner

Runs the Wolff cluster algorithm on the growable lattice at a given inverse
temperature and writes the correlation table ``x  y  G`` to disk.
"""

import argparse
import sys
import time
from pathlib import Path

from wolff_ising import ClusterSolver, GrowableLattice, WolffConfig, render, utils


def build_config(args: argparse.Namespace) -> WolffConfig:
    """Merge a parameter file (if any) with explicit command-line values."""
    params = utils.load_params(args.params) if args.params else {}
    overrides = {
        "beta": args.beta,
        "iterations": args.iterations,
        "initial_generation": args.initial_generation,
        "max_generation": args.max_generation,
        "seed": args.seed,
    }
    params.update({k: v for k, v in overrides.items() if v is not None})
    return WolffConfig(**params)


def main():
    parser = argparse.ArgumentParser(
        description="Run a Wolff cluster simulation on an infinite square lattice",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "beta",
        type=float,
        nargs="?",
        default=None,
        help="Inverse temperature (critical value ~0.44068)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Number of Wolff updates (default: 100000)",
    )
    parser.add_argument(
        "--initial-generation",
        type=int,
        default=None,
        help="Pre-grow the lattice to this generation (default: 0)",
    )
    parser.add_argument(
        "--max-generation",
        type=int,
        default=None,
        help="Abort if the lattice would grow past this generation",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--params",
        type=str,
        default=None,
        help="JSON or TOML parameter file; command-line values take precedence",
    )
    parser.add_argument(
        "--animate",
        choices=["none", "plain", "color"],
        default="none",
        help="Draw the lattice in the terminal after every update",
    )
    parser.add_argument(
        "--progress", action="store_true", help="Print percentage progress"
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output table path (default: G_<beta>.dat)",
    )
    parser.add_argument(
        "--npz", type=str, default=None, help="Also save the result as .npz"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()
    utils.configure_logging("DEBUG" if args.verbose else "INFO")

    config = build_config(args)

    lattice = GrowableLattice(
        config.initial_generation, max_generation=config.max_generation
    )
    solver = ClusterSolver(lattice, config.beta, seed=config.seed)
    if args.progress:
        solver.on_update.append(render.ProgressReporter())
    if args.animate == "plain":
        solver.on_update.append(render.TerminalAnimator(color=False, sleep=0.0))
    elif args.animate == "color":
        solver.on_update.append(render.TerminalAnimator(color=True))

    print(f"Running Wolff simulation: beta={config.beta}, N={config.iterations}")
    start_time = time.time()
    frequencies = solver.run(config.iterations)
    elapsed_time = time.time() - start_time

    print(f"Final lattice size: {lattice.generation()}")

    out = Path(args.out or utils.default_table_name(config.beta))
    coords = lattice.coords()
    utils.save_correlation_table(out, coords, frequencies)

    if args.npz:
        meta = {
            "model": "wolff",
            "beta": config.beta,
            "iterations": config.iterations,
            "seed": config.seed,
            "generation": lattice.generation(),
            "num_sites": lattice.num_sites,
            "timestamp": utils.now_str(),
        }
        utils.save_result(
            args.npz,
            utils.CorrelationResult(coords=coords, frequencies=frequencies, meta=meta),
        )

    print(f"\nSimulation completed in {elapsed_time:.2f} seconds")
    print(f"   Sites: {lattice.num_sites}")
    print(f"   Table saved to: {out}")
    if args.npz:
        print(f"   Result saved to: {args.npz}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
