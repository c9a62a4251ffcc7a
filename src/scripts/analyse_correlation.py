"""
Correlation analysis for Wolff correlation tables.

Bins the flip frequency G(x, y) by Euclidean distance from the origin and
fits an exponential decay G(r) ~ exp(-r / xi) to estimate the correlation
length xi.
"""
from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np
from matplotlib import pyplot as plt
from scipy.stats import linregress

from wolff_ising import utils


def radial_profile(
    coords: np.ndarray, frequencies: np.ndarray
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Average G over sites sharing the same Euclidean distance.

    Returns:
        Tuple of (r, G_mean, counts) sorted by r
    """
    coords = np.asarray(coords, dtype=np.float64)
    distances = np.sqrt(coords[:, 0] ** 2 + coords[:, 1] ** 2)
    # squared distances are integers, round to merge float noise
    keys = np.round(distances**2).astype(np.int64)
    unique_keys, inverse, counts = np.unique(
        keys, return_inverse=True, return_counts=True
    )
    sums = np.bincount(inverse, weights=frequencies)
    return np.sqrt(unique_keys.astype(np.float64)), sums / counts, counts


def fit_correlation_length(
    r: np.ndarray, g: np.ndarray, r_min: float = 1.0, min_samples: int = 4
) -> tuple[float, float, float]:
    """
    Fit log G(r) = -r / xi + c over r >= r_min where G > 0.

    Returns:
        Tuple of (xi, intercept, r_squared)
    """
    mask = (r >= r_min) & (g > 0)
    if np.count_nonzero(mask) < min_samples:
        raise ValueError(
            f"Too few positive points ({np.count_nonzero(mask)}) for a fit; "
            f"need at least {min_samples}."
        )
    slope, intercept, r_value, p_value, std_err = linregress(r[mask], np.log(g[mask]))
    if slope >= 0:
        raise ValueError(f"G(r) does not decay (slope={slope:.4g})")
    return -1.0 / slope, intercept, r_value**2


def analyse_table(
    table_path: str | Path,
    output_path: str | Path | None = None,
    show_plot: bool = False,
) -> None:
    table_path = Path(table_path)
    print(f"Loading {table_path}...")
    result = utils.load_correlation_table(table_path)
    print(f"Sites found: {len(result.frequencies):,}")

    r, g, counts = radial_profile(result.coords, result.frequencies)
    xi, intercept, r2 = fit_correlation_length(r, g)

    print("\n" + "=" * 60)
    print(f"Correlation length xi: {xi:.5f}")
    print(f"R² (Linearity): {r2:.6f}")
    print("=" * 60)

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 6))

    # Left: spatial map of G
    coords = result.coords
    sc = ax1.scatter(
        coords[:, 0], coords[:, 1], c=result.frequencies, s=4, marker="s", cmap="viridis"
    )
    fig.colorbar(sc, ax=ax1, label="G(x, y)")
    ax1.set_aspect("equal")
    ax1.set_xlabel("x")
    ax1.set_ylabel("y")
    ax1.set_title("Flip frequency")

    # Right: radial decay with fit
    positive = g > 0
    ax2.scatter(r[positive], g[positive], color="black", s=6, alpha=0.5, label="Simulation Data")
    fit_r = np.linspace(r[positive].min(), r[positive].max(), 200)
    ax2.plot(
        fit_r,
        np.exp(intercept - fit_r / xi),
        color="red",
        linestyle="--",
        linewidth=2,
        label=f"Fit: $\\xi = {xi:.3f}$",
    )
    ax2.set_yscale("log")
    ax2.set_xlabel("r")
    ax2.set_ylabel("G(r)")
    ax2.set_title(f"$G(r) \\sim e^{{-r/\\xi}}$ (R² = {r2:.4f})")
    ax2.legend()
    ax2.grid(True, which="both", linestyle="--", alpha=0.4)

    plt.tight_layout()

    if output_path is None:
        output_path = table_path.with_name(table_path.stem + "_analysis.png")
    else:
        output_path = Path(output_path)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"\nFigure saved to: {output_path}")

    if show_plot:
        plt.show()
    else:
        plt.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Estimate the correlation length from a Wolff correlation table."
    )
    parser.add_argument("file", help="Path to the G_<beta>.dat table")
    parser.add_argument(
        "--out",
        type=str,
        help="Output path for the analysis figure (default: <input>_analysis.png)",
    )
    parser.add_argument("--show", action="store_true", help="Display plot interactively")
    args = parser.parse_args()

    analyse_table(args.file, output_path=args.out, show_plot=args.show)


if __name__ == "__main__":
    main()
