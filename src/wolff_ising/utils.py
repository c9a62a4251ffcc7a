# src/wolff_ising/utils.py
from __future__ import annotations

import json
import logging
import os
import time
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np


@dataclass
class CorrelationResult:
    """Common container for Wolff run outputs."""

    coords: Optional[np.ndarray] = None
    frequencies: Optional[np.ndarray] = None
    meta: Optional[Dict[str, Any]] = None

    def ensure_meta(self) -> Dict[str, Any]:
        if self.meta is None:
            self.meta = {}
        return self.meta


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach a basic stderr handler for command-line runs."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def default_table_name(beta: float) -> str:
    return f"G_{beta:.6f}.dat"


def save_correlation_table(
    path: str | os.PathLike[str], coords: np.ndarray, frequencies: np.ndarray
) -> None:
    """
    Write ``x<TAB>y<TAB>G`` rows, one per site, in linear-index order.
    """
    coords = np.asarray(coords, dtype=np.int64)
    frequencies = np.asarray(frequencies, dtype=np.float64)
    if coords.ndim != 2 or coords.shape[1] != 2:
        raise ValueError(f"Expected coords of shape (N, 2), got {coords.shape}")
    if coords.shape[0] != frequencies.shape[0]:
        raise ValueError(
            f"coords ({coords.shape[0]}) and frequencies ({frequencies.shape[0]}) "
            "must have the same length"
        )
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    table = np.column_stack((coords.astype(np.float64), frequencies))
    np.savetxt(path, table, fmt=("%d", "%d", "%.17g"), delimiter="\t")


def load_correlation_table(path: str | os.PathLike[str]) -> CorrelationResult:
    """Read a table written by :func:`save_correlation_table`."""
    data = np.loadtxt(path, delimiter="\t", ndmin=2)
    if data.shape[0] and data.shape[1] != 3:
        raise ValueError(f"{path}: expected 3 columns, got {data.shape[1]}")
    coords = data[:, :2].astype(np.int64) if data.size else np.empty((0, 2), np.int64)
    frequencies = data[:, 2] if data.size else np.empty(0)
    return CorrelationResult(coords=coords, frequencies=frequencies, meta={})


def save_result(
    path: str | os.PathLike[str], result: CorrelationResult, *, overwrite: bool = True
) -> None:
    """Serialize a CorrelationResult to a compressed .npz file."""
    out_dir = Path(path).parent
    out_dir.mkdir(parents=True, exist_ok=True)
    out: Dict[str, Any] = {}
    if result.coords is not None:
        out["coords"] = np.asarray(result.coords, dtype=np.int64)
    if result.frequencies is not None:
        out["frequencies"] = np.asarray(result.frequencies, dtype=np.float64)
    out["meta"] = result.meta or {}

    if not overwrite and Path(path).exists():
        raise FileExistsError(f"{path} already exists")
    np.savez_compressed(path, **out)


def load_result(path: str | os.PathLike[str]) -> CorrelationResult:
    data = np.load(path, allow_pickle=True)
    coords = data["coords"].astype(np.int64) if "coords" in data else None
    frequencies = data["frequencies"].astype(float) if "frequencies" in data else None
    meta: Dict[str, Any] = {}
    if "meta" in data:
        meta = data["meta"].item()
    return CorrelationResult(coords=coords, frequencies=frequencies, meta=meta)


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load run parameters from JSON or TOML.
    """
    path = str(path)
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
