"""
Terminal observers for Wolff runs.

These callables are meant to be appended to ``ClusterSolver.on_update``. They
only read from the :class:`~wolff_ising.wolff.SolverView` they receive.
"""

from __future__ import annotations

import sys
import time
from typing import Iterable, TextIO

from .lattice import LatticeView

SPIN_UP_CHAR = "▓"
SPIN_DOWN_CHAR = "░"
CLUSTER_CHAR = "\033[31m▒\033[0m"  # red ▒
EMPTY_CHAR = " "
CURSOR_UP = "\r\033[A"


def render_lattice(
    view: LatticeView, cluster: Iterable[int] = (), *, color: bool = False
) -> str:
    """
    Draw the materialized diamond, row ``y = +gen`` on top.

    With ``color=True`` the sites in ``cluster`` are highlighted.
    """
    gen = view.generation()
    members = set(cluster) if color else set()
    rows = []
    for y in range(gen, -gen - 1, -1):
        row = []
        for x in range(-gen, gen + 1):
            if abs(x) + abs(y) > gen:
                row.append(EMPTY_CHAR)
                continue
            site = view.index_of((x, y))
            if site in members:
                row.append(CLUSTER_CHAR)
            elif view.spin(site):
                row.append(SPIN_UP_CHAR)
            else:
                row.append(SPIN_DOWN_CHAR)
        rows.append("".join(row))
    return "\n".join(rows)


class TerminalAnimator:
    """
    Redraw the lattice in place after every ``every``-th iteration.

    The plain mode prints a header and the spins; the color mode highlights
    the cluster that was just flipped and pauses ``sleep`` seconds per frame.
    """

    def __init__(
        self,
        *,
        color: bool = True,
        sleep: float = 0.05,
        every: int = 1,
        stream: TextIO | None = None,
    ) -> None:
        if every < 1:
            raise ValueError(f"every must be >= 1, got {every}")
        self.color = color
        self.sleep = sleep
        self.every = every
        self.stream = stream if stream is not None else sys.stdout
        self._height = 0

    def __call__(self, state, cluster, iteration: int) -> None:
        if iteration % self.every:
            return
        picture = render_lattice(state.lattice, cluster, color=self.color)
        if not self.color:
            header = f"Infinite lattice of generation {state.lattice.generation()}:"
            picture = f"{header}\n\n{picture}"
        frame = picture + "\n"

        self.stream.write(CURSOR_UP * self._height)
        self.stream.write(frame)
        self.stream.flush()
        self._height = frame.count("\n")

        if self.sleep > 0:
            time.sleep(self.sleep)


class ProgressReporter:
    """Print the completed percentage once per percent of the run."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def __call__(self, state, cluster, iteration: int) -> None:
        total = state.n_iterations
        step = max(1, total // 100)
        if iteration % step == 0:
            print(f"{iteration * 100 // total}%", file=self.stream, flush=True)


__all__ = [
    "SPIN_UP_CHAR",
    "SPIN_DOWN_CHAR",
    "CLUSTER_CHAR",
    "EMPTY_CHAR",
    "render_lattice",
    "TerminalAnimator",
    "ProgressReporter",
]
