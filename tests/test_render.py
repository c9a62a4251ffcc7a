import io

from wolff_ising import render
from wolff_ising.lattice import GrowableLattice
from wolff_ising.wolff import ClusterSolver, SolverView


def test_render_generation_zero():
    picture = render.render_lattice(GrowableLattice(0).view())
    assert picture == render.SPIN_UP_CHAR


def test_render_diamond_shape():
    view = GrowableLattice(2).view()
    rows = render.render_lattice(view).split("\n")
    assert len(rows) == 5
    assert all(len(row) == 5 for row in rows)
    up, down, empty = render.SPIN_UP_CHAR, render.SPIN_DOWN_CHAR, render.EMPTY_CHAR
    assert rows[0] == empty * 2 + up + empty * 2
    assert rows[1] == empty + up + down + up + empty
    assert rows[2] == up + down + up + down + up


def test_render_highlights_cluster_in_color():
    lattice = GrowableLattice(1)
    top = lattice.index_of((0, 1))
    picture = render.render_lattice(lattice.view(), [0, top], color=True)
    assert picture.count(render.CLUSTER_CHAR) == 2
    # without color the cluster is ignored
    plain = render.render_lattice(lattice.view(), [0, top])
    assert render.CLUSTER_CHAR not in plain


def test_progress_reporter_prints_percentages():
    stream = io.StringIO()
    solver = ClusterSolver(GrowableLattice(), 0.3, seed=0)
    solver.on_update.append(render.ProgressReporter(stream=stream))
    solver.run(200)
    lines = stream.getvalue().split()
    assert lines[0] == "0%"
    assert lines[-1] == "99%"
    assert len(lines) == 100


def test_terminal_animator_redraws_in_place():
    stream = io.StringIO()
    animator = render.TerminalAnimator(color=False, sleep=0.0, stream=stream)
    lattice = GrowableLattice(1)
    state = SolverView(lattice.view(), 0.4, 2, 0)

    animator(state, (0,), 0)
    first = stream.getvalue()
    assert first.startswith("Infinite lattice of generation 1:")
    assert render.CURSOR_UP not in first

    animator(state, (0,), 1)
    second = stream.getvalue()[len(first):]
    assert second.startswith(render.CURSOR_UP * first.count("\n"))


def test_terminal_animator_skips_iterations():
    stream = io.StringIO()
    animator = render.TerminalAnimator(sleep=0.0, every=3, stream=stream)
    state = SolverView(GrowableLattice(0).view(), 0.4, 10, 1)
    animator(state, (0,), 1)
    assert stream.getvalue() == ""
    animator(state, (0,), 3)
    assert render.CLUSTER_CHAR in stream.getvalue()
