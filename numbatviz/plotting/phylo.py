"""Phylogeny heatmap: single-cell tree next to per-cell CNV posteriors."""

from pathlib import Path
from typing import Mapping

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from Bio.Phylo.BaseTree import Tree
from matplotlib.axes import Axes
from matplotlib.collections import LineCollection
from matplotlib.colors import to_rgb
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from numbatviz.core.results import NumbatResults, sort_clone_labels
from numbatviz.plotting.genome import GenomeLayout
from numbatviz.plotting.style import (
    MISSING_COLOR,
    clone_palette,
    finalize_figure,
    state_color,
    state_legend_handles,
)
from numbatviz.util.logger import get_logger


logger = get_logger()


def tree_coordinates(tree: Tree) -> tuple[dict, list[str]]:
    """Rectangular layout of a phylogeny.

    Tips get consecutive y positions in traversal order; internal nodes sit at
    the mean y of their children. x is the distance from the root (branch
    lengths, or unit lengths when the tree carries none).

    Returns:
        (coords, tip_order) where coords maps each clade to (x, y)
    """
    depths = tree.depths()
    if not max(depths.values(), default=0):
        depths = tree.depths(unit_branch_lengths=True)

    tips = tree.get_terminals()
    coords = {tip: (depths[tip], float(i)) for i, tip in enumerate(tips)}
    for clade in tree.find_clades(order="postorder"):
        if clade.is_terminal():
            continue
        child_y = [coords[child][1] for child in clade.clades]
        coords[clade] = (depths[clade], float(np.mean(child_y)))
    return coords, [str(tip.name) for tip in tips]


def draw_tree(tree: Tree, ax: Axes, coords: dict | None = None, color: str = "#333333", linewidth: float = 0.6) -> None:
    """Draw a phylogeny with tips running top to bottom along the y axis."""
    if coords is None:
        coords, _ = tree_coordinates(tree)
    segments = []
    for clade in tree.find_clades():
        if clade.is_terminal():
            continue
        x, _ = coords[clade]
        child_ys = [coords[child][1] for child in clade.clades]
        segments.append([(x, min(child_ys)), (x, max(child_ys))])
        for child in clade.clades:
            cx, cy = coords[child]
            segments.append([(x, cy), (cx, cy)])
    ax.add_collection(LineCollection(segments, colors=color, linewidths=linewidth))
    xs = [xy[0] for xy in coords.values()]
    ax.set_xlim(0, max(xs) * 1.02 if max(xs) > 0 else 1)
    ax.axis("off")


def _order_cells_without_tree(results: NumbatResults) -> list[str]:
    clones = results.cell_clones()
    p_cnv = results.clone_post.set_index("cell")["p_cnv"]
    df = pd.DataFrame({"clone": clones, "p_cnv": p_cnv.reindex(clones.index)})
    df["clone_rank"] = df["clone"].map({c: i for i, c in enumerate(results.clones)}).fillna(len(results.clones))
    df = df.sort_values(["clone_rank", "p_cnv"], ascending=[True, False])
    return [str(c) for c in df.index]


def cnv_heatmap_image(
    joint_post: pd.DataFrame,
    cell_order: list[str],
    layout: GenomeLayout,
    p_min: float,
    genome_bins: int,
) -> np.ndarray:
    """RGB image (cells x genome bins) coloured by CNV state where p_cnv >= p_min."""
    image = np.ones((len(cell_order), genome_bins, 3))
    row_of = {cell: i for i, cell in enumerate(cell_order)}

    calls = joint_post[(joint_post["p_cnv"] >= p_min) & (joint_post["cnv_state"] != "neu")]
    calls = calls[calls["cell"].astype(str).isin(row_of)]
    if calls.empty:
        return image

    start_bins = layout.to_bins(layout.to_genome(calls["CHROM"], calls["seg_start"]), genome_bins)
    end_bins = layout.to_bins(layout.to_genome(calls["CHROM"], calls["seg_end"]), genome_bins)
    rows = calls["cell"].astype(str).map(row_of).to_numpy()
    colors = np.array([to_rgb(state_color(s)) for s in calls["cnv_state"]])

    for row, b0, b1, rgb in zip(rows, start_bins, end_bins, colors):
        image[row, b0 : b1 + 1] = rgb
    return image


def plot_phylo_heatmap(
    results: NumbatResults,
    p_min: float = 0.5,
    clone_bar: bool = True,
    pal_clone: Mapping | None = None,
    genome_bins: int = 500,
    tip_order: list[str] | None = None,
    plot_save_dir: Path | None = None,
    plot_name: str = "phylo_heatmap",
    show_plot: bool = False,
    dpi: int = 150,
    figsize: tuple[float, float] = (14, 8),
) -> Figure:
    """Plot the single-cell phylogeny next to each cell's CNV calls along the genome.

    Rows are cells in the tree's tip order (or grouped by clone when no tree is
    available). Each row shows the segments whose posterior CNV probability is at
    least p_min, coloured by CNV state.

    Args:
        results: Loaded results
        p_min: Minimum posterior probability for a call to be drawn
        clone_bar: Draw a column of clone colours between tree and heatmap
        pal_clone: Clone -> colour overrides
        genome_bins: Number of columns the genome is split into
        tip_order: Explicit cell order (overrides the tree order)
        plot_save_dir: Directory to save the plot. If None, the plot is not saved.
        plot_name: Filename for the saved plot (without extension)
        show_plot: Whether to display the plot interactively
        dpi: Resolution of the saved figure
        figsize: Figure size in inches

    Returns:
        The matplotlib Figure
    """
    if not 0.0 <= p_min <= 1.0:
        raise ValueError(f"p_min must be in [0, 1], got {p_min}")

    coords = None
    draw_phylogeny = results.gtree is not None and tip_order is None
    if tip_order is not None:
        cell_order = [str(c) for c in tip_order]
    elif results.gtree is not None:
        coords, cell_order = tree_coordinates(results.gtree)
    else:
        cell_order = _order_cells_without_tree(results)

    if not cell_order:
        raise ValueError("No cells to plot in the phylogeny heatmap")

    known_cells = set(results.joint_post["cell"].astype(str))
    n_missing = sum(c not in known_cells for c in cell_order)
    if n_missing:
        logger.warning(f"{n_missing} of {len(cell_order)} cells have no CNV posteriors and are drawn blank")

    layout = GenomeLayout.from_tables(results.joint_post, results.segs_consensus)
    image = cnv_heatmap_image(results.joint_post, cell_order, layout, p_min, genome_bins)

    width_ratios = ([1.5] if draw_phylogeny else []) + ([0.15] if clone_bar else []) + [6]
    fig, axes = plt.subplots(
        1, len(width_ratios), figsize=figsize, gridspec_kw={"width_ratios": width_ratios, "wspace": 0.02}
    )
    axes = list(np.atleast_1d(axes))

    if draw_phylogeny:
        tree_ax = axes.pop(0)
        draw_tree(results.gtree, tree_ax, coords=coords)
        tree_ax.set_ylim(len(cell_order) - 0.5, -0.5)

    if clone_bar:
        bar_ax = axes.pop(0)
        cell_clones = results.cell_clones()
        palette = clone_palette(sort_clone_labels(cell_clones.unique()), pal_clone)
        clone_of_row = cell_clones.reindex(cell_order)
        bar = np.array([[to_rgb(palette.get(str(c), MISSING_COLOR))] for c in clone_of_row.fillna("")])
        bar_ax.imshow(bar, aspect="auto", interpolation="nearest")
        bar_ax.set_xticks([])
        bar_ax.set_yticks([])
        bar_ax.set_xlabel("Clone", rotation=90)
        clone_handles = [Patch(facecolor=color, label=f"Clone {clone}") for clone, color in palette.items()]
    else:
        clone_handles = []

    heat_ax = axes.pop(0)
    heat_ax.imshow(
        image,
        aspect="auto",
        interpolation="nearest",
        extent=(float(layout.offsets.iloc[0]), layout.total_length, len(cell_order) - 0.5, -0.5),
    )
    layout.draw_boundaries(heat_ax)
    layout.set_chrom_ticks(heat_ax)
    heat_ax.set_yticks([])
    heat_ax.set_title(f"Single-cell CNV calls (p_cnv >= {p_min:g})")

    state_handles = state_legend_handles(
        results.joint_post.loc[results.joint_post["cnv_state"] != "neu", "cnv_state"].unique()
    )
    heat_ax.legend(
        handles=state_handles + clone_handles,
        loc="upper left",
        bbox_to_anchor=(1.01, 1.0),
        frameon=False,
    )

    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig
