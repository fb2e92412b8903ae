"""Genome track plots: consensus segments, pseudobulk profiles and single-cell posteriors."""

from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from numbatviz.core.results import sort_clone_labels
from numbatviz.plotting.genome import GenomeLayout
from numbatviz.plotting.style import finalize_figure, state_color, state_legend_handles
from numbatviz.util.classes import CnvState, ensure_cnv_state
from numbatviz.util.logger import get_logger


logger = get_logger()

LOGFC_LIMIT = 2.0


def plot_consensus(
    segs_consensus: pd.DataFrame,
    plot_save_dir: Path | None = None,
    plot_name: str = "consensus_segments",
    show_plot: bool = False,
    dpi: int = 150,
    figsize: tuple[float, float] = (14, 1.8),
) -> Figure:
    """Draw the consensus CNV segments as one genome-wide track.

    Neutral segments are skipped; every other segment is a box coloured by its
    state and labelled with its segment name.

    Raises:
        ValueError: If no non-neutral segment is present
    """
    layout = GenomeLayout.from_tables(segs_consensus)
    segs = segs_consensus[segs_consensus["cnv_state"].map(ensure_cnv_state) != CnvState.NEU]
    if segs.empty:
        raise ValueError("No CNV segments in the consensus; nothing to plot")

    fig, ax = plt.subplots(figsize=figsize)
    x0 = layout.to_genome(segs["CHROM"], segs["seg_start"])
    x1 = layout.to_genome(segs["CHROM"], segs["seg_end"])
    for start, end, state, seg in zip(x0, x1, segs["cnv_state"], segs["seg"]):
        ax.add_patch(Rectangle((start, 0), end - start, 1, facecolor=state_color(state), edgecolor="none"))
        ax.text((start + end) / 2, 1.15, str(seg), ha="center", va="bottom", fontsize=8)

    layout.draw_boundaries(ax)
    layout.set_chrom_ticks(ax)
    ax.set_ylim(0, 1.6)
    ax.set_yticks([])
    ax.spines["left"].set_visible(False)
    ax.legend(
        handles=state_legend_handles(segs["cnv_state"].unique()),
        loc="upper left",
        bbox_to_anchor=(1.01, 1.0),
        frameon=False,
    )
    ax.set_title("Consensus CNV segments")

    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig


def bulk_display_states(bulk: pd.DataFrame, min_LLR: float) -> pd.Series:
    """Posterior states of pseudobulk rows, with weakly supported segments shown as neutral."""
    states = bulk["cnv_state_post"].fillna("neu").map(lambda s: ensure_cnv_state(s).value)
    if "LLR" in bulk.columns:
        weak = bulk["LLR"].isna() | (bulk["LLR"] < min_LLR)
        states = states.where(~weak, CnvState.NEU.value)
    return states


def plot_bulks(
    bulk_clones: pd.DataFrame,
    min_LLR: float = 5.0,
    use_pos: bool = True,
    samples: Sequence[str] | None = None,
    plot_save_dir: Path | None = None,
    plot_name: str = "bulk_clones",
    show_plot: bool = False,
    dpi: int = 150,
    point_size: float = 2.0,
    panel_height: float = 1.4,
) -> Figure:
    """Plot pseudobulk expression (logFC) and phased BAF profiles for each clone.

    Args:
        bulk_clones: Pseudobulk table (one row per sample and SNP/gene)
        min_LLR: Segments with a lower LLR are drawn as neutral
        use_pos: Use genomic positions (POS) on the x axis; SNP index otherwise
        samples: Subset and order of samples to plot (default: all, natural order)
        plot_save_dir: Directory to save the plot. If None, the plot is not saved.
        plot_name: Filename for the saved plot (without extension)
        show_plot: Whether to display the plot interactively
        dpi: Resolution of the saved figure
        point_size: Marker size
        panel_height: Height of each logFC/BAF panel in inches

    Returns:
        The matplotlib Figure
    """
    available = sort_clone_labels(bulk_clones["sample"].unique())
    if samples is None:
        samples = available
    else:
        samples = [str(s) for s in samples]
        missing = sorted(set(samples) - set(available))
        if missing:
            raise ValueError(f"Sample(s) {missing} not found in bulk profiles. Available: {available}")
    if not samples:
        raise ValueError("No pseudobulk samples to plot")

    if use_pos and "POS" not in bulk_clones.columns:
        logger.warning("bulk_clones has no POS column; plotting against SNP index")
        use_pos = False

    if use_pos:
        layout = GenomeLayout.from_tables(bulk_clones, end_columns=("POS",))
    else:
        layout = GenomeLayout.from_index(bulk_clones["CHROM"], bulk_clones["snp_index"])

    fig, axes = plt.subplots(
        2 * len(samples),
        1,
        figsize=(14, 2 * len(samples) * panel_height),
        sharex=True,
        squeeze=False,
    )
    axes = axes[:, 0]

    all_states = set()
    for i, sample in enumerate(samples):
        bulk = bulk_clones[bulk_clones["sample"] == sample]
        states = bulk_display_states(bulk, min_LLR)
        all_states.update(states.unique())
        colors = [state_color(s) for s in states]
        if use_pos:
            x = layout.to_genome(bulk["CHROM"], bulk["POS"])
        else:
            x = bulk["snp_index"].to_numpy(dtype=float)

        ax_fc, ax_baf = axes[2 * i], axes[2 * i + 1]

        logfc = bulk["logFC"].to_numpy(dtype=float)
        ax_fc.scatter(x, np.clip(logfc, -LOGFC_LIMIT, LOGFC_LIMIT), s=point_size, c=colors, linewidths=0, rasterized=True)
        ax_fc.axhline(0, color="#555555", linewidth=0.5, linestyle="--")
        ax_fc.set_ylim(-LOGFC_LIMIT, LOGFC_LIMIT)
        ax_fc.set_ylabel("logFC")
        ax_fc.set_title(f"Clone {sample}", loc="left", fontsize=11)

        pbaf = bulk["pBAF"].to_numpy(dtype=float)
        ax_baf.scatter(x, pbaf, s=point_size, c=colors, linewidths=0, rasterized=True)
        ax_baf.axhline(0.5, color="#555555", linewidth=0.5, linestyle="--")
        ax_baf.set_ylim(-0.05, 1.05)
        ax_baf.set_ylabel("pBAF")

        for ax in (ax_fc, ax_baf):
            layout.draw_boundaries(ax)

    layout.set_chrom_ticks(axes[-1])
    if not use_pos:
        axes[-1].set_xlabel("Chromosome (SNP index)")
    axes[0].legend(
        handles=state_legend_handles(all_states),
        loc="upper left",
        bbox_to_anchor=(1.01, 1.0),
        frameon=False,
    )
    fig.tight_layout()

    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig


def plot_sc_posteriors(
    joint_post: pd.DataFrame,
    cells: Sequence[str],
    include_neutral: bool = False,
    plot_save_dir: Path | None = None,
    plot_name: str = "sc_posteriors",
    show_plot: bool = False,
    dpi: int = 150,
    max_cols: int = 2,
) -> Figure:
    """Bar chart of each selected cell's CNV posterior (p_cnv) per segment.

    Args:
        joint_post: Per-cell, per-segment posteriors
        cells: Cells to plot, one panel each
        include_neutral: Also show segments whose state is neutral
        plot_save_dir: Directory to save the plot. If None, the plot is not saved.
        plot_name: Filename for the saved plot (without extension)
        show_plot: Whether to display the plot interactively
        dpi: Resolution of the saved figure
        max_cols: Maximum number of panels per row

    Raises:
        ValueError: If cells is empty, a cell is unknown, or nothing remains to plot
    """
    cells = [str(c) for c in cells]
    if not cells:
        raise ValueError("No cells given for the single-cell posterior plot")
    known = set(joint_post["cell"].astype(str))
    unknown = [c for c in cells if c not in known]
    if unknown:
        raise ValueError(f"Cell(s) not found in joint_post: {unknown}")

    posts = joint_post[joint_post["cell"].astype(str).isin(cells)]
    if not include_neutral:
        posts = posts[posts["cnv_state"].map(ensure_cnv_state) != CnvState.NEU]
    if posts.empty:
        raise ValueError("No CNV segments to plot for the selected cells")

    # one column per segment, in genome order, shared by all panels
    seg_order = (
        posts.drop_duplicates("seg").sort_values(["CHROM", "seg_start"])[["seg", "CHROM"]].reset_index(drop=True)
    )
    seg_pos = {seg: i for i, seg in enumerate(seg_order["seg"])}

    n_cols = min(max_cols, len(cells))
    n_rows = (len(cells) + n_cols - 1) // n_cols
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(6 * n_cols, 3 * n_rows), squeeze=False)
    axes = axes.flatten()

    for ax, cell in zip(axes, cells):
        cell_posts = posts[posts["cell"].astype(str) == cell]
        if cell_posts.empty:
            ax.text(0.5, 0.5, "No CNV segments", ha="center", va="center", transform=ax.transAxes)
        else:
            x = cell_posts["seg"].map(seg_pos).to_numpy()
            ax.bar(x, cell_posts["p_cnv"], color=[state_color(s) for s in cell_posts["cnv_state"]], width=0.8)
        ax.set_xticks(range(len(seg_order)))
        ax.set_xticklabels(
            [str(s) for s in seg_order["seg"]],
            rotation=90,
            fontsize=8,
        )
        ax.set_ylim(0, 1.05)
        ax.set_ylabel("P(CNV)")
        ax.set_title(cell, fontsize=10)

    for ax in axes[len(cells) :]:
        ax.set_visible(False)

    axes[0].legend(handles=state_legend_handles(posts["cnv_state"].unique()), loc="upper right", frameon=False)
    fig.tight_layout()

    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig
