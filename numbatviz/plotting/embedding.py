"""Cell embedding plots coloured by tumor probability, clone or clone posterior."""

from pathlib import Path
from typing import Mapping

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.lines import Line2D

from numbatviz.core.results import NumbatResults, sort_clone_labels
from numbatviz.plotting.style import MISSING_COLOR, clone_palette, finalize_figure
from numbatviz.util.classes import EmbeddingColorKind, ensure_color_kind
from numbatviz.util.logger import get_logger
from numbatviz.util.result_constants import EMBEDDING_COLUMNS


logger = get_logger()


def plot_embedding(
    embedding: pd.DataFrame,
    values: pd.Series,
    kind: EmbeddingColorKind | str = EmbeddingColorKind.CONTINUOUS,
    palette: Mapping | None = None,
    ax: Axes | None = None,
    title: str | None = None,
    cmap: str = "viridis",
    vmin: float | None = None,
    vmax: float | None = None,
    point_size: float = 4.0,
    legend: bool = True,
) -> Figure:
    """Scatter the embedding, coloured by per-cell values.

    Cells of the embedding without a value are drawn grey underneath the
    coloured cells.

    Args:
        embedding: DataFrame indexed by cell with UMAP_1, UMAP_2 columns
        values: Per-cell values (index = cell)
        kind: "continuous" (colormap + colorbar) or "categorical" (palette + legend)
        palette: Category -> colour overrides (categorical only)
        ax: Axes to draw on; a new figure is created when None
        title: Panel title
        cmap: Colormap for continuous values
        vmin: Lower colour limit for continuous values
        vmax: Upper colour limit for continuous values
        point_size: Marker size
        legend: Draw the colorbar / category legend

    Returns:
        The Figure holding the axes

    Raises:
        ValueError: If no embedded cell has a value
    """
    kind = ensure_color_kind(kind)
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 5.5))
    else:
        fig = ax.figure

    values = values.copy()
    values.index = values.index.astype(str)
    values = values[~values.index.duplicated(keep="first")].dropna()
    shared = embedding.index.intersection(values.index)
    if len(shared) == 0:
        raise ValueError("None of the embedded cells have a value to plot")

    background = embedding.loc[embedding.index.difference(shared)]
    if len(background):
        ax.scatter(
            background[EMBEDDING_COLUMNS[0]],
            background[EMBEDDING_COLUMNS[1]],
            s=point_size,
            c=MISSING_COLOR,
            linewidths=0,
            rasterized=True,
        )

    coords = embedding.loc[shared]
    cell_values = values.loc[shared]

    if kind == EmbeddingColorKind.CONTINUOUS:
        # draw high values last so they stay visible
        order = np.argsort(cell_values.to_numpy(dtype=float))
        points = ax.scatter(
            coords[EMBEDDING_COLUMNS[0]].to_numpy()[order],
            coords[EMBEDDING_COLUMNS[1]].to_numpy()[order],
            s=point_size,
            c=cell_values.to_numpy(dtype=float)[order],
            cmap=cmap,
            vmin=vmin,
            vmax=vmax,
            linewidths=0,
            rasterized=True,
        )
        if legend:
            fig.colorbar(points, ax=ax, fraction=0.046, pad=0.02)
    else:
        categories = sort_clone_labels(cell_values.astype(str).unique())
        colors = clone_palette(categories, palette)
        labels = cell_values.astype(str)
        ax.scatter(
            coords[EMBEDDING_COLUMNS[0]],
            coords[EMBEDDING_COLUMNS[1]],
            s=point_size,
            c=[colors[v] for v in labels],
            linewidths=0,
            rasterized=True,
        )
        if legend:
            handles = [
                Line2D([], [], marker="o", linestyle="", markerfacecolor=colors[c], markeredgecolor="none", label=c)
                for c in categories
            ]
            ax.legend(handles=handles, loc="upper left", bbox_to_anchor=(1.01, 1.0), frameon=False, markerscale=1.5)

    ax.set_xlabel(EMBEDDING_COLUMNS[0])
    ax.set_ylabel(EMBEDDING_COLUMNS[1])
    ax.set_xticks([])
    ax.set_yticks([])
    if title:
        ax.set_title(title)

    n_missing = len(values) - len(shared)
    if n_missing:
        logger.debug(f"{n_missing} cells with values are not in the embedding")
    return fig


def plot_tumor_probability(
    results: NumbatResults,
    embedding: pd.DataFrame,
    plot_save_dir: Path | None = None,
    plot_name: str = "tumor_probability",
    show_plot: bool = False,
    dpi: int = 150,
) -> Figure:
    """Embedding coloured by each cell's posterior probability of carrying CNVs (p_cnv)."""
    p_cnv = results.clone_post.set_index("cell")["p_cnv"]
    fig = plot_embedding(
        embedding,
        p_cnv,
        kind=EmbeddingColorKind.CONTINUOUS,
        cmap="coolwarm",
        vmin=0.0,
        vmax=1.0,
        title="Tumor versus normal probability",
    )
    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig


def plot_clone_map(
    results: NumbatResults,
    embedding: pd.DataFrame,
    pal_clone: Mapping | None = None,
    posteriors: bool = True,
    plot_save_dir: Path | None = None,
    plot_name: str = "clone_map",
    show_plot: bool = False,
    dpi: int = 150,
    max_cols: int = 3,
) -> Figure:
    """Embedding coloured by clone assignment, plus one panel per clone posterior column.

    Clone labels come from the latest tree cut when one was applied, otherwise from
    clone_post. The posterior panels show the p_1 ... p_k columns of clone_post.
    """
    posterior_cols = results.clone_posterior_columns if posteriors else []
    n_panels = 1 + len(posterior_cols)
    n_cols = min(max_cols, n_panels)
    n_rows = (n_panels + n_cols - 1) // n_cols
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(6 * n_cols, 5 * n_rows), squeeze=False)
    axes = axes.flatten()

    plot_embedding(
        embedding,
        results.cell_clones(),
        kind=EmbeddingColorKind.CATEGORICAL,
        palette=pal_clone,
        ax=axes[0],
        title="Clone assignment",
    )

    by_cell = results.clone_post.set_index("cell")
    for ax, col in zip(axes[1:], posterior_cols):
        plot_embedding(
            embedding,
            by_cell[col],
            kind=EmbeddingColorKind.CONTINUOUS,
            ax=ax,
            cmap="Reds",
            vmin=0.0,
            vmax=1.0,
            title=f"Posterior of clone {col[2:]}",
        )

    for ax in axes[n_panels:]:
        ax.set_visible(False)
    fig.tight_layout()

    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig
