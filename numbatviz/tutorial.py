"""End-to-end results walkthrough.

Loads a result set (and optionally a cell embedding), then renders every
diagnostic figure in order:

1. phylogeny heatmap with clone bar
2. consensus segments
3. pseudobulk profiles per clone
4. single-cell CNV posteriors of a few tumor cells
5. tumor probability on the embedding
6. clone assignment map on the embedding
7. mutation history
8. (n_cut > 0) the same tree-based figures after cutting the phylogeny
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import matplotlib.pyplot as plt
import pandas as pd

from matplotlib.figure import Figure

from numbatviz.core.results import NumbatResults
from numbatviz.core.tree_cut import cutree
from numbatviz.data.loading import fetch_embedding, fetch_results
from numbatviz.plotting.embedding import plot_clone_map, plot_tumor_probability
from numbatviz.plotting.mut_history import plot_mut_history
from numbatviz.plotting.phylo import plot_phylo_heatmap
from numbatviz.plotting.tracks import plot_bulks, plot_consensus, plot_sc_posteriors
from numbatviz.util.classes import TutorialParams
from numbatviz.util.general_util import get_new_version_path, save_json_data, save_params, summary_to_table
from numbatviz.util.logger import get_logger
from numbatviz.util.result_constants import CLONE_ASSIGNMENT_FILE, FIGURES_MANIFEST_FILE


logger = get_logger()


@dataclass
class PlotContext:
    """Everything a plot step needs."""

    results: NumbatResults
    embedding: pd.DataFrame | None
    prm: TutorialParams
    save_dir: Path | None


def select_sc_cells(results: NumbatResults, n_cells: int, p_min: float) -> list[str]:
    """Pick the n_cells cells with the highest tumor probability that also carry CNV posteriors."""
    with_posteriors = set(results.joint_post.loc[results.joint_post["cnv_state"] != "neu", "cell"])
    ranked = results.clone_post.sort_values("p_cnv", ascending=False, kind="stable")
    ranked = ranked[ranked["cell"].isin(with_posteriors)]
    confident = ranked[ranked["p_cnv"] >= p_min]
    chosen = confident if len(confident) >= n_cells else ranked
    return chosen["cell"].head(n_cells).tolist()


def _phylo_heatmap(ctx: PlotContext, plot_name: str = "phylo_heatmap") -> Figure:
    return plot_phylo_heatmap(
        ctx.results,
        p_min=ctx.prm.p_min,
        clone_bar=True,
        pal_clone=ctx.prm.pal_clone,
        genome_bins=ctx.prm.genome_bins,
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


def _consensus(ctx: PlotContext, plot_name: str = "consensus_segments") -> Figure:
    return plot_consensus(
        ctx.results.segs_consensus,
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


def _bulks(ctx: PlotContext, plot_name: str = "bulk_clones") -> Figure:
    return plot_bulks(
        ctx.results.bulk_clones,
        min_LLR=ctx.prm.min_LLR,
        use_pos=ctx.prm.use_pos,
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


def _sc_posteriors(ctx: PlotContext, plot_name: str = "sc_posteriors") -> Figure:
    cells = ctx.prm.sc_cells or select_sc_cells(ctx.results, ctx.prm.n_sc_cells, ctx.prm.p_min)
    logger.info(f"Plotting single-cell posteriors for: {cells}")
    return plot_sc_posteriors(
        ctx.results.joint_post,
        cells,
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


def _require_embedding(ctx: PlotContext) -> pd.DataFrame:
    if ctx.embedding is None:
        raise ValueError("This plot needs a cell embedding (set embedding_path, embedding_url or dataset_name)")
    return ctx.embedding


def _tumor_probability(ctx: PlotContext, plot_name: str = "tumor_probability") -> Figure:
    return plot_tumor_probability(
        ctx.results,
        _require_embedding(ctx),
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


def _clone_map(ctx: PlotContext, plot_name: str = "clone_map") -> Figure:
    return plot_clone_map(
        ctx.results,
        _require_embedding(ctx),
        pal_clone=ctx.prm.pal_clone,
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


def _mut_history(ctx: PlotContext, plot_name: str = "mut_history") -> Figure:
    if ctx.results.mut_graph is None:
        raise ValueError("Results do not contain a mutation history")
    return plot_mut_history(
        ctx.results.mut_graph,
        pal_clone=ctx.prm.pal_clone,
        plot_save_dir=ctx.save_dir,
        plot_name=plot_name,
        show_plot=ctx.prm.show_plots,
        dpi=ctx.prm.dpi,
    )


# Registry of plot steps, in walkthrough order
PLOT_STEPS: dict[str, Callable[..., Figure]] = {
    "phylo_heatmap": _phylo_heatmap,
    "consensus_segments": _consensus,
    "bulk_clones": _bulks,
    "sc_posteriors": _sc_posteriors,
    "tumor_probability": _tumor_probability,
    "clone_map": _clone_map,
    "mut_history": _mut_history,
}

EMBEDDING_STEPS = {"tumor_probability", "clone_map"}

# Steps redrawn after cutting the tree
CUT_STEPS = ("phylo_heatmap", "clone_map", "mut_history")


def render_plot(ctx: PlotContext, step: str, plot_name: str | None = None) -> str | None:
    """Run one plot step, close its figure and return the saved file path (if saved)."""
    if step not in PLOT_STEPS:
        raise ValueError(f"Unknown plot '{step}'. Available plots: {list(PLOT_STEPS)}")
    plot_name = plot_name or step
    fig = PLOT_STEPS[step](ctx, plot_name=plot_name)
    plt.close(fig)
    if ctx.save_dir is None:
        return None
    return str(Path(ctx.save_dir) / f"{plot_name}.png")


def load_inputs(prm: TutorialParams) -> tuple[NumbatResults, pd.DataFrame | None]:
    """Fetch the results and (when configured) the embedding described by prm."""
    results_kwargs: dict[str, Any] = {"iteration": prm.iteration, "cache_dir": prm.cache_dir}
    if prm.results_dir is not None:
        results_kwargs["results_dir"] = prm.results_dir
    elif prm.results_url is not None:
        results_kwargs["results_url"] = prm.results_url
    else:
        results_kwargs["dataset_name"] = prm.dataset_name
    results = fetch_results(**results_kwargs)

    embedding = None
    if prm.embedding_path is not None or prm.embedding_url is not None:
        embedding = fetch_embedding(
            embedding_path=prm.embedding_path,
            embedding_url=prm.embedding_url,
            key=prm.embedding_key,
            cache_dir=prm.cache_dir,
        )
    elif prm.dataset_name is not None and prm.results_dir is None and prm.results_url is None:
        embedding = fetch_embedding(dataset_name=prm.dataset_name, key=prm.embedding_key, cache_dir=prm.cache_dir)
    else:
        logger.info("No embedding configured; embedding plots will be skipped")
    return results, embedding


def run_tutorial(prm: TutorialParams) -> dict[str, str]:
    """Load the inputs described by prm and render the full set of figures.

    Args:
        prm: Walkthrough parameters

    Returns:
        Manifest mapping plot name to saved file path (also written as figures_manifest.json)
    """
    results, embedding = load_inputs(prm)
    logger.info(summary_to_table(results.summary(), title="Loaded results"))

    save_dir = get_new_version_path(prm.save_dir)
    logger.info(f"Saving figures to {save_dir}")
    save_params(prm, save_dir)

    ctx = PlotContext(results=results, embedding=embedding, prm=prm, save_dir=save_dir)
    manifest: dict[str, str] = {}

    for step in PLOT_STEPS:
        if step in EMBEDDING_STEPS and embedding is None:
            logger.info(f"Skipping {step}: no embedding")
            continue
        if step == "mut_history" and results.mut_graph is None:
            logger.info("Skipping mut_history: results carry no mutation history")
            continue
        manifest[step] = render_plot(ctx, step)

    if prm.n_cut > 0:
        cut = cutree(results, prm.n_cut)
        manifest["tree_clones"] = str(cut.save(save_dir / CLONE_ASSIGNMENT_FILE))
        logger.info(summary_to_table({"clone_sizes": cut.clone_sizes().to_dict()}, title=f"Tree cut (n_cut={prm.n_cut})"))
        for step in CUT_STEPS:
            if step in EMBEDDING_STEPS and embedding is None:
                continue
            plot_name = f"{step}_cut{prm.n_cut}"
            manifest[plot_name] = render_plot(ctx, step, plot_name=plot_name)

    save_json_data(manifest, save_dir / FIGURES_MANIFEST_FILE)
    logger.info(f"Rendered {len(manifest)} outputs into {save_dir}")
    return manifest
