"""numbatviz: load and visualize single-cell CNV inference results.

Loads the per-cell and per-clone outputs of a haplotype-aware CNV caller
(phylogeny, CNV posteriors, clone assignments, pseudobulk profiles) and renders
the diagnostic figures used to interpret them.
"""

__version__ = "0.1.0"

from numbatviz.core.results import NumbatResults
from numbatviz.core.tree_cut import TreeCut, cutree
from numbatviz.data import (
    EXAMPLE_DATASETS,
    download_embedding,
    download_results,
    fetch_embedding,
    fetch_results,
    get_dataset_info,
    load_embedding,
    load_results,
)
from numbatviz.plotting import (
    plot_bulks,
    plot_clone_map,
    plot_consensus,
    plot_embedding,
    plot_mut_history,
    plot_phylo_heatmap,
    plot_sc_posteriors,
    plot_tumor_probability,
)
from numbatviz.tutorial import run_tutorial
from numbatviz.util.classes import CnvState, TutorialParams


__all__ = [
    "EXAMPLE_DATASETS",
    "CnvState",
    "NumbatResults",
    "TreeCut",
    "TutorialParams",
    "cutree",
    "download_embedding",
    "download_results",
    "fetch_embedding",
    "fetch_results",
    "get_dataset_info",
    "load_embedding",
    "load_results",
    "plot_bulks",
    "plot_clone_map",
    "plot_consensus",
    "plot_embedding",
    "plot_mut_history",
    "plot_phylo_heatmap",
    "plot_sc_posteriors",
    "plot_tumor_probability",
    "run_tutorial",
]
