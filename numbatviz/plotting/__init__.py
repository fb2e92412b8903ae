"""Diagnostic plots for loaded CNV results."""

from .embedding import plot_clone_map, plot_embedding, plot_tumor_probability
from .mut_history import plot_mut_history
from .phylo import plot_phylo_heatmap
from .style import CNV_STATE_COLORS, clone_palette, state_color
from .tracks import plot_bulks, plot_consensus, plot_sc_posteriors


__all__ = [
    "CNV_STATE_COLORS",
    "clone_palette",
    "plot_bulks",
    "plot_clone_map",
    "plot_consensus",
    "plot_embedding",
    "plot_mut_history",
    "plot_phylo_heatmap",
    "plot_sc_posteriors",
    "plot_tumor_probability",
    "state_color",
]
