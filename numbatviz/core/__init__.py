"""Core result structures and tree cutting."""

from .results import NumbatResults, ResultsSource, sort_clone_labels
from .tree_cut import TreeCut, cut_tree, cutree, score_tree_edges


__all__ = [
    "NumbatResults",
    "ResultsSource",
    "TreeCut",
    "cut_tree",
    "cutree",
    "score_tree_edges",
    "sort_clone_labels",
]
