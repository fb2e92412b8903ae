"""Result data structure for loaded CNV inference outputs.

This module defines the NumbatResults dataclass that holds the per-cell and
per-clone tables produced by the CNV caller, validates them on construction,
and provides the derived views used by the plotting functions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

import networkx as nx
import numpy as np
import pandas as pd

from Bio.Phylo.BaseTree import Tree

from numbatviz.util.io import check_required_columns, normalize_chrom_column
from numbatviz.util.logger import get_logger
from numbatviz.util.result_constants import (
    BULK_CLONES_COLUMNS,
    CLONE_POST_COLUMNS,
    JOINT_POST_COLUMNS,
    SEGS_CONSENSUS_COLUMNS,
    TREE_MUTATIONS_COLUMNS,
)


logger = get_logger()


@dataclass
class ResultsSource:
    """Where a result set came from.

    Attributes:
        path: Local directory the tables were read from
        iteration: Iteration number of the loaded tables
        dataset_name: Name of the registered example dataset (if any)
        url: Archive URL the results were downloaded from (if any)
    """

    path: str | None = None
    iteration: int | None = None
    dataset_name: str | None = None
    url: str | None = None


def _check_probability_column(df: pd.DataFrame, column: str, table_name: str) -> None:
    values = df[column].to_numpy(dtype=float)
    finite = values[~np.isnan(values)]
    if np.any((finite < 0) | (finite > 1)):
        raise ValueError(f"Column '{column}' of '{table_name}' must contain probabilities in range [0, 1]")


def _check_segment_bounds(df: pd.DataFrame, table_name: str) -> None:
    if (df["seg_end"] < df["seg_start"]).any():
        raise ValueError(f"Table '{table_name}' has segments with seg_end < seg_start")


@dataclass
class NumbatResults:
    """Loaded outputs of a single-cell CNV inference run.

    The tables are validated when the object is created: required columns must
    be present, probabilities must lie in [0, 1] and chromosome labels are
    normalized to integers.

    Attributes:
        joint_post: Per-cell, per-segment CNV posteriors
        clone_post: Per-cell clone assignment and tumor probability (p_cnv)
        bulk_clones: Per-clone pseudobulk logFC / BAF profiles
        segs_consensus: Consensus CNV segments across clones
        gtree: Single-cell phylogeny (tips named by cell barcode), if available
        tree_mutations: CNV sites mapped to phylogeny nodes with their LLR, if available
        mut_graph: Mutation history (clone parent -> clone child), if available
        source: Provenance of the loaded tables
        tree_clones: Cell -> clone labels from the last tree cut (None until a cut is applied)

    Examples:
        >>> results = load_results("numbat_out/")
        >>> results.clone_sizes()
        >>> fig = plot_phylo_heatmap(results, p_min=0.9)
    """

    joint_post: pd.DataFrame
    clone_post: pd.DataFrame
    bulk_clones: pd.DataFrame
    segs_consensus: pd.DataFrame
    gtree: Tree | None = None
    tree_mutations: pd.DataFrame | None = None
    mut_graph: nx.DiGraph | None = None
    source: ResultsSource = field(default_factory=ResultsSource)
    tree_clones: pd.Series | None = None

    def __post_init__(self):
        tables = {
            "joint_post": (self.joint_post, JOINT_POST_COLUMNS),
            "clone_post": (self.clone_post, CLONE_POST_COLUMNS),
            "bulk_clones": (self.bulk_clones, BULK_CLONES_COLUMNS),
            "segs_consensus": (self.segs_consensus, SEGS_CONSENSUS_COLUMNS),
        }
        for name, (df, columns) in tables.items():
            if not isinstance(df, pd.DataFrame):
                raise TypeError(f"{name} must be a pandas DataFrame")
            if df.empty:
                raise ValueError(f"{name} table cannot be empty")
            check_required_columns(df, columns, name)

        if self.tree_mutations is not None:
            check_required_columns(self.tree_mutations, TREE_MUTATIONS_COLUMNS, "tree_mutations")

        self.joint_post = normalize_chrom_column(self.joint_post)
        self.bulk_clones = normalize_chrom_column(self.bulk_clones)
        self.segs_consensus = normalize_chrom_column(self.segs_consensus)

        _check_probability_column(self.joint_post, "p_cnv", "joint_post")
        _check_probability_column(self.clone_post, "p_cnv", "clone_post")
        for col in self.clone_posterior_columns + (["p_opt"] if "p_opt" in self.clone_post.columns else []):
            _check_probability_column(self.clone_post, col, "clone_post")
        _check_segment_bounds(self.joint_post, "joint_post")
        _check_segment_bounds(self.segs_consensus, "segs_consensus")

        if self.clone_post["cell"].duplicated().any():
            raise ValueError("clone_post must contain one row per cell")

        # cell ids and clone labels are compared as strings throughout (tree tips, palettes, graph nodes)
        self.clone_post = self.clone_post.assign(
            cell=self.clone_post["cell"].astype(str),
            clone_opt=self.clone_post["clone_opt"].astype(str),
        )
        self.joint_post = self.joint_post.assign(cell=self.joint_post["cell"].astype(str))
        self.bulk_clones = self.bulk_clones.assign(sample=self.bulk_clones["sample"].astype(str))

    @property
    def n_cells(self) -> int:
        """Number of cells with a clone assignment."""
        return len(self.clone_post)

    @property
    def clones(self) -> list[str]:
        """Clone labels in natural order ("1", "2", ..., "10")."""
        return sort_clone_labels(self.clone_post["clone_opt"].unique())

    @property
    def clone_posterior_columns(self) -> list[str]:
        """Per-clone posterior columns (p_1, p_2, ...) present in clone_post."""
        cols = [c for c in self.clone_post.columns if c.startswith("p_") and c[2:].isdigit()]
        return sorted(cols, key=lambda c: int(c[2:]))

    @property
    def has_tree(self) -> bool:
        return self.gtree is not None

    @property
    def has_mut_graph(self) -> bool:
        return self.mut_graph is not None

    def clone_sizes(self) -> pd.Series:
        """Number of cells per clone, indexed by clone label."""
        return self.clone_post["clone_opt"].value_counts().reindex(self.clones)

    def tumor_cells(self, p_min: float = 0.5) -> list[str]:
        """Cells whose tumor probability (p_cnv) is at least p_min."""
        mask = self.clone_post["p_cnv"].fillna(0) >= p_min
        return self.clone_post.loc[mask, "cell"].tolist()

    def cell_segment_matrix(self, value: str = "p_cnv") -> pd.DataFrame:
        """Cells x segments pivot of a joint_post column."""
        if value not in self.joint_post.columns:
            raise ValueError(f"Column '{value}' not found in joint_post")
        return self.joint_post.pivot_table(index="cell", columns="seg", values=value, aggfunc="max")

    def cell_clones(self) -> pd.Series:
        """Cell -> clone labels, preferring the latest tree cut over the stored assignment."""
        if self.tree_clones is not None:
            return self.tree_clones
        return self.clone_post.set_index("cell")["clone_opt"]

    def apply_cut(self, cut) -> None:
        """Store a TreeCut: replaces mut_graph and records the per-cell tree clones."""
        self.tree_clones = cut.cell_clones
        self.mut_graph = cut.mut_graph
        logger.info(f"Applied tree cut with {cut.n_clones} clones")

    def summary(self) -> Dict[str, Any]:
        """Counts describing the loaded result set."""
        summary = {
            "n_cells": self.n_cells,
            "n_clones": len(self.clones),
            "n_segments": int(self.segs_consensus["seg"].nunique()),
            "n_cnv_segments": int((self.segs_consensus["cnv_state"] != "neu").sum()),
            "mean_p_cnv": float(self.clone_post["p_cnv"].mean()),
            "n_bulk_samples": int(self.bulk_clones["sample"].nunique()),
            "has_tree": self.has_tree,
            "has_mut_graph": self.has_mut_graph,
            "clone_sizes": {str(k): int(v) for k, v in self.clone_sizes().items()},
        }
        if "compartment_opt" in self.clone_post.columns:
            summary["compartments"] = {
                str(k): int(v) for k, v in self.clone_post["compartment_opt"].value_counts().items()
            }
        return summary


def sort_clone_labels(labels) -> list[str]:
    """Sort clone labels numerically when possible, otherwise lexically."""
    labels = [str(label) for label in labels]
    return sorted(labels, key=lambda s: (0, int(s), s) if s.isdigit() else (1, 0, s))
