"""Coarsen the single-cell phylogeny into clones.

The CNV caller stores, for each phylogeny node, the CNV sites it placed on the
edge above that node together with their log-likelihood ratio (LLR). Cutting the
tree keeps the n_cut best-supported edges: every cell belongs to the clone of
its deepest kept ancestor edge, and cells below no kept edge form clone 1.
No likelihoods are recomputed here.
"""

from dataclasses import dataclass, field
from pathlib import Path

import networkx as nx
import pandas as pd

from Bio.Phylo.BaseTree import Clade, Tree

from numbatviz.core.results import NumbatResults
from numbatviz.util.logger import get_logger


logger = get_logger()

ROOT_CLONE = "1"


@dataclass
class TreeCut:
    """Clones obtained by cutting the phylogeny.

    Attributes:
        cell_clones: Clone label of every tip (index = cell barcode)
        clone_sites: CNV sites gained on the edge defining each clone (clone 1 has none)
        mut_graph: Mutation history, edges from parent clone to child clone
        cut_nodes: Phylogeny node names whose upper edge was cut, in clone order
    """

    cell_clones: pd.Series
    clone_sites: dict[str, list[str]]
    mut_graph: nx.DiGraph
    cut_nodes: list[str] = field(default_factory=list)

    @property
    def n_clones(self) -> int:
        return len(self.clone_sites)

    def clone_sizes(self) -> pd.Series:
        return self.cell_clones.value_counts().reindex(list(self.clone_sites), fill_value=0)

    def save(self, save_path: Path | str) -> Path:
        """Write the cell -> clone assignment as a two-column TSV."""
        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        self.cell_clones.rename("clone").rename_axis("cell").reset_index().to_csv(save_path, sep="\t", index=False)
        logger.info(f"Saved tree clones to {save_path}")
        return save_path


def score_tree_edges(gtree: Tree, tree_mutations: pd.DataFrame) -> pd.DataFrame:
    """Sum site LLRs per phylogeny node.

    Returns:
        DataFrame indexed by node name with columns `score` and `sites`,
        sorted by decreasing score (ties broken by node name).

    Raises:
        ValueError: If a node in tree_mutations does not exist in the tree
    """
    node_names = {clade.name for clade in gtree.find_clades() if clade.name}
    unknown = sorted(set(tree_mutations["node"].astype(str)) - node_names)
    if unknown:
        raise ValueError(f"tree_mutations references nodes missing from the phylogeny: {unknown[:5]}")

    grouped = tree_mutations.assign(node=tree_mutations["node"].astype(str)).groupby("node")
    scores = pd.DataFrame(
        {
            "score": grouped["LLR"].sum(),
            "sites": grouped["site"].agg(lambda s: sorted(set(map(str, s)))),
        }
    )
    scores = scores.rename_axis("node").reset_index()
    scores = scores.sort_values(["score", "node"], ascending=[False, True]).set_index("node")
    return scores


def cut_tree(gtree: Tree, tree_mutations: pd.DataFrame, n_cut: int) -> TreeCut:
    """Cut the phylogeny at its n_cut best-supported edges.

    Args:
        gtree: Phylogeny whose tips are cell barcodes and whose internal nodes are named
        tree_mutations: Table with columns node, site, LLR
        n_cut: Number of edges to cut; yields n_cut + 1 clones

    Returns:
        TreeCut with per-cell clone labels and the mutation history between clones

    Raises:
        ValueError: If n_cut is negative or exceeds the number of scored edges
    """
    if n_cut < 0:
        raise ValueError(f"n_cut must be non-negative, got {n_cut}")

    scores = score_tree_edges(gtree, tree_mutations)
    root_name = gtree.root.name
    if root_name in scores.index:
        logger.warning(f"Ignoring {len(scores.loc[root_name, 'sites'])} site(s) placed on the root node")
        scores = scores.drop(index=root_name)

    if n_cut > len(scores):
        raise ValueError(f"n_cut={n_cut} exceeds the number of phylogeny edges carrying mutations ({len(scores)})")

    selected = set(scores.index[:n_cut])

    cell_clones: dict[str, str] = {}
    clone_sites: dict[str, list[str]] = {ROOT_CLONE: []}
    cut_nodes: list[str] = []
    graph = nx.DiGraph()
    graph.add_node(ROOT_CLONE, sites=[], label="")

    # iterative pre-order walk carrying the clone of the nearest cut ancestor
    stack: list[tuple[Clade, str]] = [(gtree.root, ROOT_CLONE)]
    while stack:
        clade, parent_clone = stack.pop()
        clone = parent_clone
        if clade.name in selected:
            clone = str(len(clone_sites) + 1)
            sites = scores.loc[clade.name, "sites"]
            clone_sites[clone] = sites
            cut_nodes.append(clade.name)
            graph.add_node(clone, sites=sites, label=",".join(sites))
            graph.add_edge(parent_clone, clone, label=",".join(sites))
        if clade.is_terminal():
            cell_clones[clade.name] = clone
        else:
            # reversed so that the first child is visited first
            stack.extend((child, clone) for child in reversed(clade.clades))

    cell_series = pd.Series(cell_clones, name="clone")
    cell_series.index.name = "cell"
    for clone, n_cells in cell_series.value_counts().items():
        graph.nodes[clone]["n_cells"] = int(n_cells)
    for clone in graph.nodes:
        graph.nodes[clone].setdefault("n_cells", 0)

    logger.info(f"Cut phylogeny at {n_cut} edge(s) into {len(clone_sites)} clone(s)")
    return TreeCut(cell_clones=cell_series, clone_sites=clone_sites, mut_graph=graph, cut_nodes=cut_nodes)


def cutree(results: NumbatResults, n_cut: int, apply: bool = True) -> TreeCut:
    """Cut the phylogeny stored in results and optionally apply the cut to it.

    Raises:
        ValueError: If results carry no phylogeny or no tree mutation table
    """
    if results.gtree is None:
        raise ValueError("Results do not contain a phylogeny; cannot cut the tree")
    if results.tree_mutations is None:
        raise ValueError("Results do not contain tree mutations; cannot score phylogeny edges")

    cut = cut_tree(results.gtree, results.tree_mutations, n_cut)
    if apply:
        results.apply_cut(cut)
    return cut
