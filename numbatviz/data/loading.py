"""Load CNV caller outputs and cell embeddings from disk.

The caller writes one set of tables per refinement iteration
(`clone_post_1.tsv`, `clone_post_2.tsv`, ...). By default the latest
iteration present in the directory is loaded.
"""

import re

from pathlib import Path

import anndata as ad
import networkx as nx
import numpy as np
import pandas as pd

from Bio import Phylo
from Bio.Phylo.BaseTree import Tree
from Bio.Phylo.NewickIO import NewickError

from numbatviz.core.results import NumbatResults, ResultsSource
from numbatviz.util.io import read_table
from numbatviz.util.logger import get_logger
from numbatviz.util.result_constants import (
    BULK_CLONES_COLUMNS,
    BULK_CLONES_FILE,
    CLONE_POST_COLUMNS,
    CLONE_POST_FILE,
    EMBEDDING_COLUMNS,
    JOINT_POST_COLUMNS,
    JOINT_POST_FILE,
    MUT_GRAPH_COLUMNS,
    MUT_GRAPH_FILE,
    SEGS_CONSENSUS_COLUMNS,
    SEGS_CONSENSUS_FILE,
    TREE_FILE,
    TREE_MUTATIONS_COLUMNS,
    TREE_MUTATIONS_FILE,
)

from .download import download_embedding, download_results
from .registry import get_dataset_info


logger = get_logger()

TEXT_TABLE_SUFFIXES = (".tsv", ".csv", ".txt")


class ResultsLoadingError(Exception):
    """Raised when an optional result file exists but cannot be parsed."""


def find_latest_iteration(results_dir: Path) -> int:
    """Return the highest i for which clone_post_{i}.tsv exists in results_dir."""
    pattern = re.compile(r"^clone_post_(\d+)\.tsv$")
    iterations = [int(m.group(1)) for p in results_dir.iterdir() if (m := pattern.match(p.name))]
    if not iterations:
        raise FileNotFoundError(f"No clone_post_<i>.tsv files found in {results_dir}")
    return max(iterations)


def read_tree(tree_path: Path) -> Tree:
    """Read a Newick phylogeny whose tips are cell barcodes."""
    try:
        tree = Phylo.read(str(tree_path), "newick")
    except (NewickError, ValueError) as e:
        raise ResultsLoadingError(f"Could not parse phylogeny {tree_path}: {e}") from e
    n_tips = len(tree.get_terminals())
    logger.info(f"Loaded phylogeny with {n_tips} tips from {tree_path.name}")
    return tree


def mut_graph_from_table(edges: pd.DataFrame) -> nx.DiGraph:
    """Build the mutation history graph from an edge table.

    The table has one row per edge (`from`, `to`); an optional `label`/`sites`
    column holds the CNV sites gained on the edge and an optional `n_cells`
    column the size of the child clone.
    """
    graph = nx.DiGraph()
    label_col = next((c for c in ("label", "sites", "to_label") if c in edges.columns), None)
    for row in edges.to_dict("records"):
        parent, child = str(row["from"]), str(row["to"])
        label = "" if label_col is None or pd.isna(row[label_col]) else str(row[label_col])
        sites = [s for s in label.split(",") if s]
        graph.add_node(parent)
        graph.add_node(child, sites=sites, label=label)
        if "n_cells" in edges.columns and not pd.isna(row["n_cells"]):
            graph.nodes[child]["n_cells"] = int(row["n_cells"])
        graph.add_edge(parent, child, label=label)

    if not nx.is_directed_acyclic_graph(graph):
        raise ResultsLoadingError("Mutation history graph contains a cycle")
    for node in graph.nodes:
        graph.nodes[node].setdefault("sites", [])
        graph.nodes[node].setdefault("label", "")
    return graph


def read_mut_graph(graph_path: Path) -> nx.DiGraph:
    edges = read_table(graph_path, MUT_GRAPH_COLUMNS, "mut_graph")
    try:
        graph = mut_graph_from_table(edges.astype({"from": str, "to": str}))
    except (KeyError, ValueError) as e:
        raise ResultsLoadingError(f"Could not parse mutation graph {graph_path}: {e}") from e
    logger.info(f"Loaded mutation history with {graph.number_of_nodes()} clones from {graph_path.name}")
    return graph


def load_results(
    results_dir: str | Path,
    iteration: int | None = None,
    dataset_name: str | None = None,
    url: str | None = None,
) -> NumbatResults:
    """Load a CNV caller output directory into NumbatResults.

    Args:
        results_dir: Directory containing the caller's output tables
        iteration: Iteration of the tables to load (None = latest available)
        dataset_name: Registered dataset name, recorded as provenance
        url: Archive URL, recorded as provenance

    Returns:
        Validated NumbatResults

    Raises:
        FileNotFoundError: If the directory or a required table is missing
        ValueError: If a table lacks required columns or holds invalid values
        ResultsLoadingError: If an optional tree/graph file cannot be parsed
    """
    results_dir = Path(results_dir)
    if not results_dir.exists():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")
    if not results_dir.is_dir():
        raise ValueError(f"Results path is not a directory: {results_dir}")

    if iteration is None:
        iteration = find_latest_iteration(results_dir)
    logger.info(f"Loading results from {results_dir} (iteration {iteration})")

    joint_post = read_table(results_dir / JOINT_POST_FILE.format(i=iteration), JOINT_POST_COLUMNS, "joint_post")
    clone_post = read_table(results_dir / CLONE_POST_FILE.format(i=iteration), CLONE_POST_COLUMNS, "clone_post")
    segs_consensus = read_table(
        results_dir / SEGS_CONSENSUS_FILE.format(i=iteration), SEGS_CONSENSUS_COLUMNS, "segs_consensus"
    )
    bulk_clones = read_table(results_dir / BULK_CLONES_FILE, BULK_CLONES_COLUMNS, "bulk_clones")

    gtree = None
    tree_path = results_dir / TREE_FILE.format(i=iteration)
    if tree_path.exists():
        gtree = read_tree(tree_path)
    else:
        logger.info(f"No phylogeny found ({tree_path.name}); tree plots will group cells by clone")

    tree_mutations = None
    mutations_path = results_dir / TREE_MUTATIONS_FILE.format(i=iteration)
    if mutations_path.exists():
        tree_mutations = read_table(mutations_path, TREE_MUTATIONS_COLUMNS, "tree_mutations")
    else:
        logger.info(f"No tree mutation table found ({mutations_path.name}); tree cutting disabled")

    mut_graph = None
    graph_path = results_dir / MUT_GRAPH_FILE.format(i=iteration)
    if graph_path.exists():
        mut_graph = read_mut_graph(graph_path)
    else:
        logger.info(f"No mutation history found ({graph_path.name})")

    results = NumbatResults(
        joint_post=joint_post,
        clone_post=clone_post,
        bulk_clones=bulk_clones,
        segs_consensus=segs_consensus,
        gtree=gtree,
        tree_mutations=tree_mutations,
        mut_graph=mut_graph,
        source=ResultsSource(path=str(results_dir), iteration=iteration, dataset_name=dataset_name, url=url),
    )
    logger.info(f"Loaded {results.n_cells} cells in {len(results.clones)} clones")
    return results


def _embedding_from_adata(adata: ad.AnnData, key: str) -> pd.DataFrame:
    if key not in adata.obsm:
        raise ValueError(f"Embedding key '{key}' not found in obsm. Available keys: {list(adata.obsm.keys())}")
    coords = np.asarray(adata.obsm[key])
    if coords.ndim != 2 or coords.shape[1] < 2:
        raise ValueError(f"obsm['{key}'] must have at least two columns, got shape {coords.shape}")
    return pd.DataFrame(coords[:, :2], index=pd.Index(adata.obs_names.astype(str), name="cell"), columns=EMBEDDING_COLUMNS)


def _embedding_from_table(path: Path) -> pd.DataFrame:
    df = read_table(path, table_name="embedding")
    if "cell" in df.columns:
        df = df.set_index("cell")
    else:
        df = df.set_index(df.columns[0])
    numeric = df.select_dtypes(include="number")
    if numeric.shape[1] < 2:
        raise ValueError(f"Embedding table {path.name} needs two numeric coordinate columns")
    embedding = numeric.iloc[:, :2].copy()
    embedding.columns = EMBEDDING_COLUMNS
    embedding.index = embedding.index.astype(str)
    embedding.index.name = "cell"
    return embedding


def load_embedding(path: str | Path, key: str = "X_umap") -> pd.DataFrame:
    """Load 2D cell coordinates.

    Args:
        path: `.h5ad` file (coordinates in obsm[key]) or a delimited table with a cell
              column (or cell ids in the first column) and two coordinate columns
        key: obsm key used for `.h5ad` files

    Returns:
        DataFrame indexed by cell with columns UMAP_1, UMAP_2

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the format is unsupported or coordinates are missing
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Embedding file not found: {path}")

    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] == ".h5ad":
        embedding = _embedding_from_adata(ad.read_h5ad(path), key)
    elif any(s in TEXT_TABLE_SUFFIXES for s in suffixes):
        embedding = _embedding_from_table(path)
    else:
        raise ValueError(f"Unsupported embedding format: {path.name} (expected .h5ad, .tsv, .csv or .txt)")

    if embedding.index.duplicated().any():
        raise ValueError("Embedding contains duplicated cell ids")
    logger.info(f"Loaded embedding for {len(embedding)} cells from {path.name}")
    return embedding


def fetch_results(
    dataset_name: str | None = None,
    results_dir: str | Path | None = None,
    results_url: str | None = None,
    iteration: int | None = None,
    cache_dir: str | Path | None = None,
) -> NumbatResults:
    """Load results from a local directory, a URL or a registered dataset name.

    Exactly one of results_dir, results_url and dataset_name must be given.
    """
    n_sources = sum(x is not None for x in (dataset_name, results_dir, results_url))
    if n_sources != 1:
        raise ValueError("Exactly one of dataset_name, results_dir or results_url must be provided")

    if results_dir is not None:
        return load_results(results_dir, iteration=iteration)

    if dataset_name is not None and iteration is None:
        iteration = get_dataset_info(dataset_name).iteration

    local_dir = download_results(dataset_name=dataset_name, results_url=results_url, cache_dir=cache_dir)
    return load_results(local_dir, iteration=iteration, dataset_name=dataset_name, url=results_url)


def fetch_embedding(
    dataset_name: str | None = None,
    embedding_path: str | Path | None = None,
    embedding_url: str | None = None,
    key: str = "X_umap",
    cache_dir: str | Path | None = None,
) -> pd.DataFrame:
    """Load an embedding from a local file, a URL or a registered dataset name."""
    if embedding_path is not None:
        return load_embedding(embedding_path, key=key)
    local_path = download_embedding(dataset_name=dataset_name, embedding_url=embedding_url, cache_dir=cache_dir)
    return load_embedding(local_path, key=key)
