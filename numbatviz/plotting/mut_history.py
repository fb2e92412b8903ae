"""Mutation history drawing: clones as nodes, CNV sites gained along the edges."""

from pathlib import Path
from typing import Mapping

import matplotlib.pyplot as plt
import networkx as nx

from matplotlib.figure import Figure

from numbatviz.core.results import sort_clone_labels
from numbatviz.plotting.style import clone_palette, finalize_figure
from numbatviz.util.logger import get_logger


logger = get_logger()


def layered_layout(graph: nx.DiGraph) -> dict[str, tuple[float, float]]:
    """Top-down positions: one row per topological generation, nodes centred within a row."""
    positions = {}
    for depth, generation in enumerate(nx.topological_generations(graph)):
        generation = sort_clone_labels(generation)
        width = len(generation)
        for i, node in enumerate(generation):
            positions[node] = (i - (width - 1) / 2, -float(depth))
    return positions


def _wrap_sites(label: str, per_line: int = 3) -> str:
    sites = [s for s in label.split(",") if s]
    return "\n".join(",".join(sites[i : i + per_line]) for i in range(0, len(sites), per_line))


def plot_mut_history(
    mut_graph: nx.DiGraph,
    pal_clone: Mapping | None = None,
    plot_save_dir: Path | None = None,
    plot_name: str = "mut_history",
    show_plot: bool = False,
    dpi: int = 150,
    node_size: int = 900,
) -> Figure:
    """Draw the mutation history as a top-down tree of clones.

    Nodes are clones (coloured with the clone palette and annotated with their
    cell count when known); edges are labelled with the CNV sites gained.

    Raises:
        ValueError: If the graph is empty or not a DAG
    """
    if mut_graph is None or mut_graph.number_of_nodes() == 0:
        raise ValueError("Mutation history is empty; nothing to plot")
    if not nx.is_directed_acyclic_graph(mut_graph):
        raise ValueError("Mutation history must be a directed acyclic graph")

    clones = sort_clone_labels(mut_graph.nodes)
    palette = clone_palette(clones, pal_clone)
    pos = layered_layout(mut_graph)
    n_levels = 1 + max(-y for _, y in pos.values())
    max_width = max(sum(1 for _, y in pos.values() if y == -level) for level in range(int(n_levels)))

    fig, ax = plt.subplots(figsize=(max(4.0, 2.2 * max_width), max(3.0, 1.8 * n_levels)))
    nx.draw_networkx_edges(mut_graph, pos, ax=ax, arrows=True, arrowstyle="-|>", arrowsize=12, node_size=node_size)
    nx.draw_networkx_nodes(
        mut_graph,
        pos,
        ax=ax,
        nodelist=clones,
        node_color=[palette[c] for c in clones],
        node_size=node_size,
        edgecolors="#333333",
    )
    nx.draw_networkx_labels(mut_graph, pos, ax=ax, labels={c: c for c in clones}, font_size=11)

    edge_labels = {
        (u, v): _wrap_sites(data.get("label", "")) for u, v, data in mut_graph.edges(data=True) if data.get("label")
    }
    if edge_labels:
        nx.draw_networkx_edge_labels(mut_graph, pos, ax=ax, edge_labels=edge_labels, font_size=8, rotate=False)

    for clone in clones:
        n_cells = mut_graph.nodes[clone].get("n_cells")
        if n_cells is not None:
            x, y = pos[clone]
            ax.text(x + 0.18, y, f"n={n_cells}", ha="left", va="center", fontsize=8, color="#555555")

    ax.set_title("Mutation history")
    ax.axis("off")
    ax.margins(0.2)

    finalize_figure(fig, plot_save_dir, plot_name, show_plot, dpi)
    return fig
