from pathlib import Path
from typing import Iterable, Mapping

import matplotlib
import matplotlib.pyplot as plt

from matplotlib.colors import to_hex
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from numbatviz.util.classes import CnvState, ensure_cnv_state
from numbatviz.util.logger import get_logger


logger = get_logger()
# Global plotting configuration
plt.rcParams.update(
    {
        "font.size": 12,
        "axes.labelsize": 12,
        "axes.titlesize": 14,
        "xtick.labelsize": 10,
        "ytick.labelsize": 10,
        "legend.fontsize": 10,
        "lines.linewidth": 1.5,
        "figure.titlesize": 16,
        "figure.figsize": (12, 6),
        "axes.spines.top": False,
        "axes.spines.right": False,
    }
)

CNV_STATE_COLORS: dict[CnvState, str] = {
    CnvState.NEU: "#d9d9d9",
    CnvState.AMP: "#e41a1c",
    CnvState.DEL: "#08306b",
    CnvState.LOH: "#34d834",
    CnvState.BAMP: "#f768a1",
    CnvState.BDEL: "#6baed6",
}

CNV_STATE_LABELS: dict[CnvState, str] = {
    CnvState.NEU: "Neutral",
    CnvState.AMP: "Amplification",
    CnvState.DEL: "Deletion",
    CnvState.LOH: "CN-LOH",
    CnvState.BAMP: "Balanced amp",
    CnvState.BDEL: "Balanced del",
}

MISSING_COLOR = "#eeeeee"
CLONE_BASE_CMAP = "tab10"


def state_color(state: CnvState | str) -> str:
    """Colour of a CNV state; haplotype-suffixed labels use their base state."""
    return CNV_STATE_COLORS[ensure_cnv_state(state)]


def state_legend_handles(states: Iterable[CnvState | str]) -> list[Patch]:
    """Legend patches for the given states, in canonical state order."""
    present = {ensure_cnv_state(s) for s in states}
    return [
        Patch(facecolor=CNV_STATE_COLORS[s], edgecolor="none", label=CNV_STATE_LABELS[s])
        for s in CnvState
        if s in present
    ]


def clone_palette(clones: Iterable, pal_clone: Mapping | None = None) -> dict[str, str]:
    """Resolve a colour for every clone.

    Explicit entries of pal_clone win; remaining clones take the next unused
    colours of the tab10 colormap (cycling when there are more than ten).
    """
    pal_clone = {str(k): v for k, v in (pal_clone or {}).items()}
    base = [to_hex(c) for c in matplotlib.colormaps[CLONE_BASE_CMAP].colors]
    used = set(pal_clone.values())
    available = [c for c in base if c not in used] or base

    palette = {}
    i = 0
    for clone in clones:
        clone = str(clone)
        if clone in pal_clone:
            palette[clone] = pal_clone[clone]
        else:
            palette[clone] = available[i % len(available)]
            i += 1
    return palette


def finalize_figure(
    fig: Figure,
    plot_save_dir: Path | str | None = None,
    plot_name: str = "figure",
    show_plot: bool = False,
    dpi: int = 150,
) -> Path | None:
    """Save the figure to plot_save_dir/plot_name.png and/or show it.

    Returns:
        The saved path, or None when plot_save_dir is None.
    """
    save_path = None
    if plot_save_dir:
        save_path = Path(plot_save_dir) / f"{plot_name}.png"
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=dpi, bbox_inches="tight")
        logger.info(f"Saved {plot_name} to {save_path}")
    if show_plot:
        plt.show()
    return save_path
