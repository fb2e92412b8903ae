from abc import ABC
from dataclasses import dataclass, field
from enum import Enum


class BaseParams(ABC):
    """Base class for all parameter dataclasses.

    Parameter classes are plain dataclasses so they can be loaded from JSON,
    overridden from the command line and saved next to the figures they produced.
    """


class CnvState(str, Enum):
    """Copy-number states reported by the CNV caller."""

    NEU = "neu"
    AMP = "amp"
    DEL = "del"
    LOH = "loh"
    BAMP = "bamp"
    BDEL = "bdel"


class EmbeddingColorKind(str, Enum):
    CONTINUOUS = "continuous"
    CATEGORICAL = "categorical"


def ensure_cnv_state(state: "CnvState | str") -> "CnvState":
    """Convert a raw state label to CnvState.

    Haplotype-specific labels such as "amp_1" or "del_up" collapse to their base state.
    """
    if isinstance(state, CnvState):
        return state
    base = str(state).split("_")[0].lower()
    try:
        return CnvState(base)
    except ValueError:
        valid_states = [s.value for s in CnvState]
        raise ValueError(f"CNV state '{state}' is not one of {valid_states}") from None


def ensure_color_kind(kind: "EmbeddingColorKind | str") -> "EmbeddingColorKind":
    if isinstance(kind, str):
        try:
            return EmbeddingColorKind(kind)
        except ValueError:
            valid_kinds = [k.value for k in EmbeddingColorKind]
            raise ValueError(f"kind must be one of {valid_kinds}") from None
    return kind


@dataclass
class TutorialParams(BaseParams):
    """Parameters of the results walkthrough.

    Attributes:
        dataset_name: Registered example dataset to download (alternative to results_dir/results_url)
        results_dir: Local directory holding the result tables
        results_url: URL of a zip/tar archive holding the result tables
        embedding_path: Local embedding file (.h5ad, .tsv, .csv)
        embedding_url: URL of an embedding file
        embedding_key: obsm key holding the coordinates when the embedding is an .h5ad
        iteration: Result iteration to load (None = latest available)
        cache_dir: Download cache directory (None = ./.numbatviz_cache)
        save_dir: Directory for figures (versioned if it already holds files)
        p_min: Minimum CNV posterior shown in the phylogeny heatmap
        min_LLR: Minimum segment LLR for a state to be shown in the bulk profiles
        use_pos: Plot bulk profiles against genomic position instead of SNP index
        n_cut: Number of tree cuts (0 = keep the stored clones)
        sc_cells: Cells shown in the single-cell posterior plot (empty = first n_sc_cells tumor cells)
        n_sc_cells: Number of cells picked automatically when sc_cells is empty
        pal_clone: Mapping from clone label to colour
        genome_bins: Horizontal resolution of the phylogeny heatmap
        dpi: Figure resolution when saving
        show_plots: Show figures interactively
    """

    dataset_name: str | None = None
    results_dir: str | None = None
    results_url: str | None = None
    embedding_path: str | None = None
    embedding_url: str | None = None
    embedding_key: str = "X_umap"
    iteration: int | None = None
    cache_dir: str | None = None
    save_dir: str = "results/numbat_figures"
    p_min: float = 0.9
    min_LLR: float = 10.0
    use_pos: bool = True
    n_cut: int = 0
    sc_cells: list[str] = field(default_factory=list)
    n_sc_cells: int = 4
    pal_clone: dict[str, str] = field(default_factory=dict)
    genome_bins: int = 500
    dpi: int = 150
    show_plots: bool = False

    def __post_init__(self):
        if not 0.0 <= self.p_min <= 1.0:
            raise ValueError(f"p_min must be in [0, 1], got {self.p_min}")
        if self.n_cut < 0:
            raise ValueError(f"n_cut must be non-negative, got {self.n_cut}")
        if self.genome_bins <= 0:
            raise ValueError(f"genome_bins must be positive, got {self.genome_bins}")
        # JSON configs and the CLI may hand over integer clone keys
        self.pal_clone = {str(k): v for k, v in self.pal_clone.items()}
