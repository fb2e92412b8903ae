"""Genome-wide coordinate layout shared by the genome track plots.

Chromosomes are laid end to end in numeric order; each chromosome spans the
largest coordinate observed for it in the input tables.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from matplotlib.axes import Axes


CHROM_NAMES = {23: "X", 24: "Y"}


def chrom_label(chrom: int) -> str:
    return CHROM_NAMES.get(int(chrom), str(int(chrom)))


@dataclass
class GenomeLayout:
    """Offsets of each chromosome on a concatenated genome axis.

    Attributes:
        lengths: Chromosome -> span on the axis (Series indexed by integer chromosome)
        offsets: Chromosome -> start of the chromosome on the axis
    """

    lengths: pd.Series
    offsets: pd.Series

    @classmethod
    def from_tables(cls, *spans: pd.DataFrame, end_columns: tuple[str, ...] = ("seg_end", "POS")) -> "GenomeLayout":
        """Build a layout from tables with a CHROM column and at least one end coordinate column."""
        maxima = []
        for df in spans:
            end_col = next((c for c in end_columns if c in df.columns), None)
            if end_col is None or df.empty:
                continue
            maxima.append(df.groupby("CHROM")[end_col].max())
        if not maxima:
            raise ValueError("Cannot build a genome layout: no table with CHROM and end coordinates")
        lengths = pd.concat(maxima, axis=1).max(axis=1).sort_index().astype(float)
        offsets = lengths.cumsum() - lengths
        return cls(lengths=lengths, offsets=offsets)

    @classmethod
    def from_index(cls, chrom: pd.Series, index: pd.Series) -> "GenomeLayout":
        """Layout for data already on a global index (e.g. SNP index): spans are index ranges per chromosome."""
        grouped = pd.DataFrame({"CHROM": chrom.to_numpy(), "idx": index.to_numpy()}).groupby("CHROM")["idx"]
        starts = grouped.min().sort_index().astype(float)
        ends = grouped.max().sort_index().astype(float) + 1
        return cls(lengths=ends - starts, offsets=starts)

    @property
    def total_length(self) -> float:
        return float((self.offsets + self.lengths).max())

    @property
    def chromosomes(self) -> list[int]:
        return [int(c) for c in self.lengths.index]

    def to_genome(self, chrom, pos) -> np.ndarray:
        """Map (chromosome, position) pairs to the concatenated axis."""
        chrom = pd.Series(np.asarray(chrom)).astype(int)
        offsets = chrom.map(self.offsets)
        if offsets.isna().any():
            missing = sorted(set(chrom[offsets.isna()]))
            raise ValueError(f"Chromosome(s) {missing} not in genome layout")
        return offsets.to_numpy() + np.asarray(pos, dtype=float)

    def draw_boundaries(self, ax: Axes, color: str = "#888888", linewidth: float = 0.5) -> None:
        for start in self.offsets.to_numpy()[1:]:
            ax.axvline(start, color=color, linewidth=linewidth, zorder=0.5)

    def set_chrom_ticks(self, ax: Axes, fontsize: int = 8) -> None:
        centers = (self.offsets + self.lengths / 2).to_numpy()
        ax.set_xticks(centers)
        ax.set_xticklabels([chrom_label(c) for c in self.lengths.index], fontsize=fontsize)
        ax.set_xlim(float(self.offsets.iloc[0]), self.total_length)
        ax.set_xlabel("Chromosome")

    def to_bins(self, genome_pos: np.ndarray, n_bins: int) -> np.ndarray:
        """Bin index of genome positions for an axis split into n_bins columns."""
        start = float(self.offsets.iloc[0])
        scaled = (np.asarray(genome_pos, dtype=float) - start) / (self.total_length - start) * n_bins
        return np.clip(np.floor(scaled).astype(int), 0, n_bins - 1)
