"""File I/O helpers for numbatviz.

This module handles reading the tab-separated result tables and normalizing
the columns shared between them:
- Delimited table reading with required-column validation
- Chromosome label normalization

This module has no dependencies on plotting code.
"""

from pathlib import Path
from typing import Sequence

import pandas as pd

from numbatviz.util.logger import get_logger


logger = get_logger()

# Sex chromosomes are numbered after the autosomes
CHROM_ALIASES = {"X": 23, "Y": 24}


def infer_separator(path: Path) -> str:
    """Pick the column separator from a file name (".csv" -> comma, otherwise tab)."""
    suffixes = [s.lower() for s in path.suffixes if s.lower() not in (".gz", ".bz2", ".zip", ".xz")]
    if suffixes and suffixes[-1] == ".csv":
        return ","
    return "\t"


def check_required_columns(df: pd.DataFrame, required_columns: Sequence[str], table_name: str) -> None:
    """Raise ValueError listing the columns of required_columns missing from df."""
    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(
            f"Table '{table_name}' is missing required column(s) {missing}. Available columns: {list(df.columns)}"
        )


def read_table(
    path: str | Path,
    required_columns: Sequence[str] = (),
    table_name: str | None = None,
) -> pd.DataFrame:
    """Read a delimited (optionally compressed) table and validate its columns.

    Args:
        path: Table file (.tsv, .csv, .txt, optionally .gz)
        required_columns: Columns that must be present
        table_name: Name used in error messages (defaults to the file name)

    Returns:
        The loaded DataFrame

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If required columns are missing
    """
    path = Path(path)
    table_name = table_name or path.name
    if not path.exists():
        raise FileNotFoundError(f"Result table not found: {path}")

    df = pd.read_csv(path, sep=infer_separator(path))
    logger.debug(f"Read {table_name}: {df.shape[0]} rows x {df.shape[1]} columns")
    check_required_columns(df, required_columns, table_name)
    return df


def normalize_chrom(value) -> int:
    """Convert a chromosome label ("chr7", "7", 7, "X") to an integer."""
    label = str(value).strip()
    if label.lower().startswith("chr"):
        label = label[3:]
    if label.upper() in CHROM_ALIASES:
        return CHROM_ALIASES[label.upper()]
    try:
        return int(float(label))
    except ValueError:
        raise ValueError(f"Unrecognized chromosome label: {value!r}") from None


def normalize_chrom_column(df: pd.DataFrame, column: str = "CHROM") -> pd.DataFrame:
    """Return a copy of df with the chromosome column converted to integers."""
    if column not in df.columns:
        return df
    df = df.copy()
    df[column] = df[column].map(normalize_chrom).astype(int)
    return df
