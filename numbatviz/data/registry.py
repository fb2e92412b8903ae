"""Registry of example result sets and their metadata.

This module defines the example datasets that can be fetched by name for the
results walkthrough. Each entry points at an archive of the CNV caller's output
directory and at a matching 2D cell embedding.
"""

from dataclasses import dataclass
from typing import Dict


@dataclass
class DatasetInfo:
    """Information about a downloadable example result set."""

    name: str
    results_url: str | None  # zip/tar archive of the caller's output directory
    embedding_url: str | None  # .h5ad or delimited table of cell coordinates
    iteration: int | None = None
    version: str = "1.0.0"
    description: str = ""


# Registry of available example datasets
# Key: dataset name (registry identifier)
# Entries without URLs must be configured with register_dataset before download.
EXAMPLE_DATASETS: Dict[str, DatasetInfo] = {
    "tnbc1": DatasetInfo(
        name="tnbc1",
        results_url=None,
        embedding_url=None,
        iteration=2,
        version="1.0.0",
        description="Triple-negative breast cancer scRNA-seq sample (TNBC1)",
    ),
}


def get_dataset_info(dataset_name: str) -> DatasetInfo:
    """Get information about an example dataset.

    Args:
        dataset_name: Name of the dataset

    Returns:
        DatasetInfo object containing dataset metadata

    Raises:
        ValueError: If dataset_name is not found in registry
    """
    if dataset_name not in EXAMPLE_DATASETS:
        available = ", ".join(EXAMPLE_DATASETS.keys())
        raise ValueError(f"Example dataset '{dataset_name}' not found. Available datasets: {available}")

    return EXAMPLE_DATASETS[dataset_name]


def register_dataset(info: DatasetInfo, overwrite: bool = False) -> None:
    """Add a dataset to the registry (or replace it when overwrite is True)."""
    if info.name in EXAMPLE_DATASETS and not overwrite:
        raise ValueError(f"Dataset '{info.name}' is already registered. Pass overwrite=True to replace it.")
    EXAMPLE_DATASETS[info.name] = info
