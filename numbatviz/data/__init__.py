"""Loading and downloading of CNV caller outputs.

This module provides functionality to fetch result archives and cell
embeddings (locally or by URL) and to load them into NumbatResults.
"""

from .download import download_embedding, download_results
from .loading import ResultsLoadingError, fetch_embedding, fetch_results, load_embedding, load_results
from .registry import EXAMPLE_DATASETS, DatasetInfo, get_dataset_info, register_dataset


__all__ = [
    "EXAMPLE_DATASETS",
    "DatasetInfo",
    "ResultsLoadingError",
    "download_embedding",
    "download_results",
    "fetch_embedding",
    "fetch_results",
    "get_dataset_info",
    "load_embedding",
    "load_results",
    "register_dataset",
]
