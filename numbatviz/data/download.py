"""Download manager for example result sets using Pooch.

This module fetches result archives and embedding files with the Pooch
library, which provides caching, integrity checking and progress tracking.
Archives are extracted into the cache and the extracted directory is returned.
"""

from pathlib import Path

import pooch

from numbatviz.util.logger import get_logger
from numbatviz.util.result_constants import CLONE_POST_FILE, DEFAULT_CACHE_DIR_NAME

from .registry import get_dataset_info


logger = get_logger()

ARCHIVE_SUFFIXES_TAR = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")


def _resolve_cache_dir(cache_dir: Path | str | None) -> str:
    if cache_dir is not None:
        return str(cache_dir)
    cache_dir_path = Path.cwd() / DEFAULT_CACHE_DIR_NAME
    cache_dir_path.mkdir(exist_ok=True)
    logger.info(f"Using cache directory: {cache_dir_path}")
    return str(cache_dir_path)


def _pick_source(
    dataset_name: str | None,
    url: str | None,
    url_field: str,
) -> str:
    """Validate the name/url pair and return the URL to download."""
    if dataset_name is None and url is None:
        raise ValueError(f"Either dataset_name or {url_field} must be provided")

    if dataset_name is not None and url is not None:
        raise ValueError(f"Cannot specify both dataset_name and {url_field}. Use one or the other.")

    if dataset_name is None:
        return url

    info = get_dataset_info(dataset_name)
    registry_url = getattr(info, url_field)
    if not registry_url:
        raise ValueError(
            f"Download URL ({url_field}) not configured for dataset '{dataset_name}'. "
            "Register the dataset URLs with register_dataset or pass a URL directly."
        )
    return registry_url


def _url_file_name(url: str) -> str:
    """File name of a download URL without query string or fragment."""
    return url.split("?")[0].split("#")[0].rstrip("/").split("/")[-1]


def _find_results_root(extracted_dir: Path) -> Path:
    """Archives often wrap the output directory in a top-level folder; locate the folder holding the tables."""
    pattern = CLONE_POST_FILE.format(i="*")
    if any(extracted_dir.glob(pattern)):
        return extracted_dir
    matches = sorted(extracted_dir.rglob(pattern))
    if not matches:
        raise FileNotFoundError(f"No '{pattern}' file found in downloaded archive at {extracted_dir}")
    return matches[0].parent


def download_results(
    dataset_name: str | None = None,
    results_url: str | None = None,
    cache_dir: Path | str | None = None,
) -> Path:
    """Download a result archive and return the directory holding the extracted tables.

    Uses Pooch for caching and extraction: archives already present in the cache
    are not downloaded again. Zip and tar archives are supported.

    Args:
        dataset_name: Name of a registered example dataset (alternative to results_url)
        results_url: Direct URL to a .zip/.tar/.tar.gz archive (alternative to dataset_name)
        cache_dir: Custom cache directory (uses `.numbatviz_cache` in the current dir if None)

    Returns:
        Path to the directory containing the result tables

    Raises:
        ValueError: If neither or both of dataset_name and results_url are provided
        FileNotFoundError: If the download fails or the archive holds no result tables

    Examples:
        >>> results_dir = download_results(results_url="https://example.org/numbat_out.zip")
        >>> results = load_results(results_dir)
    """
    download_url = _pick_source(dataset_name, results_url, "results_url")
    cache_path = _resolve_cache_dir(cache_dir)
    logger.info(f"Downloading results from: {download_url}")

    is_tar = _url_file_name(download_url).lower().endswith(ARCHIVE_SUFFIXES_TAR)
    processor = pooch.Untar() if is_tar else pooch.Unzip()
    try:
        extracted = pooch.retrieve(
            url=download_url,
            known_hash=None,
            path=cache_path,
            progressbar=True,
            processor=processor,
        )
    except Exception as e:
        raise FileNotFoundError(f"Failed to download results from {download_url}: {e}") from e

    if isinstance(extracted, list):
        if not extracted:
            raise FileNotFoundError(f"Archive downloaded from {download_url} is empty")
        extracted_dir = Path(extracted[0]).parent
    else:
        extracted_dir = Path(extracted)
        if extracted_dir.is_file():
            extracted_dir = extracted_dir.parent

    # The first extracted file may sit in a nested folder; walk up to the cache entry
    cache_root = Path(cache_path)
    while extracted_dir.parent != cache_root and cache_root in extracted_dir.parents:
        extracted_dir = extracted_dir.parent

    results_dir = _find_results_root(extracted_dir)
    logger.info(f"Results available at: {results_dir}")
    return results_dir


def download_embedding(
    dataset_name: str | None = None,
    embedding_url: str | None = None,
    cache_dir: Path | str | None = None,
) -> Path:
    """Download a cell embedding file (no extraction) and return its local path.

    Args:
        dataset_name: Name of a registered example dataset (alternative to embedding_url)
        embedding_url: Direct URL to an .h5ad/.tsv/.csv embedding file
        cache_dir: Custom cache directory (uses `.numbatviz_cache` in the current dir if None)

    Raises:
        ValueError: If neither or both of dataset_name and embedding_url are provided
        FileNotFoundError: If the download fails
    """
    download_url = _pick_source(dataset_name, embedding_url, "embedding_url")
    cache_path = _resolve_cache_dir(cache_dir)
    logger.info(f"Downloading embedding from: {download_url}")

    # keep the original file name so the loader can dispatch on the extension
    fname = _url_file_name(download_url) or None
    try:
        embedding_path = pooch.retrieve(
            url=download_url,
            known_hash=None,
            path=cache_path,
            fname=fname,
            progressbar=True,
        )
    except Exception as e:
        raise FileNotFoundError(f"Failed to download embedding from {download_url}: {e}") from e

    logger.info(f"Embedding cached at: {embedding_path}")
    return Path(embedding_path)
