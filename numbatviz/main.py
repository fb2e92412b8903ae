"""Single entry point for all numbatviz operations.

Example usage:
# Full walkthrough from a local output directory:
python -m numbatviz.main tutorial --results_dir numbat_out/ --embedding_path umap.tsv --p_min 0.9

# Walkthrough from downloaded archives, cutting the phylogeny into 4 clones:
python -m numbatviz.main tutorial --results_url https://host/numbat_out.zip --embedding_url https://host/umap.h5ad --n_cut 3

# A single figure:
python -m numbatviz.main plot bulk_clones --results_dir numbat_out/ --min_LLR 10

# Cut the phylogeny and save the cell -> clone table:
python -m numbatviz.main cutree --results_dir numbat_out/ --n_cut 2

# Inspect results and registered datasets:
python -m numbatviz.main summary --results_dir numbat_out/
python -m numbatviz.main list-datasets
"""

import fire
import matplotlib

from numbatviz.core.tree_cut import cutree as cut_results_tree
from numbatviz.data.loading import fetch_results
from numbatviz.data.registry import EXAMPLE_DATASETS
from numbatviz.tutorial import PLOT_STEPS, PlotContext, load_inputs, render_plot, run_tutorial
from numbatviz.util.classes import TutorialParams
from numbatviz.util.general_util import get_new_version_path, load_and_override_params, summary_to_table
from numbatviz.util.logger import configure_log_level, get_logger
from numbatviz.util.result_constants import CLONE_ASSIGNMENT_FILE


matplotlib.use("Agg")


logger = get_logger()


def tutorial(config_path: str | None = None, log_level: str = "INFO", **kwargs) -> dict[str, str]:
    """Render the full set of diagnostic figures.

    Args:
        config_path: Path to a JSON file with TutorialParams fields
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ...)
        **kwargs: TutorialParams fields overriding the config (e.g. --results_dir, --n_cut)

    Returns:
        Manifest mapping plot name to saved file
    """
    configure_log_level(log_level)
    prm = load_and_override_params(param_class=TutorialParams, config_path=config_path, logger=logger, **kwargs)
    return run_tutorial(prm)


def plot(name: str, config_path: str | None = None, log_level: str = "INFO", **kwargs) -> str | None:
    """Render a single figure by name.

    Args:
        name: One of the registered plots (phylo_heatmap, consensus_segments, bulk_clones,
              sc_posteriors, tumor_probability, clone_map, mut_history)
        config_path: Path to a JSON file with TutorialParams fields
        log_level: Logging verbosity
        **kwargs: TutorialParams fields overriding the config

    Returns:
        Path of the saved figure
    """
    configure_log_level(log_level)
    if name not in PLOT_STEPS:
        raise ValueError(f"Unknown plot '{name}'. Available plots: {list(PLOT_STEPS)}")
    prm = load_and_override_params(param_class=TutorialParams, config_path=config_path, logger=logger, **kwargs)
    results, embedding = load_inputs(prm)
    if prm.n_cut > 0:
        cut_results_tree(results, prm.n_cut)
    save_dir = get_new_version_path(prm.save_dir)
    ctx = PlotContext(results=results, embedding=embedding, prm=prm, save_dir=save_dir)
    return render_plot(ctx, name)


def cutree(
    n_cut: int,
    results_dir: str | None = None,
    results_url: str | None = None,
    dataset_name: str | None = None,
    iteration: int | None = None,
    save_path: str | None = None,
) -> dict[str, int]:
    """Cut the phylogeny at its n_cut best-supported edges and save the cell -> clone table.

    Args:
        n_cut: Number of edges to cut (yields n_cut + 1 clones)
        results_dir: Local results directory
        results_url: URL of a results archive
        dataset_name: Registered example dataset
        iteration: Result iteration to load (None = latest)
        save_path: Output TSV (default: <results_dir or cwd>/tree_clones.tsv)

    Returns:
        Clone sizes of the cut
    """
    results = fetch_results(
        dataset_name=dataset_name, results_dir=results_dir, results_url=results_url, iteration=iteration
    )
    cut = cut_results_tree(results, n_cut)
    cut.save(save_path or f"{results.source.path or '.'}/{CLONE_ASSIGNMENT_FILE}")
    sizes = {str(k): int(v) for k, v in cut.clone_sizes().items()}
    logger.info(summary_to_table({"clone_sizes": sizes}, title=f"Tree cut (n_cut={n_cut})"))
    return sizes


def summary(
    results_dir: str | None = None,
    results_url: str | None = None,
    dataset_name: str | None = None,
    iteration: int | None = None,
) -> None:
    """Log counts describing a result set (cells, clones, segments, compartments)."""
    results = fetch_results(
        dataset_name=dataset_name, results_dir=results_dir, results_url=results_url, iteration=iteration
    )
    logger.info(summary_to_table(results.summary(), title="Results summary"))


def list_datasets() -> None:
    """List all registered example datasets."""

    logger.info("Available example datasets:")
    logger.info("=" * 50)

    for name, info in EXAMPLE_DATASETS.items():
        logger.info(f"Name: {name}")
        logger.info(f"  Description: {info.description}")
        logger.info(f"  Version: {info.version}")
        logger.info(f"  Results URL configured: {'Yes' if info.results_url else 'No'}")
        logger.info(f"  Embedding URL configured: {'Yes' if info.embedding_url else 'No'}")
        logger.info("")


def main():
    """Main entry point for the numbatviz CLI."""
    fire.Fire(
        {
            "tutorial": tutorial,
            "plot": plot,
            "cutree": cutree,
            "summary": summary,
            "list-datasets": list_datasets,
        }
    )


if __name__ == "__main__":
    main()
