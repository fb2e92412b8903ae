"""Tests for the CLI interface and main() function in main.py.

Commands are called directly; fire.Fire is mocked where main() is exercised.
"""

from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from numbatviz.main import cutree, fire, list_datasets, main, plot, summary, tutorial


class TestCLIUnit:
    """Fast unit tests with proper mocking - no subprocess calls."""

    def test_main_fire_integration(self):
        """Test that main() properly integrates with Fire framework."""
        with patch("numbatviz.main.fire.Fire") as mock_fire:
            result = main()

            assert result is None
            mock_fire.assert_called_once()

    def test_main_fire_command_mapping(self):
        """Test that Fire correctly maps CLI commands to functions."""
        with patch("numbatviz.main.fire.Fire") as mock_fire:
            main()

            call_args = mock_fire.call_args[0][0]

            assert set(call_args) == {"tutorial", "plot", "cutree", "summary", "list-datasets"}
            assert call_args["cutree"] is cutree
            assert all(callable(func) for func in call_args.values())

    def test_main_imports_fire_correctly(self):
        assert hasattr(fire, "Fire")
        assert callable(fire.Fire)


class TestCommands:
    """Commands called the way Fire calls them."""

    def test_cutree_saves_next_to_results(self, results_dir):
        sizes = cutree(n_cut=1, results_dir=str(results_dir))

        assert sizes == {"1": 7, "2": 5}
        saved = pd.read_csv(results_dir / "tree_clones.tsv", sep="\t", dtype=str)
        assert len(saved) == 12

    def test_cutree_custom_path(self, results_dir, tmp_path):
        cutree(n_cut=2, results_dir=str(results_dir), save_path=str(tmp_path / "cut.tsv"))

        assert (tmp_path / "cut.tsv").exists()

    def test_cutree_too_many_cuts(self, results_dir):
        with pytest.raises(ValueError, match="exceeds"):
            cutree(n_cut=9, results_dir=str(results_dir))

    def test_plot_single_figure(self, results_dir, tmp_path):
        path = plot("bulk_clones", results_dir=str(results_dir), save_dir=str(tmp_path / "figs"), dpi=50)

        assert Path(path) == tmp_path / "figs" / "bulk_clones.png"
        assert Path(path).exists()

    def test_plot_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown plot 'umap'"):
            plot("umap")

    def test_plot_invalid_field(self, results_dir):
        with pytest.raises(ValueError, match="Invalid parameter field"):
            plot("bulk_clones", results_dir=str(results_dir), min_llr=3)

    def test_tutorial(self, results_dir, tmp_path):
        manifest = tutorial(results_dir=str(results_dir), save_dir=str(tmp_path / "figs"), genome_bins=20, dpi=50)

        assert "phylo_heatmap" in manifest

    def test_tutorial_from_config(self, results_dir, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(f'{{"results_dir": "{results_dir}", "save_dir": "{tmp_path / "figs"}", "dpi": 50}}')

        manifest = tutorial(config_path=str(config), n_cut=1)

        assert "phylo_heatmap_cut1" in manifest

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            tutorial(log_level="LOUD")

    def test_summary(self, results_dir):
        assert summary(results_dir=str(results_dir)) is None

    def test_summary_requires_one_source(self):
        with pytest.raises(ValueError, match="Exactly one of"):
            summary()

    def test_list_datasets(self):
        assert list_datasets() is None
