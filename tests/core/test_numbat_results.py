"""Tests for the NumbatResults container."""

import numpy as np
import pandas as pd
import pytest

from numbatviz.core.results import NumbatResults, sort_clone_labels
from tests.test_utils import make_bulk_clones, make_clone_post, make_joint_post, make_segs_consensus


def build_results(**overrides) -> NumbatResults:
    tables = {
        "joint_post": make_joint_post(),
        "clone_post": make_clone_post(),
        "bulk_clones": make_bulk_clones(),
        "segs_consensus": make_segs_consensus(),
    }
    tables.update(overrides)
    return NumbatResults(**tables)


class TestValidation:
    """Tests for validation performed on construction."""

    def test_valid_tables_are_accepted(self):
        """Test that well-formed tables build a results object."""
        results = build_results()

        assert results.n_cells == 12
        assert not results.has_tree
        assert not results.has_mut_graph

    def test_missing_required_column_raises(self):
        """Test that a missing required column is reported by name."""
        clone_post = make_clone_post().drop(columns=["p_cnv"])

        with pytest.raises(ValueError, match=r"clone_post.*\['p_cnv'\]"):
            build_results(clone_post=clone_post)

    def test_empty_table_raises(self):
        """Test that empty tables are rejected."""
        with pytest.raises(ValueError, match="joint_post table cannot be empty"):
            build_results(joint_post=make_joint_post().iloc[0:0])

    def test_non_dataframe_raises(self):
        """Test that non-DataFrame inputs are rejected."""
        with pytest.raises(TypeError, match="bulk_clones must be a pandas DataFrame"):
            build_results(bulk_clones={"sample": ["1"]})

    def test_probability_out_of_range_raises(self):
        """Test that p_cnv outside [0, 1] is rejected."""
        joint_post = make_joint_post()
        joint_post.loc[0, "p_cnv"] = 1.5

        with pytest.raises(ValueError, match="probabilities in range"):
            build_results(joint_post=joint_post)

    def test_nan_probabilities_are_allowed(self):
        """Test that NaN posteriors (cells without evidence) pass validation."""
        clone_post = make_clone_post()
        clone_post.loc[0, "p_cnv"] = np.nan

        results = build_results(clone_post=clone_post)

        assert np.isnan(results.clone_post.loc[0, "p_cnv"])

    def test_clone_posterior_columns_validated(self):
        """Test that per-clone posterior columns are range checked."""
        clone_post = make_clone_post()
        clone_post.loc[3, "p_2"] = -0.1

        with pytest.raises(ValueError, match="'p_2'"):
            build_results(clone_post=clone_post)

    def test_inverted_segment_raises(self):
        """Test that seg_end < seg_start is rejected."""
        segs = make_segs_consensus()
        segs.loc[0, "seg_end"] = 10

        with pytest.raises(ValueError, match="seg_end < seg_start"):
            build_results(segs_consensus=segs)

    def test_duplicated_cells_in_clone_post_raise(self):
        """Test that clone_post must have one row per cell."""
        clone_post = pd.concat([make_clone_post(), make_clone_post().iloc[:1]])

        with pytest.raises(ValueError, match="one row per cell"):
            build_results(clone_post=clone_post)

    def test_chromosomes_normalized(self):
        """Test that 'chr3' and '1' labels become integers."""
        results = build_results()

        assert set(results.joint_post["CHROM"]) == {1, 2, 3}
        assert results.joint_post["CHROM"].dtype.kind == "i"

    def test_clone_labels_are_strings(self):
        """Test that integer clone labels are stored as strings."""
        results = build_results()

        assert results.clones == ["1", "2"]


class TestDerivedViews:
    """Tests for derived properties and summaries."""

    def test_clone_sizes(self):
        results = build_results()

        sizes = results.clone_sizes()

        assert sizes.to_dict() == {"1": 7, "2": 5}

    def test_tumor_cells(self):
        results = build_results()

        assert results.tumor_cells(p_min=0.9) == ["c3", "c4", "c5", "c6", "c7"]

    def test_clone_posterior_columns_sorted(self):
        results = build_results()

        assert results.clone_posterior_columns == ["p_1", "p_2"]

    def test_cell_segment_matrix(self):
        """Test the cells x segments pivot."""
        results = build_results()

        matrix = results.cell_segment_matrix()

        assert matrix.shape == (12, 3)
        assert matrix.loc["c3", "2a"] == pytest.approx(0.99)

    def test_cell_segment_matrix_unknown_column(self):
        results = build_results()

        with pytest.raises(ValueError, match="not found in joint_post"):
            results.cell_segment_matrix("p_unknown")

    def test_cell_clones_defaults_to_clone_post(self):
        results = build_results()

        clones = results.cell_clones()

        assert clones["c3"] == "2"
        assert clones["c0"] == "1"

    def test_summary(self):
        """Test the summary counts."""
        results = build_results()

        summary = results.summary()

        assert summary["n_cells"] == 12
        assert summary["n_clones"] == 2
        assert summary["n_segments"] == 3
        assert summary["n_cnv_segments"] == 2
        assert summary["n_bulk_samples"] == 2
        assert summary["clone_sizes"] == {"1": 7, "2": 5}
        assert summary["compartments"] == {"normal": 7, "tumor": 5}


class TestSortCloneLabels:
    def test_numeric_labels_sorted_numerically(self):
        assert sort_clone_labels(["10", "2", "1"]) == ["1", "2", "10"]

    def test_mixed_labels(self):
        assert sort_clone_labels(["b", 3, "a", 1]) == ["1", "3", "a", "b"]
