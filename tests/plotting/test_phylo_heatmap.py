"""Tests for the phylogeny heatmap."""

import numpy as np
import pytest

from matplotlib.colors import to_rgb

from numbatviz.core.tree_cut import cutree
from numbatviz.plotting.genome import GenomeLayout
from numbatviz.plotting.phylo import cnv_heatmap_image, plot_phylo_heatmap, tree_coordinates
from numbatviz.plotting.style import state_color
from tests.test_utils import CELLS, make_joint_post, make_segs_consensus


class TestTreeCoordinates:
    def test_tip_order_follows_tree(self, gtree):
        coords, tip_order = tree_coordinates(gtree)

        assert tip_order == CELLS
        assert coords[gtree.root][0] == 0

    def test_internal_nodes_centred(self, gtree):
        coords, _ = tree_coordinates(gtree)
        n5 = next(gtree.find_clades(name="n5"))

        # tips c3 and c4 sit at rows 3 and 4
        assert coords[n5][1] == pytest.approx(3.5)


class TestCnvHeatmapImage:
    """Tests for the per-cell CNV image."""

    def setup_method(self):
        self.joint_post = make_joint_post().assign(CHROM=lambda df: df["CHROM"].str.replace("chr", "").astype(int))
        self.layout = GenomeLayout.from_tables(self.joint_post, make_segs_consensus())

    def test_only_confident_calls_coloured(self):
        image = cnv_heatmap_image(self.joint_post, CELLS, self.layout, p_min=0.9, genome_bins=100)

        white = np.ones(3)
        # normal cells have no call above 0.9
        assert np.allclose(image[0], white)
        # tumor cell c3 shows the deletion on chromosome 2
        assert any(np.allclose(px, to_rgb(state_color("del"))) for px in image[3])
        assert any(np.allclose(px, to_rgb(state_color("amp"))) for px in image[3])

    def test_neutral_segments_never_drawn(self):
        image = cnv_heatmap_image(self.joint_post, CELLS, self.layout, p_min=0.0, genome_bins=100)

        assert not any(np.allclose(px, to_rgb(state_color("neu"))) for px in image.reshape(-1, 3))

    def test_shape(self):
        image = cnv_heatmap_image(self.joint_post, ["c0", "c3"], self.layout, p_min=0.5, genome_bins=40)

        assert image.shape == (2, 40, 3)


class TestPlotPhyloHeatmap:
    """Tests for the plot_phylo_heatmap function."""

    def test_with_tree(self, results, tmp_path):
        fig = plot_phylo_heatmap(results, p_min=0.9, genome_bins=50, plot_save_dir=tmp_path)

        assert len(fig.axes) == 3
        assert (tmp_path / "phylo_heatmap.png").exists()

    def test_without_clone_bar(self, results):
        fig = plot_phylo_heatmap(results, clone_bar=False, genome_bins=50)

        assert len(fig.axes) == 2

    def test_without_tree_groups_by_clone(self, results_no_tree):
        fig = plot_phylo_heatmap(results_no_tree, genome_bins=50)

        assert len(fig.axes) == 2

    def test_explicit_tip_order(self, results):
        fig = plot_phylo_heatmap(results, tip_order=["c3", "c0", "missing"], genome_bins=20)

        heat_ax = fig.axes[-1]
        assert heat_ax.images[0].get_array().shape[0] == 3

    def test_after_tree_cut(self, results):
        """Test that the clone bar uses the cut clones."""
        cutree(results, 2)

        fig = plot_phylo_heatmap(results, genome_bins=20)

        labels = [t.get_text() for t in fig.axes[-1].get_legend().get_texts()]
        assert "Clone 3" in labels

    def test_invalid_p_min(self, results):
        with pytest.raises(ValueError, match="p_min"):
            plot_phylo_heatmap(results, p_min=2.0)
