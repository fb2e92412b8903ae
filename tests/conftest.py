import matplotlib


matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pytest  # noqa: E402

from numbatviz.core.results import NumbatResults  # noqa: E402
from numbatviz.data.loading import load_results, read_tree  # noqa: E402
from tests.test_utils import (  # noqa: E402
    NEWICK,
    make_bulk_clones,
    make_clone_post,
    make_embedding,
    make_joint_post,
    make_segs_consensus,
    write_results_dir,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


@pytest.fixture
def results_dir(tmp_path):
    """Directory laid out like a caller's output (iterations 1 and 2)."""
    return write_results_dir(tmp_path / "numbat_out")


@pytest.fixture
def embedding_path(tmp_path):
    path = tmp_path / "embedding.tsv"
    make_embedding().to_csv(path, sep="\t", index=False)
    return path


@pytest.fixture
def embedding():
    return make_embedding().set_index("cell")


@pytest.fixture
def results(results_dir) -> NumbatResults:
    return load_results(results_dir)


@pytest.fixture
def results_no_tree() -> NumbatResults:
    return NumbatResults(
        joint_post=make_joint_post(),
        clone_post=make_clone_post(),
        bulk_clones=make_bulk_clones(),
        segs_consensus=make_segs_consensus(),
    )


@pytest.fixture
def gtree(tmp_path):
    path = tmp_path / "tree.newick"
    path.write_text(NEWICK)
    return read_tree(path)
