"""Tests for the example dataset registry."""

import pytest

from numbatviz.data.registry import EXAMPLE_DATASETS, DatasetInfo, get_dataset_info, register_dataset


class TestGetDatasetInfo:
    """Tests for the get_dataset_info function."""

    def test_known_dataset(self):
        info = get_dataset_info("tnbc1")

        assert info.name == "tnbc1"
        assert info.iteration == 2

    def test_all_registered_datasets(self):
        for name in EXAMPLE_DATASETS:
            assert get_dataset_info(name).name == name

    def test_unknown_dataset_lists_available(self):
        """Test that the error message lists available datasets."""
        with pytest.raises(ValueError, match="Available datasets: tnbc1"):
            get_dataset_info("TNBC1")


class TestRegisterDataset:
    """Tests for the register_dataset function."""

    @pytest.fixture(autouse=True)
    def restore_registry(self):
        saved = dict(EXAMPLE_DATASETS)
        yield
        EXAMPLE_DATASETS.clear()
        EXAMPLE_DATASETS.update(saved)

    def test_register_new_dataset(self):
        info = DatasetInfo(name="demo", results_url="https://example.com/demo.zip", embedding_url=None)

        register_dataset(info)

        assert get_dataset_info("demo") is info

    def test_duplicate_registration_raises(self):
        info = DatasetInfo(name="tnbc1", results_url="https://example.com/t.zip", embedding_url=None)

        with pytest.raises(ValueError, match="already registered"):
            register_dataset(info)

    def test_overwrite(self):
        info = DatasetInfo(name="tnbc1", results_url="https://example.com/t.zip", embedding_url=None, iteration=3)

        register_dataset(info, overwrite=True)

        assert get_dataset_info("tnbc1").results_url == "https://example.com/t.zip"
