"""Tests for enums and parameter dataclasses."""

import pytest

from numbatviz.util.classes import (
    CnvState,
    EmbeddingColorKind,
    TutorialParams,
    ensure_cnv_state,
    ensure_color_kind,
)


class TestEnsureCnvState:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("amp", CnvState.AMP),
            ("AMP", CnvState.AMP),
            ("del_1", CnvState.DEL),
            ("loh_up", CnvState.LOH),
            ("bamp", CnvState.BAMP),
            (CnvState.NEU, CnvState.NEU),
        ],
    )
    def test_valid(self, raw, expected):
        assert ensure_cnv_state(raw) is expected

    def test_invalid(self):
        with pytest.raises(ValueError, match="CNV state 'gain' is not one of"):
            ensure_cnv_state("gain")


class TestEnsureColorKind:
    def test_string(self):
        assert ensure_color_kind("categorical") is EmbeddingColorKind.CATEGORICAL

    def test_enum_passthrough(self):
        assert ensure_color_kind(EmbeddingColorKind.CONTINUOUS) is EmbeddingColorKind.CONTINUOUS

    def test_invalid(self):
        with pytest.raises(ValueError, match="kind must be one of"):
            ensure_color_kind("discrete")


class TestTutorialParams:
    """Tests for TutorialParams validation."""

    def test_defaults(self):
        prm = TutorialParams()

        assert prm.p_min == 0.9
        assert prm.n_cut == 0
        assert prm.sc_cells == []

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"p_min": -0.1}, "p_min"),
            ({"n_cut": -1}, "n_cut"),
            ({"genome_bins": 0}, "genome_bins"),
        ],
    )
    def test_invalid_values(self, kwargs, message):
        with pytest.raises(ValueError, match=message):
            TutorialParams(**kwargs)

    def test_palette_keys_are_strings(self):
        prm = TutorialParams(pal_clone={1: "gray", "2": "red"})

        assert prm.pal_clone == {"1": "gray", "2": "red"}
