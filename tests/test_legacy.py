"""
Tests for the deprecated size-factor and spike-in accessors.
"""

from __future__ import annotations

import warnings

import numpy as np
import pytest

from cellexperiment.config import set_config
from cellexperiment.errors import DimensionMismatchError, NotFoundError


@pytest.fixture
def quiet():
    """Silence DeprecationWarnings from the legacy accessors."""
    set_config(warn_deprecated=False)


class TestDeprecation:

    def test_size_factor_accessors_warn(self, small_sce):
        with pytest.deprecated_call():
            small_sce.with_size_factors(np.ones(10))
        with pytest.deprecated_call():
            small_sce.size_factor_names()

    def test_spike_accessors_warn(self, small_sce):
        with pytest.deprecated_call():
            small_sce.with_spike(np.zeros(10, dtype=bool), "ERCC")

    def test_warnings_can_be_disabled(self, small_sce, quiet):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            small_sce.with_size_factors(np.ones(10)).size_factors()


@pytest.mark.usefixtures("quiet")
class TestSizeFactors:

    def test_default_set_scenario(self, small_sce):
        values = np.random.default_rng(0).uniform(size=10)
        sce = small_sce.with_size_factors(values)

        np.testing.assert_array_equal(sce.size_factors(), values)

        cleared = sce.clear_size_factors()
        assert cleared.size_factor_names() == []
        with pytest.raises(NotFoundError):
            cleared.size_factors()

    def test_named_sets(self, small_sce):
        sce = small_sce.with_size_factors(np.ones(10), type="ERCC")
        sce = sce.with_size_factors(np.full(10, 2.0), type="deconv")

        assert sce.size_factor_names() == ["ERCC", "deconv"]
        np.testing.assert_array_equal(sce.size_factors("deconv"), np.full(10, 2.0))
        assert "size_factor_ERCC" in sce.col_internal.table.columns

    def test_single_named_set_fallback(self, small_sce):
        sce = small_sce.with_size_factors(np.full(10, 3.0), type="ERCC")
        with pytest.warns(UserWarning, match="ERCC"):
            values = sce.size_factors()
        np.testing.assert_array_equal(values, np.full(10, 3.0))

    def test_no_fallback_with_several_sets(self, small_sce):
        sce = small_sce.with_size_factors(np.ones(10), type="a").with_size_factors(np.ones(10), type="b")
        with pytest.raises(NotFoundError):
            sce.size_factors()

    def test_unknown_set(self, small_sce):
        with pytest.raises(NotFoundError, match="deconv"):
            small_sce.size_factors("deconv")

    def test_wrong_length(self, small_sce):
        with pytest.raises(DimensionMismatchError):
            small_sce.with_size_factors(np.ones(9))

    def test_none_removes_named_set(self, small_sce):
        sce = small_sce.with_size_factors(np.ones(10), type="ERCC")
        removed = sce.with_size_factors(None, type="ERCC")
        assert removed.size_factor_names() == []
        assert "size_factor_ERCC" not in removed.col_internal.table.columns

    def test_follow_column_subset(self, small_sce):
        sce = small_sce.with_size_factors(np.arange(10.0))
        np.testing.assert_array_equal(sce[:, [7, 2]].size_factors(), [7.0, 2.0])

    def test_not_in_sample_metadata(self, small_sce):
        sce = small_sce.with_size_factors(np.ones(10))
        assert list(sce.sample_metadata.columns) == ["phenotype", "batch"]


@pytest.mark.usefixtures("quiet")
class TestSpikes:

    def test_declare_and_query(self, small_sce):
        flags = np.arange(10) < 3
        sce = small_sce.with_spike(flags, "ERCC")

        assert sce.spike_names() == ["ERCC"]
        np.testing.assert_array_equal(sce.is_spike("ERCC"), flags)
        assert "is_spike_ERCC" in sce.row_internal.columns
        assert "is_spike_ERCC" not in sce.feature_metadata.columns

    def test_union_of_sets(self, small_sce):
        sce = small_sce.with_spike(np.arange(10) < 2, "ERCC").with_spike(np.arange(10) >= 8, "SIRV")
        expected = np.array([True, True] + [False] * 6 + [True, True])
        np.testing.assert_array_equal(sce.is_spike(), expected)

    def test_no_sets_means_no_spikes(self, small_sce):
        assert not small_sce.is_spike().any()

    def test_unknown_set(self, small_sce):
        with pytest.raises(NotFoundError):
            small_sce.is_spike("ERCC")

    def test_wrong_length(self, small_sce):
        with pytest.raises(DimensionMismatchError):
            small_sce.with_spike([True, False], "ERCC")

    def test_remove_and_clear(self, small_sce):
        sce = small_sce.with_spike(np.arange(10) < 2, "ERCC").with_spike(np.arange(10) < 5, "SIRV")
        assert sce.with_spike(None, "ERCC").spike_names() == ["SIRV"]

        cleared = sce.clear_spikes()
        assert cleared.spike_names() == []
        assert list(cleared.row_internal.columns) == []

    def test_follow_row_subset(self, small_sce):
        sce = small_sce.with_spike(np.arange(10) < 3, "ERCC")
        np.testing.assert_array_equal(sce[[0, 5, 2]].is_spike("ERCC"), [True, False, True])

    def test_carried_into_split(self, small_sce):
        sce = small_sce.with_spike(np.arange(10) < 3, "ERCC")
        out = sce.split_alt_exps(["spike"] * 3 + ["gene"] * 7)
        assert out.alt_exp("spike").is_spike("ERCC").all()
        assert not out.is_spike("ERCC").any()
