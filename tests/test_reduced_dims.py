"""
Tests for the reduced-dimension registry.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from cellexperiment.config import set_config
from cellexperiment.errors import DimensionMismatchError, IndexOutOfRange, NotFoundError


class TestReducedDimAccess:

    def test_pca_scenario(self, small_sce):
        pcs = np.random.default_rng(0).normal(size=(10, 3))
        sce = small_sce.with_reduced_dims({"PCA": pcs})

        assert sce.reduced_dim_names() == ["PCA"]
        assert sce.reduced_dim("PCA").shape == (10, 3)
        assert sce[:, 0:4].reduced_dim("PCA").shape == (4, 3)

    def test_get_by_position(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.ones((10, 2)))
        assert sce.reduced_dim().shape == (10, 3)
        assert sce.reduced_dim(1).shape == (10, 2)
        assert sce.reduced_dim(-1).shape == (10, 2)

    def test_numpy_integer_position(self, pca_sce):
        position = np.argmax([1.0])
        assert pca_sce.reduced_dim(position) is pca_sce.reduced_dim("PCA")
        assert pca_sce.reduced_dim(np.int32(-1)).shape == (10, 3)

    def test_bool_position_rejected(self, pca_sce):
        with pytest.raises(TypeError):
            pca_sce.reduced_dim(True)
        with pytest.raises(TypeError):
            pca_sce.reduced_dim(np.bool_(False))

    def test_missing_name(self, pca_sce):
        with pytest.raises(NotFoundError, match="UMAP"):
            pca_sce.reduced_dim("UMAP")

    def test_position_out_of_range(self, pca_sce):
        with pytest.raises(IndexOutOfRange):
            pca_sce.reduced_dim(1)

    def test_empty_registry_default(self, small_sce):
        with pytest.raises(IndexOutOfRange):
            small_sce.reduced_dim()

    def test_not_found_is_key_error(self, pca_sce):
        with pytest.raises(KeyError):
            pca_sce.reduced_dim("UMAP")

    def test_dataframe_gets_sample_ids(self, small_sce):
        coords = pd.DataFrame({'x': np.arange(10.0), 'y': np.arange(10.0)})
        sce = small_sce.with_reduced_dim("UMAP", coords)

        labelled = sce.reduced_dim("UMAP")
        assert labelled.index.equals(sce.sample_ids)
        raw = sce.reduced_dim("UMAP", with_dimnames=False)
        assert list(raw.index) == list(range(10))

        sub = sce[:, [3, 1]]
        assert list(sub.reduced_dim("UMAP").index) == ["CELL_0003", "CELL_0001"]
        assert list(sub.reduced_dim("UMAP")['x']) == [3.0, 1.0]


class TestReducedDimMutation:

    def test_wrong_row_count_leaves_original(self, pca_sce):
        with pytest.raises(DimensionMismatchError):
            pca_sce.with_reduced_dim("TSNE", np.zeros((9, 2)))
        assert pca_sce.reduced_dim_names() == ["PCA"]

    def test_dimension_error_is_value_error(self, pca_sce):
        with pytest.raises(ValueError):
            pca_sce.with_reduced_dim("TSNE", np.zeros((11, 2)))

    def test_one_dimensional_rejected(self, pca_sce):
        with pytest.raises(TypeError):
            pca_sce.with_reduced_dim("bad", np.zeros(10))

    def test_widths_may_differ(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.zeros((10, 2))).with_reduced_dim("UMAP", np.zeros((10, 7)))
        assert [sce.reduced_dim(n).shape[1] for n in sce.reduced_dim_names()] == [3, 2, 7]

    def test_overwrite_keeps_position(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.zeros((10, 2)))
        sce = sce.with_reduced_dim("PCA", np.ones((10, 5)))
        assert sce.reduced_dim_names() == ["PCA", "TSNE"]
        assert sce.reduced_dim("PCA").shape == (10, 5)

    def test_remove(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.zeros((10, 2)))
        assert sce.without_reduced_dim("PCA").reduced_dim_names() == ["TSNE"]
        assert sce.with_reduced_dim("TSNE", None).reduced_dim_names() == ["PCA"]

    def test_remove_absent_is_noop(self, pca_sce):
        assert pca_sce.without_reduced_dim("UMAP") is pca_sce

    def test_set_all_is_atomic(self, pca_sce):
        with pytest.raises(DimensionMismatchError):
            pca_sce.with_reduced_dims({"A": np.zeros((10, 2)), "B": np.zeros((3, 2))})
        assert pca_sce.reduced_dim_names() == ["PCA"]

    def test_set_all_replaces(self, pca_sce):
        sce = pca_sce.with_reduced_dims({"A": np.zeros((10, 2))})
        assert sce.reduced_dim_names() == ["A"]
        assert sce.with_reduced_dims({}).reduced_dim_names() == []

    def test_unnamed_entries(self, small_sce):
        sce = small_sce.with_reduced_dims([np.zeros((10, 2)), ("TSNE", np.zeros((10, 2))), np.ones((10, 4))])
        assert sce.reduced_dim_names() == ["unnamed1", "TSNE", "unnamed3"]

    def test_unnamed_prefix_from_config(self, small_sce):
        set_config(unnamed_prefix="dim")
        sce = small_sce.with_reduced_dims([np.zeros((10, 2))])
        assert sce.reduced_dim_names() == ["dim1"]

    def test_roundtrip_is_noop(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.zeros((10, 2)))
        again = sce.with_reduced_dims(sce.reduced_dims())

        assert again.reduced_dim_names() == sce.reduced_dim_names()
        for name in sce.reduced_dim_names():
            np.testing.assert_array_equal(again.reduced_dim(name), sce.reduced_dim(name))
        assert again.shape == sce.shape
        assert again.assay_names() == sce.assay_names()
        pd.testing.assert_frame_equal(again.sample_metadata, sce.sample_metadata)

    def test_all_embeddings_read_only(self, pca_sce):
        with pytest.raises(TypeError):
            pca_sce.reduced_dims()["TSNE"] = np.zeros((10, 2))

    def test_rename(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.zeros((10, 2)))
        renamed = sce.with_reduced_dim_names(["pc", "tsne"])
        assert renamed.reduced_dim_names() == ["pc", "tsne"]
        assert renamed.reduced_dim("pc") is sce.reduced_dim("PCA")

    def test_rename_wrong_length(self, pca_sce):
        with pytest.raises(ValueError):
            pca_sce.with_reduced_dim_names(["a", "b"])

    def test_rename_duplicate(self, pca_sce):
        sce = pca_sce.with_reduced_dim("TSNE", np.zeros((10, 2)))
        with pytest.raises(ValueError, match="unique"):
            sce.with_reduced_dim_names(["x", "x"])
