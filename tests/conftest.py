"""
Pytest configuration and shared fixtures.

This module provides synthetic single-cell data generators and shared
fixtures for all test suites.
"""

import numpy as np
import pandas as pd
import pytest

from cellexperiment.config import get_config, set_config
from cellexperiment.core.experiment import SingleCellExperiment


def generate_synthetic_experiment(
    n_genes: int,
    n_cells: int,
    n_pcs: int = 0,
    seed: int = 42,
) -> SingleCellExperiment:
    """
    Generate a synthetic single-cell experiment with realistic properties.

    Args:
        n_genes: Number of genes (features)
        n_cells: Number of cells (samples)
        n_pcs: Width of a "PCA" reduced dim (0 = no reduced dims)
        seed: Random seed for reproducibility

    Returns:
        SingleCellExperiment with a Poisson "counts" assay, feature and sample
        metadata, and optionally a PCA embedding

    Design:
        - Poisson counts with per-gene means drawn from a gamma distribution
        - Cells alternate between two batches and two phenotypes
    """
    rng = np.random.default_rng(seed)
    gene_means = rng.gamma(shape=2.0, scale=3.0, size=n_genes)
    counts = rng.poisson(gene_means[:, None], size=(n_genes, n_cells))

    feature_ids = pd.Index([f"GENE_{i:05d}" for i in range(n_genes)])
    sample_ids = pd.Index([f"CELL_{i:04d}" for i in range(n_cells)])

    feature_metadata = pd.DataFrame({
        'symbol': [f"G{i}" for i in range(n_genes)],
    }, index=feature_ids)
    sample_metadata = pd.DataFrame({
        'phenotype': ["CASE" if i % 2 == 0 else "CTRL" for i in range(n_cells)],
        'batch': [f"B{i % 2}" for i in range(n_cells)],
    }, index=sample_ids)

    reduced_dims = None
    if n_pcs:
        reduced_dims = {"PCA": rng.normal(size=(n_cells, n_pcs))}

    return SingleCellExperiment(
        assays={"counts": counts},
        feature_ids=feature_ids,
        sample_ids=sample_ids,
        feature_metadata=feature_metadata,
        sample_metadata=sample_metadata,
        reduced_dims=reduced_dims,
    )


def make_alt_exp(parent: SingleCellExperiment, n_features: int = 3, seed: int = 7) -> SingleCellExperiment:
    """Build an alt exp with its own features on the parent's cells."""
    rng = np.random.default_rng(seed)
    return SingleCellExperiment(
        assays={"counts": rng.poisson(3.0, size=(n_features, parent.n_samples))},
        feature_ids=[f"ERCC_{i:03d}" for i in range(n_features)],
        sample_ids=parent.sample_ids,
    )


@pytest.fixture
def small_sce():
    """10 genes x 10 cells, counts only."""
    return generate_synthetic_experiment(n_genes=10, n_cells=10, seed=42)


@pytest.fixture
def pca_sce():
    """10 genes x 10 cells with a 3-wide PCA embedding."""
    return generate_synthetic_experiment(n_genes=10, n_cells=10, n_pcs=3, seed=42)


@pytest.fixture
def medium_sce():
    """200 genes x 50 cells with PCA and an ERCC alt exp."""
    sce = generate_synthetic_experiment(n_genes=200, n_cells=50, n_pcs=5, seed=1)
    return sce.with_alt_exp("ERCC", make_alt_exp(sce, n_features=5))


@pytest.fixture(autouse=True)
def restore_config():
    """Keep process-wide config changes local to a test."""
    previous = get_config()
    yield
    set_config(previous)
