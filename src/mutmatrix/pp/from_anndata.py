"""Convert cells × variants AnnData objects into Sample objects."""

from typing import Optional

import anndata as ad
import numpy as np
import pandas as pd
from scipy.sparse import issparse

from ..utils.context import parse_variant_id
from ..utils.sample import Sample, VARIANT_COLUMNS


def _variant_table(adata: ad.AnnData) -> pd.DataFrame:
    parsed = [parse_variant_id(variant_id) for variant_id in adata.var_names]
    invalid = [variant_id for variant_id, p in zip(adata.var_names, parsed) if p is None]
    if invalid:
        raise ValueError(
            f"{len(invalid)} variant IDs are not in 'chrom-pos-ref>alt' format, e.g. '{invalid[0]}'"
        )

    variants = pd.DataFrame(parsed, columns=VARIANT_COLUMNS)
    # Prefer explicit annotations when present
    if "chrom" in adata.var.columns:
        variants["chrom"] = adata.var["chrom"].astype(str).to_numpy()
    if "pos" in adata.var.columns:
        variants["pos"] = adata.var["pos"].astype("int64").to_numpy()
    return variants


def samples_from_anndata(adata: ad.AnnData, genotypes: Optional[list[int]] = None) -> list[Sample]:
    """
    Split a cells × variants AnnData object into one Sample per observation.

    Parameters
    ----------
    adata : ad.AnnData
        AnnData object with variant IDs 'chrom-pos-ref>alt' as var_names and
        genotype calls in .X
    genotypes : list of int, optional
        Genotype codes that count as carrying the variant. If None, any
        value > 0 in .X counts.

    Returns
    -------
    list of Sample
        Samples in the order of adata.obs_names, each holding the variants
        carried by that observation

    Examples
    --------
    >>> import mutmatrix as mm
    >>> samples = mm.pp.samples_from_anndata(adata, genotypes=[1, 3])
    >>> mut_mat = mm.tl.mut_matrix(samples, reference="reference.fa")
    """
    variants = _variant_table(adata)

    X = adata.X
    if issparse(X):
        X = X.toarray()
    X = np.asarray(X)

    samples = []
    for cell_idx, cell_name in enumerate(adata.obs_names):
        if genotypes is None:
            mask = X[cell_idx, :] > 0
        else:
            mask = np.isin(X[cell_idx, :], genotypes)
        samples.append(Sample(str(cell_name), variants.loc[mask].reset_index(drop=True)))

    return samples
