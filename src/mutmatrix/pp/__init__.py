"""Preprocessing functions for mutmatrix."""

from .load_vcf import read_vcfs
from .from_anndata import samples_from_anndata

__all__ = [
    'read_vcfs',
    'samples_from_anndata'
]
