"""Utility functions and constants for mutmatrix."""

from .constants import (
    MUTATION_TYPES,
    MUTATION_COLORS,
    BASES,
    TYPE_COLUMNS,
    CT_SPLIT_ORDER,
    COLORS7,
    CANONICAL_96,
    get_canonical_96_order
)

from .context import (
    reverse_complement,
    strand_standardize_trinuc,
    parse_variant_id,
    classify_mutation_type,
    is_cpg_transition
)

from .sample import Sample, VARIANT_COLUMNS, empty_variants

__all__ = [
    'MUTATION_TYPES',
    'MUTATION_COLORS',
    'BASES',
    'TYPE_COLUMNS',
    'CT_SPLIT_ORDER',
    'COLORS7',
    'CANONICAL_96',
    'get_canonical_96_order',
    'reverse_complement',
    'strand_standardize_trinuc',
    'parse_variant_id',
    'classify_mutation_type',
    'is_cpg_transition',
    'Sample',
    'VARIANT_COLUMNS',
    'empty_variants'
]
