"""Tools for mutation matrix construction."""

from .context import type_context, mut_96_occurrences, count_96_contexts, open_reference
from .matrix import (
    mut_matrix,
    default_n_jobs,
    ClassificationResult,
    SampleClassificationError,
    MatrixConsistencyError,
)
from .occurrences import mut_type_occurrences

__all__ = [
    "type_context",
    "mut_96_occurrences",
    "count_96_contexts",
    "open_reference",
    "mut_matrix",
    "default_n_jobs",
    "ClassificationResult",
    "SampleClassificationError",
    "MatrixConsistencyError",
    "mut_type_occurrences",
]
