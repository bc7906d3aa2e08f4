"""Reduce the 96-channel matrix to point-mutation type occurrences."""

import pandas as pd

from ..utils.constants import CANONICAL_96, MUTATION_TYPES, TYPE_COLUMNS
from ..utils.context import classify_mutation_type, is_cpg_transition


def mut_type_occurrences(mut_mat: pd.DataFrame) -> pd.DataFrame:
    """
    Count occurrences of the six base substitution types per sample.

    C>T substitutions are additionally split into those at CpG sites
    (3' neighbour G) and all others.

    Parameters
    ----------
    mut_mat : pd.DataFrame
        Count matrix (96 contexts × samples) from :func:`mutmatrix.tl.mut_matrix`

    Returns
    -------
    pd.DataFrame
        Type occurrences (samples × 8) with columns
        'C>A', 'C>G', 'C>T', 'T>A', 'T>C', 'T>G', 'C>T at CpG', 'C>T other'

    Examples
    --------
    >>> import mutmatrix as mm
    >>> mut_mat = mm.tl.mut_matrix(samples, reference="hg19.fa")
    >>> type_occurrences = mm.tl.mut_type_occurrences(mut_mat)
    >>> mm.pl.plot_spectrum(type_occurrences, CT=True)
    """
    if not isinstance(mut_mat, pd.DataFrame):
        raise TypeError(f"mut_mat must be pd.DataFrame, got {type(mut_mat)}")
    if tuple(mut_mat.index) != CANONICAL_96:
        raise ValueError("mut_mat must be indexed by the 96 canonical contexts in canonical order")

    sub_types = [classify_mutation_type(context) for context in CANONICAL_96]
    cpg = [is_cpg_transition(context) for context in CANONICAL_96]

    occurrences = mut_mat.groupby(sub_types, sort=False).sum().T
    occurrences = occurrences.reindex(columns=MUTATION_TYPES)

    ct_at_cpg = mut_mat.loc[cpg].sum(axis=0)
    occurrences["C>T at CpG"] = ct_at_cpg
    occurrences["C>T other"] = occurrences["C>T"] - ct_at_cpg

    occurrences = occurrences[TYPE_COLUMNS]
    occurrences.columns.name = None
    occurrences.index.name = mut_mat.columns.name
    return occurrences
