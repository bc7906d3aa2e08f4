"""Classify single-nucleotide variants into the 96 trinucleotide contexts."""

import os
from functools import lru_cache

import numpy as np
import pandas as pd
from pyfaidx import Fasta, FetchError

from ..utils.constants import BASES, CANONICAL_96
from ..utils.context import strand_standardize_trinuc
from ..utils.sample import Sample


@lru_cache(maxsize=8)
def _open_fasta(fasta_path: str) -> Fasta:
    return Fasta(fasta_path, sequence_always_upper=True)


def open_reference(reference) -> Fasta:
    """
    Return an open reference genome.

    Parameters
    ----------
    reference : str, os.PathLike or pyfaidx.Fasta
        Path to an (optionally indexed) FASTA file, or an already open Fasta.
        Paths are opened once per process and reused.
    """
    if isinstance(reference, Fasta):
        return reference
    if isinstance(reference, (str, os.PathLike)):
        return _open_fasta(os.fspath(reference))
    raise TypeError(f"reference must be a FASTA path or pyfaidx.Fasta, got {type(reference)}")


def _is_snv(ref_base, alt_base) -> bool:
    return (
        isinstance(ref_base, str)
        and isinstance(alt_base, str)
        and ref_base.upper() in BASES
        and alt_base.upper() in BASES
        and ref_base.upper() != alt_base.upper()
    )


def type_context(variants: pd.DataFrame, reference) -> list[str]:
    """
    Determine the strand-standardized trinucleotide type of every SNV.

    Parameters
    ----------
    variants : pd.DataFrame
        Variant table with 'chrom', 'pos' (1-based), 'ref' and 'alt' columns
    reference : str, os.PathLike or pyfaidx.Fasta
        Reference genome

    Returns
    -------
    list of str
        One COSMIC 96-type label (e.g. 'ACA>AAA') per qualifying SNV, in input order.
        Indels, MNPs, missing alleles and contexts containing N are skipped.

    Raises
    ------
    ValueError
        If a chromosome is missing from the reference, a variant sits at a
        chromosome edge, or the reference allele disagrees with the genome.
    """
    ref = open_reference(reference)
    types = []

    for chrom, pos, ref_base, alt_base in zip(
        variants["chrom"], variants["pos"], variants["ref"], variants["alt"]
    ):
        if not _is_snv(ref_base, alt_base):
            continue

        ref_base = ref_base.upper()
        alt_base = alt_base.upper()
        chrom = str(chrom)
        pos = int(pos)

        if chrom not in ref:
            raise ValueError(f"Chromosome '{chrom}' of variant {chrom}:{pos} not found in reference")

        # pos is 1-based; [pos-2, pos+1) in 0-based coordinates is the 3-mer centred on it
        if pos < 2 or pos + 1 > len(ref[chrom]):
            raise ValueError(f"Variant {chrom}:{pos} has no trinucleotide context (chromosome edge)")

        try:
            anc_trinuc = ref[chrom][pos - 2 : pos + 1].seq.upper()
        except FetchError as err:
            raise ValueError(f"Could not fetch context of variant {chrom}:{pos}: {err}") from err

        if anc_trinuc[1] != ref_base:
            raise ValueError(
                f"Reference mismatch at {chrom}:{pos}: variant has '{ref_base}', genome has '{anc_trinuc[1]}'"
            )

        if any(base not in BASES for base in anc_trinuc):
            continue

        types.append(strand_standardize_trinuc(anc_trinuc, alt_base))

    return types


def mut_96_occurrences(types: list[str], name: str | None = None) -> pd.Series:
    """
    Count trinucleotide types over the canonical 96 contexts.

    Every canonical context is present in the result, zero if unobserved.
    Labels outside the canonical set raise ValueError.
    """
    context_to_idx = {context: idx for idx, context in enumerate(CANONICAL_96)}
    counts = np.zeros(len(CANONICAL_96), dtype=np.int64)

    for trinuc in types:
        if trinuc not in context_to_idx:
            raise ValueError(f"'{trinuc}' is not one of the 96 canonical contexts")
        counts[context_to_idx[trinuc]] += 1

    return pd.Series(counts, index=pd.Index(CANONICAL_96, name="context"), name=name)


def count_96_contexts(sample: Sample, reference) -> pd.Series:
    """
    Count the 96-channel trinucleotide spectrum of one sample.

    This is the default per-sample classifier of :func:`mutmatrix.tl.mut_matrix`.
    It is deterministic and has no side effects beyond opening the reference.

    Parameters
    ----------
    sample : Sample
        Sample to classify
    reference : str, os.PathLike or pyfaidx.Fasta
        Reference genome

    Returns
    -------
    pd.Series
        Counts indexed by the canonical 96 contexts, named after the sample

    Examples
    --------
    >>> import mutmatrix as mm
    >>> counts = mm.tl.count_96_contexts(sample, "reference.fa")
    >>> counts.sum() == sample.n_snvs
    """
    return mut_96_occurrences(type_context(sample.variants, reference), name=sample.name)
