"""Trinucleotide context utilities."""

import re
from Bio.Seq import Seq
from typing import Optional, Tuple

_VARIANT_ID = re.compile(r"([\w.]+)-(\d+)-([ACGT.]+)>([ACGT.]+)$")


def reverse_complement(seq: str) -> str:
    """
    Return the reverse complement of a DNA sequence.

    Parameters
    ----------
    seq : str
        DNA sequence

    Returns
    -------
    str
        Reverse complement of input sequence

    Examples
    --------
    >>> reverse_complement('ATG')
    'CAT'
    """
    return str(Seq(seq).reverse_complement())


def strand_standardize_trinuc(ref_trinuc: str, alt_base: str) -> str:
    """
    Convert a trinucleotide substitution into pyrimidine-based form (per COSMIC convention).

    If the central base is a purine (A/G), reverse complements both the trinucleotide and alt.

    Parameters
    ----------
    ref_trinuc : str
        Reference trinucleotide context (e.g., 'TCG')
    alt_base : str
        Alternate allele base (e.g., 'T')

    Returns
    -------
    str
        Standardized 3mer substitution string (e.g., 'TCG>TTG')

    Examples
    --------
    >>> strand_standardize_trinuc('TCG', 'T')
    'TCG>TTG'
    >>> strand_standardize_trinuc('AGT', 'C')
    'ACT>AGT'
    """
    if ref_trinuc[1] in "AG":
        trinuc_rc = reverse_complement(ref_trinuc)
        alt_rc = reverse_complement(alt_base)
        return f"{trinuc_rc}>{trinuc_rc[0]}{alt_rc}{trinuc_rc[2]}"
    return f"{ref_trinuc}>{ref_trinuc[0]}{alt_base}{ref_trinuc[2]}"


def parse_variant_id(variant_id: str) -> Optional[Tuple[str, int, str, str]]:
    """
    Parse a variant ID string of the form 'chr1-12345-A>T'.

    Returns
    -------
    tuple or None
        (chrom, pos, ref, alt) if valid, None otherwise

    Examples
    --------
    >>> parse_variant_id('chr1-12345-A>T')
    ('chr1', 12345, 'A', 'T')
    >>> parse_variant_id('I-12345-A>T')
    ('I', 12345, 'A', 'T')
    """
    match = _VARIANT_ID.match(variant_id)
    if not match:
        return None
    chrom, pos, ref_base, alt_base = match.groups()
    return chrom, int(pos), ref_base, alt_base


def classify_mutation_type(mut_context: str) -> str:
    """
    Classify a mutation context into one of the 6 major substitution types.

    Examples
    --------
    >>> classify_mutation_type('ACA>AAA')
    'C>A'
    """
    if len(mut_context) != 7:
        raise ValueError(f"Invalid mutation context: {mut_context}")

    return f"{mut_context[1]}>{mut_context[-2]}"


def is_cpg_transition(mut_context: str) -> bool:
    """Return True for a C>T substitution whose 3' neighbour is G (e.g. 'ACG>ATG')."""
    return classify_mutation_type(mut_context) == "C>T" and mut_context[2] == "G"
