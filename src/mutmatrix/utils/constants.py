"""Constants used throughout mutmatrix."""

MUTATION_TYPES = ['C>A', 'C>G', 'C>T', 'T>A', 'T>C', 'T>G']

MUTATION_COLORS = {
    'C>A': '#00BCD4',  # Cyan
    'C>G': '#111111',  # Black
    'C>T': '#E62725',  # Red
    'T>A': '#D3D3D3',  # Light gray
    'T>C': '#99CC00',  # Green
    'T>G': '#FFADBA'   # Pink
}

BASES = ["A", "C", "G", "T"]

# Type occurrence columns: the six substitution classes followed by the C>T split
TYPE_COLUMNS = MUTATION_TYPES + ['C>T at CpG', 'C>T other']

# Bar order used when C>T is split by CpG status
CT_SPLIT_ORDER = ['C>A', 'C>G', 'C>T other', 'C>T at CpG', 'T>A', 'T>C', 'T>G']

# Default palette, one color per entry of CT_SPLIT_ORDER
COLORS7 = [
    '#2EBAED',  # C>A
    '#000000',  # C>G
    '#DE1C14',  # C>T (other)
    '#E98C7B',  # C>T at CpG
    '#D4D2D2',  # T>A
    '#ADCC54',  # T>C
    '#F0D0CE',  # T>G
]


def _build_canonical_96():
    contexts = []
    for sub in MUTATION_TYPES:
        ref_from, ref_to = sub.split(">")
        for b1 in BASES:
            for b3 in BASES:
                contexts.append(f"{b1}{ref_from}{b3}>{b1}{ref_to}{b3}")
    return tuple(contexts)


CANONICAL_96 = _build_canonical_96()


def get_canonical_96_order():
    """
    Return the canonical 96 mutation context order used in COSMIC signatures.

    Labels have the form XYZ>XWZ where Y is the reference pyrimidine (C or T)
    and W is the alternate base, with X and Z being any base. The order is
    fixed at import time and never depends on input data.

    Returns
    -------
    list of str
        List of 96 mutation contexts in canonical order

    Examples
    --------
    >>> contexts = get_canonical_96_order()
    >>> len(contexts)
    96
    >>> contexts[0]
    'ACA>AAA'
    """
    return list(CANONICAL_96)
