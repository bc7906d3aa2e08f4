"""Per-sample variant collections."""

from dataclasses import dataclass

import pandas as pd

from .constants import BASES

VARIANT_COLUMNS = ["chrom", "pos", "ref", "alt"]


@dataclass(frozen=True, eq=False)
class Sample:
    """
    One biological sample: a name plus its called point mutations.

    Parameters
    ----------
    name : str
        Sample identifier, used as the column label of the mutation matrix
    variants : pd.DataFrame
        One row per variant with columns 'chrom', 'pos' (1-based, as in VCF),
        'ref' and 'alt'
    """

    name: str
    variants: pd.DataFrame

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError(f"Sample name must be a non-empty string, got {self.name!r}")
        if not isinstance(self.variants, pd.DataFrame):
            raise TypeError(f"variants must be pd.DataFrame, got {type(self.variants)}")
        missing = [col for col in VARIANT_COLUMNS if col not in self.variants.columns]
        if missing:
            raise ValueError(f"Sample '{self.name}' is missing variant columns: {missing}")

    @property
    def n_variants(self) -> int:
        return len(self.variants)

    @property
    def n_snvs(self) -> int:
        """Number of single-nucleotide substitution records."""
        ref = self.variants["ref"].astype(str).str.upper()
        alt = self.variants["alt"].astype(str).str.upper()
        return int((ref.isin(BASES) & alt.isin(BASES) & (ref != alt)).sum())


def empty_variants() -> pd.DataFrame:
    """Return a variant table with no rows."""
    return pd.DataFrame(
        {
            "chrom": pd.Series(dtype=str),
            "pos": pd.Series(dtype="int64"),
            "ref": pd.Series(dtype=str),
            "alt": pd.Series(dtype=str),
        }
    )
