"""Shared fixtures for mutmatrix tests."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import pytest

from mutmatrix.utils import Sample, empty_variants

# 1-based positions:      1         11
#                         AACGTTCAGGCTATCGGA
REFERENCE_FASTA = ">chr1\nAACGTTCAGGCTATCGGA\n>chr2\nGANCTTA\n"

# Five SNVs on chr1 and the strand-standardized context each one maps to
KNOWN_SNVS = [
    ("chr1", 3, "C", "T", "ACG>ATG"),
    ("chr1", 4, "G", "A", "ACG>ATG"),
    ("chr1", 7, "C", "A", "TCA>TAA"),
    ("chr1", 12, "T", "G", "CTA>CGA"),
    ("chr1", 13, "A", "G", "ATA>ACA"),
]


def make_variants(records):
    """Build a variant table from (chrom, pos, ref, alt[, ...]) tuples."""
    if not records:
        return empty_variants()
    return pd.DataFrame([r[:4] for r in records], columns=["chrom", "pos", "ref", "alt"])


@pytest.fixture
def reference_path(tmp_path):
    path = tmp_path / "reference.fa"
    path.write_text(REFERENCE_FASTA)
    return str(path)


@pytest.fixture
def known_sample():
    return Sample("known", make_variants(KNOWN_SNVS))


@pytest.fixture
def abc_samples():
    """Samples A, B and C with 10, 0 and 5 qualifying SNVs."""
    return [
        Sample("A", make_variants(KNOWN_SNVS * 2)),
        Sample("B", make_variants([])),
        Sample("C", make_variants(KNOWN_SNVS)),
    ]


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")
