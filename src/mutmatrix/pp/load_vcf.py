"""Load VCF files into Sample objects."""

import warnings
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
from cyvcf2 import VCF
from tqdm import tqdm

from ..utils.sample import Sample, VARIANT_COLUMNS


def _read_variants(vcf_path: str, skip_missing_alt: bool) -> tuple[pd.DataFrame, int, int]:
    records = []
    n_skipped = 0
    n_duplicates = 0
    seen_variants = set()

    vcf = VCF(vcf_path)
    try:
        for variant in vcf:
            has_alt = variant.ALT and len(variant.ALT) > 0

            if skip_missing_alt and not has_alt:
                n_skipped += 1
                continue

            alt_allele = variant.ALT[0] if has_alt else "."
            key = (variant.CHROM, variant.POS, variant.REF, alt_allele)

            # Keep first occurrence
            if key in seen_variants:
                n_duplicates += 1
                continue

            seen_variants.add(key)
            records.append(key)
    finally:
        vcf.close()

    variants = pd.DataFrame.from_records(records, columns=VARIANT_COLUMNS)
    variants["pos"] = variants["pos"].astype("int64")
    return variants, n_skipped, n_duplicates


def read_vcfs(
    vcf_files: Sequence[str],
    sample_names: Optional[Sequence[str]] = None,
    skip_missing_alt: bool = True,
    show_progress: bool = True,
) -> list[Sample]:
    """
    Load one Sample per VCF file.

    Parameters
    ----------
    vcf_files : sequence of str
        Paths to VCF files (can be .vcf or .vcf.gz), one per sample
    sample_names : sequence of str, optional
        Name of each sample. If None, uses the file name without VCF extensions.
    skip_missing_alt : bool, default True
        Skip variants with missing ALT alleles (represented as "." in VCF).
        If False, these variants are kept with "." as the ALT allele.
    show_progress : bool, default True
        Show progress bar

    Returns
    -------
    list of Sample
        Samples in the order of vcf_files

    Examples
    --------
    >>> import mutmatrix as mm
    >>> samples = mm.pp.read_vcfs(["colon1.vcf.gz", "colon2.vcf.gz"], sample_names=["colon1", "colon2"])
    >>> mut_mat = mm.tl.mut_matrix(samples, reference="hg19.fa")

    Notes
    -----
    Only the first ALT allele of multi-allelic records is used. Duplicate
    records (same CHROM-POS-REF>ALT) are dropped with a warning, keeping the
    first occurrence. Positions are 1-based, matching VCF.
    """
    vcf_files = [str(path) for path in vcf_files]

    if sample_names is None:
        sample_names = [Path(path).name.removesuffix(".gz").removesuffix(".vcf") for path in vcf_files]
    elif len(sample_names) != len(vcf_files):
        raise ValueError(
            f"sample_names has {len(sample_names)} entries but {len(vcf_files)} VCF files were given"
        )

    samples = []
    iterator = zip(vcf_files, sample_names)
    if show_progress:
        iterator = tqdm(iterator, total=len(vcf_files), desc="Loading VCFs", unit=" files")

    for vcf_path, name in iterator:
        variants, n_skipped, n_duplicates = _read_variants(vcf_path, skip_missing_alt)

        if skip_missing_alt and n_skipped > 0 and show_progress:
            print(f"{name}: skipped {n_skipped} sites with missing ALT alleles")

        if n_duplicates > 0:
            warnings.warn(
                f"Found {n_duplicates} duplicate variant records in {vcf_path} (same CHROM-POS-REF>ALT). "
                f"Kept first occurrence of each. Consider deduplicating your VCF with: "
                f"bcftools norm -d exact input.vcf.gz -Oz -o output.vcf.gz",
                UserWarning,
                stacklevel=2,
            )

        samples.append(Sample(str(name), variants))

    if show_progress:
        n_variants = sum(sample.n_variants for sample in samples)
        print(f"Done! Loaded {n_variants} variants across {len(samples)} samples")

    return samples
