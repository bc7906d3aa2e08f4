"""
mutmatrix: 96-channel trinucleotide mutation count matrices

A scanpy-style API for turning per-sample point-mutation calls into a
96 × samples mutation count matrix and plotting mutation spectra.

The API is organized into three modules:
- pp: Preprocessing (loading VCFs or AnnData into Sample objects)
- tl: Tools (context classification, matrix construction, type occurrences)
- pl: Plotting (point mutation spectrum, 96-channel profile)

Example usage:
    import mutmatrix as mm

    # Preprocessing
    samples = mm.pp.read_vcfs(['colon1.vcf.gz', 'colon2.vcf.gz'])

    # Tools
    mut_mat = mm.tl.mut_matrix(samples, reference='hg19.fa')
    type_occurrences = mm.tl.mut_type_occurrences(mut_mat)

    # Plotting
    mm.pl.plot_spectrum(type_occurrences, CT=True)
    mm.pl.plot_96_profile(mut_mat)
"""

from importlib.metadata import version

from . import pl, pp, tl, utils

__all__ = ["pl", "pp", "tl", "utils"]

__version__ = version("mutmatrix")
