"""Build the 96-channel mutation count matrix from per-sample variant sets."""

import os
import pickle
import sys
import traceback
from collections.abc import Mapping, Sequence
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable

import numpy as np
import pandas as pd
from pyfaidx import Fasta
from tqdm import tqdm

from ..utils.constants import CANONICAL_96
from ..utils.sample import Sample
from .context import count_96_contexts

Classifier = Callable[[Sample, object], pd.Series]


class SampleClassificationError(RuntimeError):
    """Raised when classifying one sample of a batch fails."""

    def __init__(self, sample_name: str, error: BaseException, formatted_traceback: str = ""):
        self.sample_name = sample_name
        self.error = error
        self.formatted_traceback = formatted_traceback
        super().__init__(f"Failed to classify sample '{sample_name}': {type(error).__name__}: {error}")


class MatrixConsistencyError(RuntimeError):
    """Raised when a per-sample result does not match the canonical 96 contexts."""


@dataclass
class ClassificationResult:
    """Outcome of classifying a single sample: either counts or the raised error."""

    sample_name: str
    counts: pd.Series | None = None
    error: BaseException | None = None
    formatted_traceback: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def default_n_jobs() -> int:
    """
    Number of workers to use when none is requested.

    All available CPUs, or 1 on Windows and when the CPU count cannot be
    determined, where process fan-out is unsupported or unreliable.
    """
    n_cpus = os.cpu_count()
    if sys.platform.startswith("win") or n_cpus is None:
        return 1
    return n_cpus


def _transferable(err: Exception) -> Exception:
    """Return err, or a RuntimeError describing it if err cannot survive a pickle round trip."""
    try:
        pickle.loads(pickle.dumps(err))
    except Exception:
        return RuntimeError(f"{type(err).__name__}: {err}")
    return err


def _classify_sample(classifier: Classifier, sample: Sample, reference) -> ClassificationResult:
    # Runs inside the worker; errors travel back as data, never as a sentinel count vector
    try:
        counts = classifier(sample, reference)
    except Exception as err:
        return ClassificationResult(sample.name, error=_transferable(err), formatted_traceback=traceback.format_exc())
    return ClassificationResult(sample.name, counts=counts)


def _as_samples(samples) -> list[Sample]:
    if isinstance(samples, Mapping):
        samples = [Sample(str(name), variants) for name, variants in samples.items()]
    elif isinstance(samples, Sample) or not isinstance(samples, Sequence):
        raise TypeError(f"samples must be a sequence of Sample or a mapping of name -> variants, got {type(samples)}")
    else:
        samples = list(samples)

    for sample in samples:
        if not isinstance(sample, Sample):
            raise TypeError(f"Expected Sample, got {type(sample)}")

    if len(samples) == 0:
        raise ValueError("No samples provided")

    names = [sample.name for sample in samples]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Sample names must be unique, duplicated: {duplicates}")

    return samples


def _resolve_n_jobs(n_jobs: int | None) -> int:
    if n_jobs is None or n_jobs == -1:
        return default_n_jobs()
    if not isinstance(n_jobs, int) or n_jobs < 1:
        raise ValueError(f"n_jobs must be a positive integer, -1 or None, got {n_jobs!r}")
    return n_jobs


def _check_result(result: ClassificationResult) -> np.ndarray:
    """Surface a failed task or reject counts that do not follow the canonical order."""
    if not result.ok:
        raise SampleClassificationError(result.sample_name, result.error, result.formatted_traceback) from result.error

    counts = result.counts
    if not isinstance(counts, pd.Series):
        raise MatrixConsistencyError(
            f"Classifier returned {type(counts).__name__} for sample '{result.sample_name}', expected pd.Series"
        )
    if tuple(counts.index) != CANONICAL_96:
        raise MatrixConsistencyError(
            f"Counts for sample '{result.sample_name}' are not indexed by the canonical 96 contexts "
            f"in canonical order"
        )

    values = counts.to_numpy()
    if not np.issubdtype(values.dtype, np.integer):
        if not np.issubdtype(values.dtype, np.floating) or not np.all(np.mod(values, 1) == 0):
            raise MatrixConsistencyError(f"Counts for sample '{result.sample_name}' are not integers")
    if np.any(values < 0):
        raise MatrixConsistencyError(f"Counts for sample '{result.sample_name}' contain negative values")

    return values.astype(np.int64)


def _run_sequential(samples, reference, classifier, show_progress):
    iterator = tqdm(samples, desc="Classifying samples", unit="sample") if show_progress else samples
    return [_check_result(_classify_sample(classifier, sample, reference)) for sample in iterator]


def _run_pool(samples, reference, classifier, n_workers, backend, show_progress):
    executor_cls = ProcessPoolExecutor if backend == "processes" else ThreadPoolExecutor
    columns = [None] * len(samples)

    executor = executor_cls(max_workers=n_workers)
    try:
        futures = {
            executor.submit(_classify_sample, classifier, sample, reference): idx
            for idx, sample in enumerate(samples)
        }
        completed = as_completed(futures)
        if show_progress:
            completed = tqdm(completed, total=len(futures), desc="Classifying samples", unit="sample")

        # Place each result at its input position, whatever order tasks finish in
        for future in completed:
            try:
                result = future.result()
            except Exception as err:
                # Worker died or its result could not be transferred back
                raise SampleClassificationError(samples[futures[future]].name, err) from err
            columns[futures[future]] = _check_result(result)
    except BaseException:
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)

    return columns


def mut_matrix(
    samples: Sequence[Sample] | Mapping[str, pd.DataFrame],
    reference,
    n_jobs: int | None = None,
    backend: str = "processes",
    classifier: Classifier | None = None,
    show_progress: bool = True,
) -> pd.DataFrame:
    """
    Make the 96 trinucleotide mutation count matrix of a batch of samples.

    Each sample is classified independently, in parallel when possible, and
    the per-sample count vectors are merged into one matrix. If any sample
    fails, the whole batch fails: no partial matrix is ever returned.

    Parameters
    ----------
    samples : sequence of Sample or mapping of str to pd.DataFrame
        Samples in the order their columns should appear. A mapping is read
        as name -> variant table, in its iteration order.
    reference : str, os.PathLike or pyfaidx.Fasta
        Reference genome, passed unchanged to the classifier. It is shared
        read-only by all tasks. An open Fasta is never copied into worker
        processes; with backend='processes' it is shared across threads instead.
    n_jobs : int, optional
        Number of workers. None or -1 uses all CPUs (1 on Windows or when
        the CPU count is unknown). 1 runs sequentially in-process.
    backend : str, default 'processes'
        'processes' for a process pool, 'threads' for a thread pool
    classifier : callable, optional
        Function ``(sample, reference) -> pd.Series`` returning counts indexed
        by the canonical 96 contexts. Defaults to
        :func:`mutmatrix.tl.count_96_contexts`. Must be picklable for the
        process backend.
    show_progress : bool, default True
        Show progress bar

    Returns
    -------
    pd.DataFrame
        Count matrix (96 contexts × samples), rows in canonical order and
        columns in input order, dtype int64

    Raises
    ------
    SampleClassificationError
        If classifying any sample fails. Names the sample and chains the
        original exception.
    MatrixConsistencyError
        If a classifier result is not a non-negative integer vector over the
        canonical 96 contexts in canonical order.

    Examples
    --------
    >>> import mutmatrix as mm
    >>> samples = mm.pp.read_vcfs(["colon1.vcf", "colon2.vcf"])
    >>> mut_mat = mm.tl.mut_matrix(samples, reference="hg19.fa")
    >>> mut_mat.shape
    (96, 2)

    Notes
    -----
    Results do not depend on the number of workers or on which task
    finishes first. The first failure detected aborts the batch; tasks that
    have not started are cancelled and finished results are discarded.
    """
    samples = _as_samples(samples)

    valid_backends = ["processes", "threads"]
    if backend not in valid_backends:
        raise ValueError(f"Invalid backend '{backend}'. Must be one of: {', '.join(valid_backends)}")

    if classifier is None:
        classifier = count_96_contexts

    n_workers = min(_resolve_n_jobs(n_jobs), len(samples))

    if n_workers == 1:
        columns = _run_sequential(samples, reference, classifier, show_progress)
    else:
        if backend == "processes" and isinstance(reference, Fasta):
            # Open file handles do not cross process boundaries; share the caller's handle across threads
            backend = "threads"
        columns = _run_pool(samples, reference, classifier, n_workers, backend, show_progress)

    mut_mat = pd.DataFrame(
        np.column_stack(columns),
        index=pd.Index(CANONICAL_96, name="context"),
        columns=pd.Index([sample.name for sample in samples], name="sample"),
    )

    if show_progress:
        print(f"Built mutation matrix: {mut_mat.shape[0]} contexts × {mut_mat.shape[1]} samples")

    return mut_mat
