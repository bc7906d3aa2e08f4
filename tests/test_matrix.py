"""Tests for building the 96 × samples mutation count matrix."""

import os
import time
from concurrent.futures.process import BrokenProcessPool

import numpy as np
import pandas as pd
import pytest
from pyfaidx import Fasta

from conftest import KNOWN_SNVS, make_variants
from mutmatrix.tl import (
    ClassificationResult,
    MatrixConsistencyError,
    SampleClassificationError,
    count_96_contexts,
    default_n_jobs,
    mut_matrix,
)
from mutmatrix.tl import matrix as matrix_module
from mutmatrix.utils import CANONICAL_96, Sample


def _one_per_name_classifier(sample, reference):
    # Counts the sample's position in the alphabet in the first channel
    counts = pd.Series(0, index=pd.Index(CANONICAL_96), dtype=np.int64)
    counts.iloc[0] = ord(sample.name[0]) - ord("A") + 1
    return counts


def _delayed_classifier(sample, reference):
    # Earlier samples finish last
    time.sleep(0.05 * (5 - int(sample.name[1:])))
    return _one_per_name_classifier(sample, reference)


def _reversed_classifier(sample, reference):
    counts = count_96_contexts(sample, reference)
    return counts.iloc[::-1]


class _TwoArgError(Exception):
    def __init__(self, first, second):
        super().__init__(f"{first}/{second}")


def _two_arg_error_classifier(sample, reference):
    if sample.name == "bad":
        raise _TwoArgError("x", "y")
    return count_96_contexts(sample, reference)


def _exiting_classifier(sample, reference):
    os._exit(1)


def _failing_classifier(sample, reference):
    if sample.name == "bad":
        raise RuntimeError("lookup exploded")
    return count_96_contexts(sample, reference)


class TestMatrixShape:

    def test_abc_example(self, reference_path, abc_samples):
        mut_mat = mut_matrix(abc_samples, reference_path, n_jobs=1, show_progress=False)

        assert mut_mat.shape == (96, 3)
        assert list(mut_mat.columns) == ["A", "B", "C"]
        assert tuple(mut_mat.index) == CANONICAL_96
        assert mut_mat.sum(axis=0).tolist() == [10, 0, 5]
        assert mut_mat.dtypes.eq(np.int64).all()

    def test_column_sums_match_snv_counts(self, reference_path, abc_samples):
        mut_mat = mut_matrix(abc_samples, reference_path, n_jobs=1, show_progress=False)
        for sample in abc_samples:
            assert mut_mat[sample.name].sum() == sample.n_snvs

    def test_all_empty_samples(self, reference_path):
        samples = [Sample(f"s{i}", make_variants([])) for i in range(4)]
        mut_mat = mut_matrix(samples, reference_path, n_jobs=2, backend="threads", show_progress=False)

        assert mut_mat.shape == (96, 4)
        assert (mut_mat.to_numpy() == 0).all()

    def test_mapping_input(self, reference_path):
        samples = {"z": make_variants(KNOWN_SNVS), "a": make_variants(KNOWN_SNVS[:2])}
        mut_mat = mut_matrix(samples, reference_path, n_jobs=1, show_progress=False)

        assert list(mut_mat.columns) == ["z", "a"]
        assert mut_mat.sum(axis=0).tolist() == [5, 2]

    def test_axis_names(self, reference_path, known_sample):
        mut_mat = mut_matrix([known_sample], reference_path, show_progress=False)
        assert mut_mat.index.name == "context"
        assert mut_mat.columns.name == "sample"

    def test_progress_output(self, reference_path, known_sample, capsys):
        mut_matrix([known_sample], reference_path, n_jobs=1, show_progress=True)
        assert "96 contexts × 1 samples" in capsys.readouterr().out


class TestParallelism:

    def test_threads_match_sequential(self, reference_path, abc_samples):
        sequential = mut_matrix(abc_samples, reference_path, n_jobs=1, show_progress=False)
        threaded = mut_matrix(abc_samples, reference_path, n_jobs=3, backend="threads", show_progress=False)
        pd.testing.assert_frame_equal(sequential, threaded)

    def test_processes_match_sequential(self, reference_path, abc_samples):
        sequential = mut_matrix(abc_samples, reference_path, n_jobs=1, show_progress=False)
        parallel = mut_matrix(abc_samples, reference_path, n_jobs=2, backend="processes", show_progress=False)
        pd.testing.assert_frame_equal(sequential, parallel)

    def test_processes_with_open_fasta(self, reference_path, abc_samples):
        expected = mut_matrix(abc_samples, reference_path, n_jobs=1, show_progress=False)
        with Fasta(reference_path, sequence_always_upper=True) as fasta:
            parallel = mut_matrix(abc_samples, fasta, n_jobs=2, show_progress=False)
        pd.testing.assert_frame_equal(expected, parallel)

    def test_soft_masked_fasta_matches_across_workers(self, tmp_path):
        path = tmp_path / "soft_masked.fa"
        path.write_text(">chr1\naacgttcaggctatcgga\n")
        samples = [Sample(name, make_variants([("chr1", 3, "C", "T")])) for name in ["A", "B"]]

        with Fasta(str(path)) as fasta:
            sequential = mut_matrix(samples, fasta, n_jobs=1, show_progress=False)
            parallel = mut_matrix(samples, fasta, n_jobs=2, show_progress=False)

        pd.testing.assert_frame_equal(sequential, parallel)
        assert sequential.loc["ACG>ATG"].tolist() == [1, 1]

    def test_open_fasta_options_kept_in_parallel(self, tmp_path):
        path = tmp_path / "renamed.fa"
        path.write_text(">chr1 primary assembly\nAACGTTCAGGCTATCGGA\n")
        samples = [Sample(name, make_variants([("1", 3, "C", "T")])) for name in ["A", "B"]]

        with Fasta(str(path), key_function=lambda key: key.removeprefix("chr")) as fasta:
            sequential = mut_matrix(samples, fasta, n_jobs=1, show_progress=False)
            parallel = mut_matrix(samples, fasta, n_jobs=2, show_progress=False)

        pd.testing.assert_frame_equal(sequential, parallel)
        assert parallel.sum(axis=0).tolist() == [1, 1]

    def test_column_order_ignores_completion_order(self):
        samples = [Sample(f"s{i}", make_variants([])) for i in range(5)]
        mut_mat = mut_matrix(
            samples, None, n_jobs=5, backend="threads",
            classifier=_delayed_classifier, show_progress=False,
        )
        assert list(mut_mat.columns) == ["s0", "s1", "s2", "s3", "s4"]

    def test_column_values_follow_their_sample(self):
        samples = [Sample(name, make_variants([])) for name in ["C", "A", "B"]]
        mut_mat = mut_matrix(
            samples, None, n_jobs=3, backend="threads",
            classifier=_one_per_name_classifier, show_progress=False,
        )
        assert mut_mat.iloc[0].tolist() == [3, 1, 2]

    def test_default_n_jobs(self, monkeypatch):
        monkeypatch.setattr(matrix_module.os, "cpu_count", lambda: 6)
        monkeypatch.setattr(matrix_module.sys, "platform", "linux")
        assert default_n_jobs() == 6

    def test_default_n_jobs_windows(self, monkeypatch):
        monkeypatch.setattr(matrix_module.os, "cpu_count", lambda: 6)
        monkeypatch.setattr(matrix_module.sys, "platform", "win32")
        assert default_n_jobs() == 1

    def test_default_n_jobs_unknown_cpus(self, monkeypatch):
        monkeypatch.setattr(matrix_module.os, "cpu_count", lambda: None)
        monkeypatch.setattr(matrix_module.sys, "platform", "linux")
        assert default_n_jobs() == 1

    def test_single_worker_runs_in_process(self, monkeypatch, reference_path, abc_samples):
        monkeypatch.setattr(matrix_module, "default_n_jobs", lambda: 1)

        def _no_pool(*args, **kwargs):
            raise AssertionError("pool should not be used")

        monkeypatch.setattr(matrix_module, "_run_pool", _no_pool)
        mut_mat = mut_matrix(abc_samples, reference_path, show_progress=False)
        assert mut_mat.shape == (96, 3)


class TestFailures:

    def test_failing_sample_aborts_batch(self, reference_path, abc_samples):
        samples = abc_samples + [Sample("bad", make_variants([("chr9", 10, "A", "C")]))]

        with pytest.raises(SampleClassificationError, match="'bad'") as excinfo:
            mut_matrix(samples, reference_path, n_jobs=1, show_progress=False)

        assert excinfo.value.sample_name == "bad"
        assert isinstance(excinfo.value.error, ValueError)
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert "chr9" in str(excinfo.value)

    @pytest.mark.parametrize("backend", ["threads", "processes"])
    def test_failing_sample_in_pool(self, reference_path, abc_samples, backend):
        samples = [Sample("bad", make_variants([("chr1", 3, "A", "T")]))] + abc_samples

        with pytest.raises(SampleClassificationError, match="Reference mismatch"):
            mut_matrix(samples, reference_path, n_jobs=2, backend=backend, show_progress=False)

    def test_classifier_error_keeps_traceback(self, reference_path, abc_samples):
        samples = abc_samples + [Sample("bad", make_variants([]))]

        with pytest.raises(SampleClassificationError) as excinfo:
            mut_matrix(
                samples, reference_path, n_jobs=2, backend="threads",
                classifier=_failing_classifier, show_progress=False,
            )

        assert isinstance(excinfo.value.error, RuntimeError)
        assert "lookup exploded" in excinfo.value.formatted_traceback

    def test_unpicklable_error_names_sample(self, reference_path, abc_samples):
        samples = abc_samples + [Sample("bad", make_variants([]))]

        with pytest.raises(SampleClassificationError, match="'bad'") as excinfo:
            mut_matrix(
                samples, reference_path, n_jobs=2, backend="processes",
                classifier=_two_arg_error_classifier, show_progress=False,
            )

        assert excinfo.value.sample_name == "bad"
        assert "_TwoArgError: x/y" in str(excinfo.value)

    def test_worker_crash_names_sample(self):
        samples = [Sample(name, make_variants([])) for name in ["crash1", "crash2"]]

        with pytest.raises(SampleClassificationError) as excinfo:
            mut_matrix(
                samples, None, n_jobs=2, backend="processes",
                classifier=_exiting_classifier, show_progress=False,
            )

        assert excinfo.value.sample_name in {"crash1", "crash2"}
        assert isinstance(excinfo.value.__cause__, BrokenProcessPool)

    def test_reordered_counts_rejected(self, reference_path, known_sample):
        with pytest.raises(MatrixConsistencyError, match="canonical"):
            mut_matrix(
                [known_sample], reference_path, n_jobs=1,
                classifier=_reversed_classifier, show_progress=False,
            )

    def test_negative_counts_rejected(self, known_sample):
        def negative(sample, reference):
            return pd.Series(-1, index=pd.Index(CANONICAL_96), dtype=np.int64)

        with pytest.raises(MatrixConsistencyError, match="negative"):
            mut_matrix([known_sample], None, n_jobs=1, classifier=negative, show_progress=False)

    def test_fractional_counts_rejected(self, known_sample):
        def fractional(sample, reference):
            return pd.Series(0.5, index=pd.Index(CANONICAL_96))

        with pytest.raises(MatrixConsistencyError, match="not integers"):
            mut_matrix([known_sample], None, n_jobs=1, classifier=fractional, show_progress=False)

    def test_non_series_rejected(self, known_sample):
        with pytest.raises(MatrixConsistencyError, match="expected pd.Series"):
            mut_matrix(
                [known_sample], None, n_jobs=1,
                classifier=lambda sample, reference: {"ACA>AAA": 1}, show_progress=False,
            )

    def test_result_type(self, known_sample):
        result = matrix_module._classify_sample(_failing_classifier, Sample("bad", make_variants([])), None)
        assert isinstance(result, ClassificationResult)
        assert not result.ok
        assert result.counts is None


class TestValidation:

    def test_no_samples(self, reference_path):
        with pytest.raises(ValueError, match="No samples"):
            mut_matrix([], reference_path, show_progress=False)

    def test_duplicate_names(self, reference_path, known_sample):
        with pytest.raises(ValueError, match="unique"):
            mut_matrix([known_sample, known_sample], reference_path, show_progress=False)

    def test_bad_backend(self, reference_path, known_sample):
        with pytest.raises(ValueError, match="backend"):
            mut_matrix([known_sample], reference_path, backend="cluster", show_progress=False)

    @pytest.mark.parametrize("n_jobs", [0, -2, 1.5])
    def test_bad_n_jobs(self, reference_path, known_sample, n_jobs):
        with pytest.raises(ValueError, match="n_jobs"):
            mut_matrix([known_sample], reference_path, n_jobs=n_jobs, show_progress=False)

    def test_single_sample_not_a_sequence(self, reference_path, known_sample):
        with pytest.raises(TypeError):
            mut_matrix(known_sample, reference_path, show_progress=False)

    def test_inputs_not_mutated(self, reference_path, known_sample):
        before = known_sample.variants.copy()
        mut_matrix([known_sample], reference_path, n_jobs=1, show_progress=False)
        pd.testing.assert_frame_equal(before, known_sample.variants)
