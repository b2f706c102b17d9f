"""
Tests for pytwave.processing.rules module.

Tests the accept/reject/relabel/merge rules on hand-built candidates.
"""

import numpy as np
import pytest

from pytwave.processing.candidate import CandidateLabel
from pytwave.processing.rules import (
    candidate_max,
    candidate_second_max,
    convert_peak_to_slur,
    few_points_candidates,
    inconsistent_peaks,
    intersection_two_candidates,
    keep_just_two_peaks,
    low_amplitude_main_peak,
    low_amplitude_peaks,
    main_peak,
    merging_candidates,
    non_measurable_signal,
    peak_candidates,
    relabel_candidates,
    remove_candidates,
    slur_classifier,
    unrelated_slurs,
)

from conftest import make_candidate

DEFAULT_THRESHOLDS = [[20.0, 0.0, 0.0], [10.0, 10.0, 1.5], [0.0, 0.0, 1.7]]


def _peaks(amplitudes):
    return [make_candidate(x=10 * (i + 1), y=y) for i, y in enumerate(amplitudes)]


def _flat_pair(label=CandidateLabel.PEAK):
    """Two neighbouring candidates whose edges meet at sample 50."""
    left = make_candidate(
        x=40, y=200.0, rising=(30, 40), crange=(20, 50), label=label,
        a0=1.0, b0=160.0, a1=-1.0, b1=240.0, flatness_samples=3.0,
    )
    right = make_candidate(
        x=60, y=201.0, rising=(50, 60), crange=(50, 80), label=label,
        a0=1.0, b0=140.0, a1=-1.0, b1=261.0, flatness_samples=4.0,
    )
    return left, right


def _flat_wave(valley):
    wave = np.full(100, 150.0)
    wave[40], wave[60] = 200.0, 201.0
    wave[50] = valley
    return wave


class TestSelection:
    """Tests for the selection helpers."""

    def test_candidate_max_first_of_ties(self):
        assert candidate_max(_peaks([100, 300, 300])) == (1, 300.0)

    def test_candidate_max_empty(self):
        assert candidate_max([]) == (-1, 0.0)

    @pytest.mark.parametrize("amps, expected", [
        ([100, 300, 200, 250], 3),
        ([300, 100, 200], 2),
        ([100, 200, 300], 1),
        ([250, 300, 100], 0),
        ([300], -1),
    ])
    def test_candidate_second_max(self, amps, expected):
        idx, _ = candidate_second_max(_peaks(amps))
        assert idx == expected

    def test_main_peak_position_within_peaks(self):
        cands = [make_candidate(x=5, y=500.0, label=CandidateLabel.SLUR_RISING)] + _peaks([100, 300])
        assert main_peak(cands) == (1, 300.0)

    def test_peak_candidates(self):
        cands = [make_candidate(x=5, y=1.0, label=CandidateLabel.SLUR_FALLING)] + _peaks([1, 2])
        assert peak_candidates(cands) == [1, 2]

    def test_remove_and_relabel_are_pure(self):
        cands = _peaks([1, 2, 3])
        assert [c.y for c in remove_candidates(cands, [0, 2])] == [2.0]
        relabelled = relabel_candidates(cands, [1], CandidateLabel.PEAK_UNRELATED)
        assert relabelled[1].label == CandidateLabel.PEAK_UNRELATED
        assert cands[1].label == CandidateLabel.PEAK


class TestIntersection:
    """Tests for intersection_two_candidates function."""

    def test_edges_meet_between_peaks(self):
        left, right = _flat_pair()
        assert intersection_two_candidates(left, right) == 50

    def test_parallel_edges_collapse_to_zero(self):
        left = make_candidate(x=10, y=1.0, rising=(5, 10))
        right = make_candidate(x=30, y=1.0, rising=(25, 30))
        assert intersection_two_candidates(left, right) == 0


class TestFilteringRules:
    """Tests for the reject rules."""

    def test_few_points(self):
        cands = [
            make_candidate(x=0, y=1.0, rising=(0, 9)),
            make_candidate(x=0, y=1.0, rising=(20, 30)),
        ]
        assert few_points_candidates(cands, 10) == [0]

    def test_low_amplitude_main_peak(self):
        """A small main peak removes everything below 80% of it."""
        cands = [
            make_candidate(x=10, y=120.0),
            make_candidate(x=20, y=90.0, label=CandidateLabel.SLUR_FALLING),
            make_candidate(x=30, y=100.0, label=CandidateLabel.SLUR_FALLING),
        ]
        assert low_amplitude_main_peak(cands, 150.0, 0.8) == [1]

    def test_low_amplitude_main_peak_tall_main(self):
        cands = [make_candidate(x=10, y=300.0), make_candidate(x=20, y=10.0)]
        assert low_amplitude_main_peak(cands, 150.0, 0.8) == []

    def test_low_amplitude_peaks(self):
        assert low_amplitude_peaks(_peaks([300, 100, 250]), 100.0, 0.3) == [1]

    def test_low_amplitude_peaks_small_main(self):
        """Below min_voltage the test is a plain fraction of the main peak."""
        assert low_amplitude_peaks(_peaks([90, 50, 70]), 100.0, 0.3) == [1]

    def test_inconsistent_peaks(self):
        assert inconsistent_peaks(_peaks([300, 240, 260]), 50.0) == [1]

    def test_unrelated_slurs(self):
        cands = [
            make_candidate(x=0, y=1.0, label=CandidateLabel.SLUR_UNRELATED),
            make_candidate(x=0, y=1.0, label=CandidateLabel.SLUR_RISING),
            make_candidate(x=0, y=1.0),
        ]
        assert unrelated_slurs(cands) == [0]

    @pytest.mark.parametrize("rule, args", [
        (few_points_candidates, (10,)),
        (low_amplitude_main_peak, (150.0, 0.8)),
        (low_amplitude_peaks, (100.0, 0.3)),
        (inconsistent_peaks, (50.0,)),
    ])
    def test_removal_only_shrinks(self, rule, args):
        cands = [
            make_candidate(x=10, y=90.0, rising=(0, 5)),
            make_candidate(x=20, y=140.0, rising=(10, 30)),
            make_candidate(x=30, y=60.0, rising=(35, 50), label=CandidateLabel.SLUR_FALLING),
        ]
        bad = rule(cands, *args)
        assert set(bad) <= set(range(len(cands)))
        assert len(remove_candidates(cands, bad)) == len(cands) - len(set(bad))


class TestMergingCandidates:
    """Tests for merging_candidates function."""

    def test_flat_pair_merges(self):
        left, right = _flat_pair()
        merged, removed = merging_candidates(_flat_wave(197.0), [left, right], 7.0)

        assert removed == [0, 1]
        assert len(merged) == 1
        m = merged[0]
        assert m.label == CandidateLabel.PEAK
        assert m.candidate_range == (20, 80)
        assert m.rising_range == (30, 60)
        assert (m.a0, m.b0, m.a1, m.b1) == (1.0, 160.0, -1.0, 261.0)
        assert m.x == 50
        assert m.y == 197.0
        # 60 - 40 + 1 + round((3 + 4) / 2)
        assert m.flatness_samples == 25.0

    def test_deep_valley_keeps_both(self):
        left, right = _flat_pair()
        merged, removed = merging_candidates(_flat_wave(150.0), [left, right], 7.0)
        assert removed == []
        assert merged == [left, right]

    def test_two_slurs_never_merge(self):
        left, right = _flat_pair(CandidateLabel.SLUR_RISING)
        merged, removed = merging_candidates(_flat_wave(197.0), [left, right], 7.0)
        assert removed == []
        assert len(merged) == 2

    def test_unrelated_slur_never_merges(self):
        left, right = _flat_pair()
        right = right.relabel(CandidateLabel.SLUR_UNRELATED)
        _, removed = merging_candidates(_flat_wave(197.0), [left, right], 7.0)
        assert removed == []

    def test_count_invariant(self):
        """Each merge replaces two candidates by one."""
        left, right = _flat_pair()
        extra = make_candidate(x=90, y=150.0, rising=(85, 95), crange=(80, 99), label=CandidateLabel.SLUR_FALLING)
        cands = [left, right, extra]
        merged, removed = merging_candidates(_flat_wave(197.0), cands, 7.0)
        assert len(merged) == len(cands) - len(removed) // 2


class TestSlurClassifier:
    """Tests for slur_classifier function."""

    def _pair(self, slur_y_origin):
        slur = make_candidate(
            x=10, y=100.0, label=CandidateLabel.SLUR_RISING,
            a0=1.0, a1=float(np.tan(np.radians(30.0))), y_origin=slur_y_origin,
        )
        peak = make_candidate(x=30, y=200.0, a0=float(np.tan(np.radians(80.0))), a1=-2.0)
        return [slur, peak]

    def test_sharp_slur_next_to_steep_peak_kept(self):
        assert slur_classifier(self._pair(150.0), DEFAULT_THRESHOLDS) == []

    def test_low_origin_slur_rejected(self):
        assert slur_classifier(self._pair(100.0), DEFAULT_THRESHOLDS) == [0]

    def test_slur_without_neighbour_skipped(self):
        slur = make_candidate(x=10, y=100.0, label=CandidateLabel.SLUR_FALLING, a0=-1.0, a1=-1.0)
        assert slur_classifier([slur], DEFAULT_THRESHOLDS) == []


class TestKeepJustTwoPeaks:
    """Tests for keep_just_two_peaks function."""

    @pytest.mark.parametrize("amps, expected", [
        ([100, 300, 200, 250], [0, 2]),
        ([300, 100, 200], [1]),
        ([100, 200, 300], [0]),
        ([300, 200], []),
        ([300], []),
    ])
    def test_extra_peaks(self, amps, expected):
        assert keep_just_two_peaks(_peaks(amps)) == expected

    def test_no_peaks(self):
        slur = make_candidate(x=10, y=100.0, label=CandidateLabel.SLUR_RISING)
        assert keep_just_two_peaks([slur]) == []

    def test_indices_refer_to_candidates(self):
        cands = [make_candidate(x=5, y=10.0, label=CandidateLabel.SLUR_RISING)] + _peaks([100, 300, 200])
        # peaks at candidate indices 1, 2, 3; main 300, runner-up 200
        assert keep_just_two_peaks(cands) == [1]


class TestConvertPeakToSlur:
    """Tests for convert_peak_to_slur function."""

    def test_shallow_side_converted(self):
        wave = np.full(50, 100.0)
        wave[0] = 200.0
        cands = [make_candidate(x=10, y=300.0, rising=(5, 10)), make_candidate(x=30, y=205.0, rising=(25, 30))]
        assert convert_peak_to_slur(wave, cands, 7.0) == [1]

    def test_deep_sides_kept(self):
        wave = np.full(50, 100.0)
        cands = [make_candidate(x=10, y=300.0, rising=(5, 10)), make_candidate(x=30, y=205.0, rising=(25, 30))]
        assert convert_peak_to_slur(wave, cands, 7.0) == []

    def test_main_peak_never_converted(self):
        wave = np.full(50, 300.0)
        cands = [make_candidate(x=10, y=300.0, rising=(5, 10))]
        assert convert_peak_to_slur(wave, cands, 7.0) == []


class TestNonMeasurable:
    """Tests for non_measurable_signal function."""

    def test_small_main_peak(self):
        assert non_measurable_signal(_peaks([50, 80]), 100.0) is True

    def test_tall_main_peak(self):
        assert non_measurable_signal(_peaks([50, 180]), 100.0) is False

    def test_no_peaks(self):
        assert non_measurable_signal([], 100.0) is True
