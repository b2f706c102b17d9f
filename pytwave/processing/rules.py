"""
Ordered accept/reject/relabel/merge rules applied to T-wave candidates.

Every rule is a pure function: it returns the indices it selects (and, for
merging, a new candidate list) and never mutates its input. Removal is done
with `remove_candidates`.

Rule order used by the delineator:

 1. few_points_candidates         (before labeling and geometry)
 2. low_amplitude_main_peak
 3. low_amplitude_peaks
 4. inconsistent_peaks
 5. relabel_slurs                 (see `pytwave.processing.labeling`)
 6. unrelated_slurs
 7. merging_candidates
 8. slur_classifier
 9. keep_just_two_peaks           (relabel to PEAK_UNRELATED)
10. convert_peak_to_slur          (relabel to SLURED_PEAK)
11. non_measurable_signal         (diagnostic flag)
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from pytwave.processing.candidate import Candidate, CandidateLabel
from pytwave.processing.geometry import peak_origin_finder

# tolerance of the low-amplitude peak test
LOW_AMPLITUDE_TOLERANCE = 5e-3
MIN_SLOPE_GAP = 1e-10


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


# ----- Selection helpers -----

def candidates_with_label(candidates: Sequence[Candidate], label: CandidateLabel) -> List[int]:
    return [i for i, c in enumerate(candidates) if c.label == label]


def peak_candidates(candidates: Sequence[Candidate]) -> List[int]:
    """Indices of candidates labelled PEAK."""
    return candidates_with_label(candidates, CandidateLabel.PEAK)


def rising_falling_slur_candidates(candidates: Sequence[Candidate]) -> List[int]:
    """Rising slurs first, then falling slurs."""
    return (candidates_with_label(candidates, CandidateLabel.SLUR_RISING)
            + candidates_with_label(candidates, CandidateLabel.SLUR_FALLING))


def candidate_max(candidates: Sequence[Candidate]) -> Tuple[int, float]:
    """(index, amplitude) of the first tallest candidate, ``(-1, 0.0)`` when empty."""
    if not candidates:
        return -1, 0.0
    amps = [c.y for c in candidates]
    idx = int(np.argmax(amps))
    return idx, float(amps[idx])


def candidate_second_max(candidates: Sequence[Candidate]) -> Tuple[int, float]:
    """
    Runner-up candidate by amplitude, ``(-1, 0.0)`` when there is none.

    The tallest candidate splits the list in a left part and a right part and
    the tallest of each is compared. A main peak at position 0 only looks
    right; a main peak at the end only looks left.
    """
    n = len(candidates)
    if n == 0:
        return -1, 0.0
    amps = np.array([c.y for c in candidates], dtype=float)
    main = int(np.argmax(amps))
    left = int(np.argmax(amps[:main])) if main > 0 else None
    right = main + 1 + int(np.argmax(amps[main + 1:])) if main < n - 1 else None

    if main != 0:
        if main < n - 1:
            idx = left if amps[left] > amps[right] else right
        else:
            idx = left
    else:
        idx = right if main < n - 1 else -1

    if idx is None or idx == -1:
        return -1, 0.0
    return idx, float(amps[idx])


def main_peak(candidates: Sequence[Candidate]) -> Tuple[int, float]:
    """
    Main peak among PEAK candidates.

    Returns
    -------
    (int, float)
        Position of the main peak within the list of peak candidates (not the
        candidate index) and its amplitude; ``(-1, 0.0)`` when there are no peaks.
    """
    return candidate_max([candidates[i] for i in peak_candidates(candidates)])


def remove_candidates(candidates: Sequence[Candidate], indices: Iterable[int]) -> List[Candidate]:
    """New list without the candidates at `indices`."""
    drop = set(indices)
    return [c for i, c in enumerate(candidates) if i not in drop]


def relabel_candidates(
    candidates: Sequence[Candidate],
    indices: Iterable[int],
    label: CandidateLabel,
) -> List[Candidate]:
    """New list where the candidates at `indices` carry `label`."""
    chosen = set(indices)
    return [c.relabel(label) if i in chosen else c for i, c in enumerate(candidates)]


def intersection_two_candidates(c1: Candidate, c2: Candidate) -> int:
    """
    Sample where the connecting edges of two neighbouring candidates meet.

    The falling edge of the left candidate is intersected with the rising edge
    of the right one. When the intersection is undefined or falls outside
    ``[c1.rising_range[1], c2.rising_range[1]]`` the result collapses to 0.
    """
    if c2.x > c1.x:
        db = c1.b1 - c2.b0
        ac = c2.a0 - c1.a1
    else:
        db = c2.b1 - c1.b0
        ac = c1.a0 - c2.a1

    x = int(math.ceil(abs(db / ac))) if ac > MIN_SLOPE_GAP else -1
    if x < c1.rising_range[1] or x > c2.rising_range[1]:
        # TODO: out-of-span intersections collapse to sample 0; decide whether
        # the midpoint of both rising ends is the better fallback.
        x = 0
    return x


# ----- Pre-processing -----

def few_points_candidates(candidates: Sequence[Candidate], min_points: float) -> List[int]:
    """Candidates whose rising range spans fewer than `min_points` samples."""
    return [i for i, c in enumerate(candidates) if c.rising_width < min_points]


# ----- Post-processing -----

def low_amplitude_main_peak(
    candidates: Sequence[Candidate],
    min_voltage_main_peak: float,
    percent_main_peak: float,
) -> List[int]:
    """If the main peak is small, every candidate below a fraction of it."""
    _, main_amp = main_peak(candidates)
    if main_amp >= min_voltage_main_peak:
        return []
    return [i for i, c in enumerate(candidates) if c.y < main_amp * percent_main_peak]


def low_amplitude_peaks(
    candidates: Sequence[Candidate],
    min_voltage: float,
    percent_peak: float,
) -> List[int]:
    """
    Peaks that are mostly a slur of the main peak.

    Above `min_voltage` the test is relative to the part of the main peak
    exceeding `min_voltage`; otherwise it is a plain fraction of the main peak.
    """
    _, main_amp = main_peak(candidates)
    out = []
    for i in peak_candidates(candidates):
        y = candidates[i].y
        if main_amp > min_voltage:
            mostly_slur = (main_amp - min_voltage) * percent_peak - (y - min_voltage)
        else:
            mostly_slur = main_amp * (1 - percent_peak) - y
        if mostly_slur > LOW_AMPLITUDE_TOLERANCE:
            out.append(i)
    return out


def inconsistent_peaks(candidates: Sequence[Candidate], max_delta_amplitude_notches: float) -> List[int]:
    _, main_amp = main_peak(candidates)
    return [
        i for i in peak_candidates(candidates)
        if main_amp - candidates[i].y > max_delta_amplitude_notches
    ]


def unrelated_slurs(candidates: Sequence[Candidate]) -> List[int]:
    return candidates_with_label(candidates, CandidateLabel.SLUR_UNRELATED)


def _merge_pair(wave: np.ndarray, left: Candidate, right: Candidate) -> Candidate:
    x = (left.x + right.x) // 2
    y = float(wave[x])
    c0, c1 = left.candidate_range[0], right.candidate_range[1]

    x_origin, y_origin, angle = peak_origin_finder(
        wave[c0: c1 + 1], c0, left.a0, left.b0, right.a1, right.b1
    )
    return Candidate(
        label=CandidateLabel.PEAK,
        rising_range=(left.rising_range[0], right.rising_range[1]),
        candidate_range=(c0, c1),
        a0=left.a0,
        b0=left.b0,
        a1=right.a1,
        b1=right.b1,
        x=x,
        y=y,
        x_origin=x_origin,
        y_origin=y_origin,
        flatness_samples=float(
            right.x - left.x + 1
            + round_half_away((right.flatness_samples + left.flatness_samples) / 2)
        ),
        skewness=angle,
        distortion=float(np.hypot(x - x_origin, y - y_origin)),
    )


def merging_candidates(
    wave: np.ndarray,
    candidates: Sequence[Candidate],
    min_amplitude_flatness: float,
) -> Tuple[List[Candidate], List[int]]:
    """
    Merge neighbouring candidates that form one flat peak.

    A pair qualifies when neither is an unrelated slur, they are not both
    slurs, and both the valley at their edge intersection and their amplitude
    gap stay below `min_amplitude_flatness`. The merged PEAK takes the rising
    edge of the left and the falling edge of the right candidate and spans
    both ranges. A merged candidate can merge again with its right neighbour.

    Returns
    -------
    merged : list of Candidate
        Candidates after merging.
    removed : list of int
        Indices of replaced pairs in the working list before their removal
        (two per merge).
    """
    wave = np.asarray(wave, dtype=float)
    work = list(candidates)
    removed: List[int] = []

    i = 1
    while i < len(work):
        left, right = work[i - 1], work[i]
        related = left.label != CandidateLabel.SLUR_UNRELATED and right.label != CandidateLabel.SLUR_UNRELATED
        both_slurs = abs(int(left.label)) == 1 and abs(int(right.label)) == 1
        if related and not both_slurs:
            x_int = intersection_two_candidates(left, right)
            valley = max(left.y, right.y) - wave[x_int]
            if valley < min_amplitude_flatness and abs(left.y - right.y) < min_amplitude_flatness:
                removed.extend([i - 1, i])
                work.insert(i + 1, _merge_pair(wave, left, right))
                i += 1
        i += 1

    return remove_candidates(work, removed), removed


def slur_classifier(
    candidates: Sequence[Candidate],
    thresholds: Sequence[Sequence[float]],
) -> List[int]:
    """
    Bad rising/falling slurs according to decision-tree thresholds.

    Features of a slur `s` and its neighbouring peak `p`:

    * f0: angle between the two edges of the slur
    * f1: angle between the connecting edges of slur and peak
    * f2: peak amplitude over slur origin amplitude
    """
    out = []
    for s in rising_falling_slur_candidates(candidates):
        slur = candidates[s]
        rising = slur.label == CandidateLabel.SLUR_RISING
        p = s + 1 if rising else s - 1
        if p < 0 or p >= len(candidates):
            continue
        peak = candidates[p]

        s0, s1 = math.degrees(math.atan(slur.a0)), math.degrees(math.atan(slur.a1))
        p0, p1 = math.degrees(math.atan(peak.a0)), math.degrees(math.atan(peak.a1))

        f0 = abs(s0 - s1)
        f1 = abs(p0 - s0) if rising else abs(p1 - s1)
        f2 = peak.y / slur.y_origin if slur.y_origin != 0 else math.inf

        if f0 < thresholds[0][0]:
            if not (f0 > thresholds[1][0] and f1 > thresholds[1][1] and f2 < thresholds[1][2]):
                out.append(s)
        elif f2 > thresholds[2][2]:
            out.append(s)
    return out


def keep_just_two_peaks(candidates: Sequence[Candidate]) -> List[int]:
    """Peak candidates other than the main and the runner-up peak."""
    peaks = peak_candidates(candidates)
    if not peaks:
        return []
    peak_list = [candidates[i] for i in peaks]
    main, _ = candidate_max(peak_list)
    second, _ = candidate_second_max(peak_list)

    rest = list(peaks)
    del rest[main]
    if second != -1:
        del rest[second - 1 if second > main else second]
    return rest


def convert_peak_to_slur(
    wave: np.ndarray,
    candidates: Sequence[Candidate],
    min_valid_amplitude_peak: float,
) -> List[int]:
    """
    Non-main peaks with one flat side.

    A peak whose drop to the intersection with either neighbour is below
    `min_valid_amplitude_peak` is selected. The left side is checked first.
    """
    wave = np.asarray(wave, dtype=float)
    peaks = peak_candidates(candidates)
    if not peaks:
        return []
    main, _ = main_peak(candidates)
    del peaks[main]

    out = []
    for p in peaks:
        y = candidates[p].y
        if p > 0:
            x_int = intersection_two_candidates(candidates[p - 1], candidates[p])
            if y - wave[x_int] < min_valid_amplitude_peak:
                out.append(p)
                continue
        if p < len(candidates) - 1:
            x_int = intersection_two_candidates(candidates[p], candidates[p + 1])
            if y - wave[x_int] < min_valid_amplitude_peak:
                out.append(p)
    return out


def non_measurable_signal(candidates: Sequence[Candidate], measurable: float) -> bool:
    _, main_amp = main_peak(candidates)
    return main_amp < measurable
