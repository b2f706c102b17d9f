from typing import List

import numpy as np

from pytwave.processing.candidate import Candidate


def _last_argmin(values: np.ndarray) -> int:
    """Index of the last occurrence of the minimum."""
    return int(values.size - 1 - np.argmin(values[::-1]))


def resolve_candidate_ranges(
    derivative: np.ndarray,
    crossing: np.ndarray,
    loose_window: int = 10,
) -> List[Candidate]:
    """
    Split derivative crossings into ordered candidate spans.

    Consecutive crossing points belong to the same candidate until a gap shows
    up within the next `loose_window` points. The boundary between two
    candidates is the last minimum of the derivative inside the gap.

    Parameters
    ----------
    derivative : np.ndarray
        First difference of the T segment.
    crossing : np.ndarray
        Crossing vector from the candidate finder (nonzero = crossing point).
    loose_window : int
        Number of following points that must be contiguous to keep extending
        the current candidate.

    Returns
    -------
    list of Candidate
        Candidates with ranges set and zero geometry; empty when there are no
        crossing points.
    """
    derivative = np.asarray(derivative, dtype=float)
    points = np.flatnonzero(np.asarray(crossing) != 0)
    if points.size == 0:
        return []

    # (range start, rising start, range end, rising end) of closed candidates
    spans = []
    range_start = _last_argmin(derivative[: points[0] + 1])
    rising_start = int(points[0])

    i = 1
    while i < points.size:
        upper = min(points.size - 1, i + loose_window)
        offsets = points[i: upper + 1] - points[i]
        if int(offsets.sum()) > loose_window * (loose_window + 1) // 2:
            fraction = 0
            for j in range(min(loose_window, offsets.size - 1)):
                if offsets[j] + 1 != offsets[j + 1]:
                    fraction = j
                    break
            i += fraction

            lo, hi = int(points[i]) + 1, int(points[i + 1])
            boundary = lo + _last_argmin(derivative[lo:hi]) if hi > lo else lo
            spans.append((range_start, rising_start, boundary, int(points[i])))

            range_start = boundary
            rising_start = int(points[i + 1])
        i += 1

    last = int(points[-1])
    end = last + _last_argmin(derivative[last:])
    spans.append((range_start, rising_start, end, last))

    return [
        Candidate(rising_range=(r0, r1), candidate_range=(c0, c1))
        for c0, r0, c1, r1 in spans
    ]
