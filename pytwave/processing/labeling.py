from typing import Iterable, List

import numpy as np

from pytwave.processing.candidate import Candidate, CandidateLabel

PEAK_TOLERANCE_SAMPLES = 3


def label_peaks(
    candidates: List[Candidate],
    peak_positions: Iterable[int],
    delta: int = PEAK_TOLERANCE_SAMPLES,
) -> List[Candidate]:
    """
    Label a candidate PEAK when a true peak lies inside its rising range.

    The rising range is widened by `delta` samples on both sides. Candidates
    without a nearby peak keep their label.
    """
    positions = np.asarray(list(peak_positions), dtype=int)
    out: List[Candidate] = []
    for cand in candidates:
        lo = cand.rising_range[0] - delta
        hi = cand.rising_range[1] + delta
        if positions.size and np.any((positions >= lo) & (positions <= hi)):
            cand = cand.relabel(CandidateLabel.PEAK)
        out.append(cand)
    return out


def relabel_slurs(candidates: List[Candidate]) -> List[Candidate]:
    """
    Turn unrelated slurs next to a peak into rising or falling slurs.

    One left-to-right sweep, each candidate compared with the current label of
    its left neighbour:

    * unrelated slur after a PEAK with both slopes <= 0 -> SLUR_FALLING
    * unrelated slur before a PEAK with both slopes >= 0 -> SLUR_RISING
    """
    out = list(candidates)
    for i, cand in enumerate(out):
        prev = out[max(0, i - 1)]
        if cand.label == CandidateLabel.SLUR_UNRELATED and prev.label == CandidateLabel.PEAK:
            if cand.a0 <= 0 and cand.a1 <= 0:
                out[i] = cand.relabel(CandidateLabel.SLUR_FALLING)
        elif cand.label == CandidateLabel.PEAK and prev.label == CandidateLabel.SLUR_UNRELATED:
            if prev.a0 >= 0 and prev.a1 >= 0:
                out[i - 1] = prev.relabel(CandidateLabel.SLUR_RISING)
    return out
