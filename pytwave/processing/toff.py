"""
Energy-based refinement of the T-wave offset (Toff).

The segment between the last candidate peak and the current offset is turned
into a running "energy": it drops by the sample amplitude while the smoothed
derivative is negative and rises while it is positive. Every local energy
minimum is an offset candidate; each one is moved to the first strong local
maximum of the energy slope before it, and the final offset minimises

    cost = energy / 100 + distance / (RR - (last_candidate - R peak))
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np
import pandas as pd

from pytwave.processing.candidate import DelineationResult

DERIVATIVE_SMOOTH_WINDOW = 5
SLOPE_SCALE = 10000.0  # energy slope kept to 4 decimals
FALLING_TOLERANCE = -0.001


def smooth_wave(wave: np.ndarray, window: int) -> np.ndarray:
    """Centered moving average over ``[i - window, i + window]``, shrunk at the edges."""
    wave = np.asarray(wave, dtype=float)
    if wave.size == 0 or window <= 0:
        return wave.copy()
    rolled = pd.Series(wave).rolling(2 * int(window) + 1, center=True, min_periods=1).mean()
    return rolled.to_numpy()


def _first_strong_maximum(slope: np.ndarray) -> int:
    """Index of the greatest 'first point of a local maximum' in `slope`, or its last index."""
    falling = False
    best = 1
    for k in range(1, slope.size):
        step = slope[k - 1] - slope[k]
        if step < FALLING_TOLERANCE:
            falling = False
        if step > FALLING_TOLERANCE and not falling:
            falling = True
            if slope[k] > slope[best]:
                best = k
    return slope.size - 1 if best == 1 else best


def new_toff(
    segment: np.ndarray,
    rr: float,
    rpeak: float,
    last_candidate: float,
) -> float:
    """
    Offset chosen by the distance + energy cost function.

    Parameters
    ----------
    segment : np.ndarray
        Wave from the last candidate peak to the current offset (inclusive).
    rr : float
        RR interval in samples.
    rpeak : float
        R peak index.
    last_candidate : float
        Absolute index of ``segment[0]``.

    Returns
    -------
    float
        Absolute offset index, or 0 when no estimate can be made (segment too
        short, no energy minimum, flat energy).
    """
    segment = np.asarray(segment, dtype=float)
    if segment.size < 2:
        return 0

    derivative = np.diff(segment)
    derivative = smooth_wave(derivative, min(DERIVATIVE_SMOOTH_WINDOW, derivative.size))

    energy = np.zeros(derivative.size)
    energy[0] = segment[0]
    minima: List[int] = []
    after_rise = True
    for i in range(1, derivative.size):
        if derivative[i] < 0:
            energy[i] = energy[i - 1] - segment[i]
            if after_rise:
                minima.append(i)
            minima[-1] = i
            after_rise = False
        elif derivative[i] > 0:
            energy[i] = energy[i - 1] + segment[i]
            after_rise = True
        else:
            energy[i] = energy[i - 1]

    span = energy.max() - energy.min()
    if not minima or span == 0:
        return 0
    energy_norm = 100.0 * (energy - energy.min()) / span

    start = 0
    for i in range(energy_norm.size - 1):
        if energy_norm[i] > energy_norm[i + 1]:
            start = i
            break

    energy_slope = np.diff(energy_norm)
    candidates: List[int] = []
    j = start
    for toff2 in minima:
        j = min(j, toff2)
        toff1 = j + int(np.argmin(derivative[j: toff2 + 1]))
        if toff1 > toff2:
            toff1, toff2 = toff2, toff1
        if toff1 == toff2:
            toff1 -= 1

        slope = energy_slope[toff1: toff2]
        slope = smooth_wave(slope, int(slope.size / 10) + 1)
        slope = np.floor(slope * SLOPE_SCALE) / SLOPE_SCALE

        candidates.append(toff1 + _first_strong_maximum(slope))
        j = toff2 + 1

    offsets = np.asarray(candidates, dtype=int)
    reference = last_candidate - rpeak
    denom = rr - reference
    distance = offsets / denom if denom != 0 else np.zeros(offsets.size)
    cost = energy_norm[offsets] / 100.0 + distance
    return last_candidate + int(offsets[int(np.argmin(cost))])


def readjust_toff(
    wave: np.ndarray,
    result: DelineationResult,
    rr: float,
    rpeak: float,
    verbose: bool = False,
) -> float:
    """
    Move the offset of a delineation onto the energy/cost optimum.

    Parameters
    ----------
    wave : np.ndarray
        Full lead (absolute indexing, same as `result`).
    result : DelineationResult
        Output of the delineator; not modified.
    rr : float
        RR interval in samples.
    rpeak : float
        R peak index.
    verbose : bool
        Print the reason when no correction is possible.

    Returns
    -------
    float
        Refined offset in ``[result.last_candidate, len(wave) - 1]``, or -1
        when the delineation cannot be corrected.
    """
    wave = np.asarray(wave, dtype=float)
    n = wave.size

    def _reject(reason: str) -> float:
        if verbose:
            print(f"[Toff]: no correction ({reason})")
        return -1

    if not result.peak:
        return _reject("no peak")
    if any(p < 0 or p >= n for p in result.peak):
        return _reject("peak outside the lead")
    if result.peak[0] > result.off:
        return _reject("peak after offset")
    if result.peak[0] < rpeak:
        return _reject("peak before R peak")

    toff = min(result.off, n - 1)
    amp = wave[result.peak[0]]
    if len(result.peak) > 1:
        if result.peak[1] > result.off:
            return _reject("second peak after offset")
        amp = max(amp, wave[result.peak[1]])

    last = result.last_candidate
    if last < 0 or last > toff:
        return _reject("last candidate outside [0, toff]")

    adjusted = toff
    lower = last + int(np.trunc((toff - last) / 2))
    above = np.flatnonzero(wave[lower: toff + 1] > amp)
    if above.size:
        adjusted = lower + int(above[0])

    refined = new_toff(wave[last: adjusted + 1], rr, rpeak, last)
    if verbose:
        logging.info("Toff refinement: maxslope=%s adjusted=%s energy=%s", result.off, adjusted, refined)
    return refined if refined > 0 else adjusted
