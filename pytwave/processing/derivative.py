"""
Derivative-based discovery of T-wave candidates.

Two strategies are provided:

* `find_candidates_moving_zero_crossing` sweeps a horizontal threshold line from
  the largest to the smallest derivative value and marks every sample where the
  derivative falls through the line (mode 1).
* `find_candidates_derivative_based` walks the derivative itself at three small
  precisions and marks where the derivative keeps falling (mode 2).

Both return the crossing vector scaled by wave amplitude and the indices of
true local peaks (derivative falling through zero slope).
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np


def first_derivative(wave: np.ndarray) -> np.ndarray:
    """
    First difference of the wave (length ``n - 1``).

    Raises
    ------
    ValueError
        If the wave holds fewer than 3 samples.
    """
    wave = np.asarray(wave, dtype=float)
    if wave.ndim != 1 or wave.size < 3:
        raise ValueError("wave must be a 1D array with at least 3 samples")
    return np.diff(wave)


def _quantized_sign(values: np.ndarray, origin: float, resolution: float) -> np.ndarray:
    """sign(trunc((values - origin) * resolution)) as small ints."""
    return np.sign(np.trunc((values - origin) * resolution)).astype(int)


def _walk_threshold_row(signs: np.ndarray, row: np.ndarray, peak_row: np.ndarray | None) -> None:
    """
    Mark derivative crossings of one threshold line in place.

    A crossing is recorded at ``i - 1`` when the sign goes rising -> falling, or
    flat -> falling when the flat run followed a rising point. In the latter
    case the whole flat run is marked too. Flat runs not closed by a falling
    point are dropped.
    """
    rising_before = True
    pending: List[int] = []

    for i in range(1, signs.size):
        cur, prev = signs[i], signs[i - 1]

        if cur == 1:
            rising_before = True
            pending.clear()
        elif cur == 0:
            if prev == 1:
                pending.append(i - 1)
            elif prev == 0:
                if rising_before:
                    pending.append(i - 1)
            else:
                rising_before = False
        else:
            if prev == 1:
                row[i - 1] = 1
                if peak_row is not None:
                    peak_row[i - 1] = 1
            elif prev == 0 and rising_before:
                row[i - 1] = 1
                if pending:
                    row[pending] = 1
                if peak_row is not None:
                    peak_row[i - 1] = 1
                    if pending:
                        peak_row[pending] = 1
            rising_before = False
            pending.clear()


def find_candidates_moving_zero_crossing(
    wave: np.ndarray,
    derivative: np.ndarray,
    delta_step_slope: float = 10.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sweep a moving zero-crossing line over the derivative.

    Threshold rows start at ``s = trunc(max(d) * Δ) / Δ`` and row ``j`` sits at
    ``s + j * (-1 / Δ)``, evaluated in floating point, down to
    ``trunc(min(d) * Δ) / Δ``. The three rows around ``int(s * Δ)`` additionally
    mark true peaks.

    Parameters
    ----------
    wave : np.ndarray
        T segment samples (µV).
    derivative : np.ndarray
        ``np.diff(wave)``.
    delta_step_slope : float
        Δ, number of threshold lines per unit slope.

    Returns
    -------
    crossing : np.ndarray
        Length ``n - 2``; nonzero where any threshold row was crossed,
        scaled by ``wave[k + 1]``.
    peak_positions : np.ndarray
        Sorted indices where one of the central rows marked a peak.
    """
    wave = np.asarray(wave, dtype=float)
    derivative = np.asarray(derivative, dtype=float)
    n_cols = derivative.size - 1
    if n_cols < 1:
        return np.zeros(max(n_cols, 0)), np.array([], dtype=int)

    starting_slope = np.trunc(derivative.max() * delta_step_slope) / delta_step_slope
    ending_slope = np.trunc(derivative.min() * delta_step_slope) / delta_step_slope
    # Row count, zero index and origins stay in float arithmetic. On integer
    # input the rows near zero then sit just off the grid (0.1 -> 0.0999...).
    n_rows = int((starting_slope - ending_slope) * delta_step_slope + 1)
    zero_row = int(starting_slope * delta_step_slope)
    step = -1 / delta_step_slope

    crossing_page = np.zeros((n_rows, n_cols))
    peak_page = np.zeros((3, n_cols))
    central = {zero_row - 1: 0, zero_row: 1, zero_row + 1: 2}

    for j in range(n_rows):
        origin = starting_slope + j * step
        signs = _quantized_sign(derivative, origin, delta_step_slope)
        jz = central.get(j)
        _walk_threshold_row(
            signs,
            crossing_page[j],
            peak_page[jz] if jz is not None else None,
        )

    crossing = crossing_page.max(axis=0) * wave[1:-1]
    peak_positions = np.flatnonzero(peak_page.max(axis=0) > 0)
    return crossing, peak_positions


def find_candidates_derivative_based(
    wave: np.ndarray,
    derivative: np.ndarray,
    precisions: Sequence[float] = (0.0, 0.1, 0.2),
    resolution: float = 100.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Walk the derivative directly at a few small precisions.

    Peaks are marked where the quantized derivative goes from positive (or a
    flat run that followed a positive point) to negative. Range flags are set
    wherever the quantized derivative keeps falling once a fall has started.

    Returns the same shapes as `find_candidates_moving_zero_crossing`.
    """
    wave = np.asarray(wave, dtype=float)
    derivative = np.asarray(derivative, dtype=float)
    n_cols = derivative.size - 1
    if n_cols < 1:
        return np.zeros(max(n_cols, 0)), np.array([], dtype=int)

    walk_page = np.zeros((len(precisions), n_cols))
    peak_page = np.zeros((len(precisions), n_cols))

    for j, precision in enumerate(precisions):
        q = np.trunc((derivative - precision) * resolution)
        signs = np.sign(q).astype(int)
        step_signs = np.sign(np.diff(q)).astype(int)

        peak_row = peak_page[j]
        walk_row = walk_page[j]
        rising_before = True
        rising_step = True
        pending: List[int] = []

        for i in range(1, derivative.size):
            cur, prev = signs[i], signs[i - 1]

            if cur == 1:
                rising_before = True
                pending.clear()
            elif cur == 0:
                if rising_before:
                    pending.append(i - 1)
            else:
                if prev == 1 or (prev == 0 and rising_before):
                    peak_row[i - 1] = 1
                    if pending:
                        peak_row[pending] = 1
                rising_before = False
                pending.clear()

            step = step_signs[i - 1]
            if step == 1:
                rising_step = True
            elif step == 0:
                if not rising_step:
                    walk_row[i - 1] = 1
            else:
                if not rising_step:
                    walk_row[i - 1] = 1
                rising_step = False

    crossing = walk_page.max(axis=0) * wave[1:-1]
    peak_positions = np.flatnonzero(peak_page.max(axis=0) > 0)
    return crossing, peak_positions


def find_candidates(
    wave: np.ndarray,
    derivative: np.ndarray,
    mode: int = 1,
    delta_step_slope: float = 10.0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Dispatch to the moving zero-crossing (mode 1) or derivative walk (any other mode)."""
    if mode != 2:
        return find_candidates_moving_zero_crossing(wave, derivative, delta_step_slope)
    return find_candidates_derivative_based(wave, derivative)
