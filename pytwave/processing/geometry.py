"""
Per-candidate geometry: edge regression, bisector peak and amplitude peak.

Edge lines are ``y = a * x + b``. Angles are in degrees.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

import numpy as np
from scipy.stats import linregress

from pytwave.processing.candidate import Candidate

REGRESSION_HALF_WINDOW = 5
DEGENERATE_DIVISOR = 1e-4


def linear_regression(y: np.ndarray, left: int, right: int) -> Tuple[float, float]:
    """
    Ordinary least squares fit of `y` against ``x = left..right``.

    Returns ``(0.0, 0.0)`` when the design is degenerate
    (``|n Σx² - (Σx)²| <= 1e-4``, i.e. a single sample).
    """
    y = np.asarray(y, dtype=float)
    x = np.arange(left, right + 1, dtype=float)
    n = y.size
    divisor = n * np.sum(x ** 2) - np.sum(x) ** 2
    if abs(divisor) <= DEGENERATE_DIVISOR:
        return 0.0, 0.0
    fit = linregress(x, y)
    return float(fit.slope), float(fit.intercept)


def intersection_line(a0: float, b0: float, a1: float, b1: float) -> Tuple[float, float, float]:
    """
    Bisector of two lines through their intersection.

    Returns
    -------
    a, b : float
        Slope and intercept of the bisector.
    angle : float
        ``89.5 - bisector`` in degrees (skewness).
    """
    slope_gap = a0 - a1
    x = (b1 - b0) / slope_gap if slope_gap != 0 else 0.0
    y = a0 * x + b0

    bisector = 90.0 + (np.degrees(np.arctan(a0)) + np.degrees(np.arctan(a1))) / 2.0
    if bisector == 90.0:
        # vertical bisector, use a steep finite slope instead
        bisector = float(np.degrees(np.arctan(100.0)))

    angle = 89.5 - bisector
    a = float(np.tan(np.radians(bisector)))
    b = y - a * x
    return a, float(b), float(angle)


def peak_origin_finder(
    segment: np.ndarray,
    shift: int,
    a0: float,
    b0: float,
    a1: float,
    b1: float,
) -> Tuple[int, float, float]:
    """
    Point where the bisector of both edge fits meets the wave.

    Parameters
    ----------
    segment : np.ndarray
        Wave samples between the two extreme-slope points.
    shift : int
        Index of ``segment[0]`` in the coordinates of the edge fits.

    Returns
    -------
    x : int
        Index in the edge-fit coordinates.
    y : float
        Wave amplitude at that index.
    angle : float
        Skewness of the bisector in degrees.
    """
    segment = np.asarray(segment, dtype=float)
    a, b, angle = intersection_line(a0, b0, a1, b1)
    n = segment.size
    range_x = np.arange(1, n + 1)
    err = (a * (range_x + shift) + b - segment) ** 2
    k = int(np.argmin(err))
    x = min(int(range_x[k]), n - 1)
    return x + shift, float(segment[x]), angle


def peak_finder(segment: np.ndarray, delta_amplitude: float) -> Tuple[int, float, int]:
    """
    Amplitude peak: middle of the samples within `delta_amplitude` of the max.

    Returns ``(x, y, flatness)`` with `x` relative to the segment.
    """
    segment = np.asarray(segment, dtype=float)
    idx = np.flatnonzero(segment >= segment.max() - delta_amplitude)
    mid = (idx.size + 1) // 2
    x = int(idx[max(0, mid - 1)])
    return x, float(segment[x]), int(idx.size)


def delineate_candidate(
    wave: np.ndarray,
    derivative: np.ndarray,
    candidate: Candidate,
    delta_amplitude: float,
) -> Candidate:
    """
    Fit the edges of one candidate and locate its peaks.

    The rising edge is regressed around the max derivative of the rising
    range, the falling edge around the min derivative after it, each over
    ±5 samples clipped to the candidate. Returned fits and peaks are in the
    coordinates of `wave`.
    """
    ws, we = candidate.candidate_range
    rs = candidate.rising_range[0] - ws
    re = candidate.rising_range[1] - ws

    wave_c = np.asarray(wave[ws: we + 1], dtype=float)
    der_c = np.asarray(derivative[ws: we], dtype=float)

    if der_c.size == 0:
        max_idx = min_idx = 0
    else:
        rising_part = der_c[: re + 1]
        max_idx = int(np.argmax(rising_part)) if rising_part.size else 0
        falling_part = der_c[re:]
        if falling_part.size:
            min_idx = re + int(np.argmin(falling_part))
        else:
            min_idx = min(re, wave_c.size - 1)

    last = wave_c.size - 1
    lo0, hi0 = max(0, max_idx - REGRESSION_HALF_WINDOW), min(last, max_idx + REGRESSION_HALF_WINDOW)
    a0, b0 = linear_regression(wave_c[lo0: hi0 + 1], lo0, hi0)
    lo1, hi1 = max(0, min_idx - REGRESSION_HALF_WINDOW), min(last, min_idx + REGRESSION_HALF_WINDOW)
    a1, b1 = linear_regression(wave_c[lo1: hi1 + 1], lo1, hi1)

    x_origin, y_origin, angle = peak_origin_finder(
        wave_c[max_idx: min_idx + 1], max_idx, a0, b0, a1, b1
    )
    x, y, flatness = peak_finder(wave_c[rs: re + 1], delta_amplitude)
    x += rs

    x_abs, x_origin_abs = x + ws, x_origin + ws
    return replace(
        candidate,
        a0=a0,
        b0=b0 - a0 * ws,
        a1=a1,
        b1=b1 - a1 * ws,
        x=x_abs,
        y=y,
        x_origin=x_origin_abs,
        y_origin=y_origin,
        flatness_samples=float(flatness),
        skewness=angle,
        distortion=float(np.hypot(x_abs - x_origin_abs, y - y_origin)),
    )
