from typing import Union

import numpy as np
from scipy.signal import butter, filtfilt


def lowpass_filter(
    signal: np.ndarray,
    sampling_rate: Union[int, float],
    cutoff_hz: float = 25.0,
    order: int = 5,
) -> np.ndarray:
    """
    Zero-phase Butterworth low-pass filter.

    Parameters
    ----------
    signal : np.ndarray
        1D lead samples.
    sampling_rate : int or float
        Sampling rate in Hz.
    cutoff_hz : float, default 25.0
        Cutoff frequency in Hz.
    order : int, default 5
        Filter order.

    Returns
    -------
    np.ndarray
        Filtered signal. Signals too short for `filtfilt` padding are returned unchanged.

    Raises
    ------
    ValueError
        If the signal contains NaNs or the cutoff is not below Nyquist.
    """
    sig = np.asarray(signal, dtype=float)
    if sig.ndim != 1:
        raise ValueError("`signal` must be a 1D array.")
    if np.isnan(sig).any():
        raise ValueError(f"NaNs present: {np.isnan(sig).sum()} values.")

    nyq = sampling_rate / 2.0
    if not (0 < cutoff_hz < nyq):
        raise ValueError(f"cutoff_hz must be in (0, {nyq}) Hz.")

    b, a = butter(order, cutoff_hz / nyq, btype="low")
    padlen = 3 * max(len(a), len(b))
    if sig.size <= padlen:
        return sig.copy()
    return filtfilt(b, a, sig)
