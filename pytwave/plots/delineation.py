from typing import Optional, Sequence, Union

import matplotlib.pyplot as plt
import numpy as np

from pytwave.processing.candidate import DelineationResult


def plot_twave_delineation(
    wave: Union[np.ndarray, Sequence[float]],
    result: DelineationResult,
    *,
    point_start: int = 0,
    ax: Optional[plt.Axes] = None,
    title: str = "T-wave Delineation",
    xlabel: str = "Sample",
    ylabel: str = "Amplitude (µV)",
    line_width: float = 1.5,
    show: bool = True,
) -> plt.Axes:
    """
    Plot a T segment with its onset, peak(s) and offset.

    Parameters
    ----------
    wave : array-like
        T segment samples.
    result : DelineationResult
        Delineation in absolute sample indices.
    point_start : int, default 0
        Absolute index of ``wave[0]``.
    ax : matplotlib.axes.Axes, optional
        Axes to draw on. If None, a new figure/axes is created.
    title, xlabel, ylabel : str
        Labels.
    line_width : float, default 1.5
        Line width of the trace.
    show : bool, default True
        If True, calls `plt.show()` at the end.

    Returns
    -------
    matplotlib.axes.Axes
        The axes the plot was drawn on.
    """
    sig = np.asarray(wave, dtype=float)
    if sig.ndim != 1 or sig.size == 0:
        raise ValueError("`wave` must be a non-empty 1D array.")

    xs = np.arange(point_start, point_start + sig.size)
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 4))

    ax.plot(xs, sig, linewidth=line_width, color="black", label="T segment")

    def _in_view(idx: int) -> bool:
        return point_start <= idx < point_start + sig.size

    peaks = [p for p in result.peak if _in_view(p)]
    if peaks:
        ax.scatter(peaks, sig[np.asarray(peaks) - point_start], color="red", zorder=3, label="T peak")
    for idx, color, label in ((result.on, "tab:green", "T on"), (result.off, "tab:blue", "T off")):
        if idx >= 0:
            ax.axvline(idx, color=color, linestyle="--", linewidth=1.0, label=label)

    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.legend(loc="upper right")
    ax.grid(True, alpha=0.3)

    if show:
        plt.show()
    return ax
