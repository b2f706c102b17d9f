"""Plotting helpers for T-wave delineation."""

from .delineation import plot_twave_delineation

__all__ = ["plot_twave_delineation"]
