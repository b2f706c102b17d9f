"""
Candidate and result containers for T-wave delineation.

A candidate is a contiguous span of the T segment that is either a peak or a
slur (notch/plateau). Candidates are frozen; stages that change a label build a
new instance with `dataclasses.replace` and return new lists.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


class CandidateLabel(IntEnum):
    SLUR_UNRELATED = 0
    SLUR_RISING = 1
    SLUR_FALLING = -1
    PEAK = 2
    PEAK_UNRELATED = -2
    SLURED_PEAK = 3
    SLURED_PEAK_UNRELATED = -3


LABEL_NAMES: Mapping[CandidateLabel, str] = MappingProxyType({
    CandidateLabel.SLUR_UNRELATED: "slurUnrelated",
    CandidateLabel.SLUR_RISING: "slurRising",
    CandidateLabel.SLUR_FALLING: "slurFalling",
    CandidateLabel.PEAK: "peak",
    CandidateLabel.PEAK_UNRELATED: "peakUnrelated",
    CandidateLabel.SLURED_PEAK: "sluredPeak",
    CandidateLabel.SLURED_PEAK_UNRELATED: "sluredPeakUnrelated",
})

LABELS_BY_NAME: Mapping[str, CandidateLabel] = MappingProxyType(
    {name: label for label, name in LABEL_NAMES.items()}
)


@dataclass(frozen=True)
class Candidate:
    """
    One peak or slur span of the T segment.

    Parameters
    ----------
    label : CandidateLabel
    rising_range : (int, int)
        First and last derivative crossing of the span.
    candidate_range : (int, int)
        Full span, bounded by derivative minima on both sides.
    a0, b0 : float
        Rising edge fit ``y = a0 * x + b0`` in segment coordinates.
    a1, b1 : float
        Falling edge fit.
    x, y : int, float
        Amplitude-based peak.
    x_origin, y_origin : int, float
        Peak where the bisector of both edge fits meets the wave.
    flatness_samples : float
        Number of near-maximal samples that form the peak.
    skewness : float
        Bisector angle in degrees (``89.5 - bisector``).
    distortion : float
        Euclidean distance between the amplitude peak and the bisector peak.
    """
    rising_range: Tuple[int, int]
    candidate_range: Tuple[int, int]
    label: CandidateLabel = CandidateLabel.SLUR_UNRELATED
    a0: float = 0.0
    b0: float = 0.0
    a1: float = 0.0
    b1: float = 0.0
    x: int = 0
    y: float = 0.0
    x_origin: int = 0
    y_origin: float = 0.0
    flatness_samples: float = 0.0
    skewness: float = 0.0
    distortion: float = 0.0

    @property
    def rising_width(self) -> int:
        return self.rising_range[1] - self.rising_range[0]

    @property
    def is_peak(self) -> bool:
        return self.label == CandidateLabel.PEAK

    def relabel(self, label: CandidateLabel) -> "Candidate":
        return replace(self, label=CandidateLabel(label))


@dataclass
class DelineationResult:
    """
    Onset, peak(s) and offset of one T wave plus per-peak shape metrics.

    All positions are absolute sample indices; -1 means unset.
    `rules_hit` maps each rule name to the number of candidates it touched.
    """
    on: int = -1
    off: int = -1
    last_candidate: int = -1
    peak: List[int] = field(default_factory=list)
    flatness: List[float] = field(default_factory=list)
    distortion: List[float] = field(default_factory=list)
    skewness: List[float] = field(default_factory=list)
    rules_hit: Dict[str, int] = field(default_factory=dict)
    non_measurable: bool = False

    @property
    def has_delineation(self) -> bool:
        return len(self.peak) > 0

    @property
    def main_peak(self) -> Optional[int]:
        return self.peak[0] if self.peak else None

    @property
    def second_peak(self) -> Optional[int]:
        return self.peak[1] if len(self.peak) > 1 else None
