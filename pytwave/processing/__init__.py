"""Processing stages of the T-wave delineator."""

from .candidate import (
    LABEL_NAMES,
    LABELS_BY_NAME,
    Candidate,
    CandidateLabel,
    DelineationResult,
)
from .derivative import (
    find_candidates,
    find_candidates_derivative_based,
    find_candidates_moving_zero_crossing,
    first_derivative,
)
from .geometry import (
    delineate_candidate,
    intersection_line,
    linear_regression,
    peak_finder,
    peak_origin_finder,
)
from .labeling import label_peaks, relabel_slurs
from .preprocess import lowpass_filter
from .ranges import resolve_candidate_ranges
from .rules import (
    candidate_max,
    candidate_second_max,
    convert_peak_to_slur,
    few_points_candidates,
    inconsistent_peaks,
    intersection_two_candidates,
    keep_just_two_peaks,
    low_amplitude_main_peak,
    low_amplitude_peaks,
    main_peak,
    merging_candidates,
    non_measurable_signal,
    peak_candidates,
    relabel_candidates,
    remove_candidates,
    round_half_away,
    slur_classifier,
    unrelated_slurs,
)
from .toff import new_toff, readjust_toff, smooth_wave

__all__ = [
    "LABEL_NAMES",
    "LABELS_BY_NAME",
    "Candidate",
    "CandidateLabel",
    "DelineationResult",
    "candidate_max",
    "candidate_second_max",
    "convert_peak_to_slur",
    "delineate_candidate",
    "few_points_candidates",
    "find_candidates",
    "find_candidates_derivative_based",
    "find_candidates_moving_zero_crossing",
    "first_derivative",
    "inconsistent_peaks",
    "intersection_line",
    "intersection_two_candidates",
    "keep_just_two_peaks",
    "label_peaks",
    "linear_regression",
    "low_amplitude_main_peak",
    "low_amplitude_peaks",
    "lowpass_filter",
    "main_peak",
    "merging_candidates",
    "new_toff",
    "non_measurable_signal",
    "peak_candidates",
    "peak_finder",
    "peak_origin_finder",
    "readjust_toff",
    "relabel_candidates",
    "relabel_slurs",
    "remove_candidates",
    "resolve_candidate_ranges",
    "round_half_away",
    "slur_classifier",
    "smooth_wave",
    "unrelated_slurs",
]
