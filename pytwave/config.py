# pytwave/config.py
from __future__ import annotations
from dataclasses import dataclass, fields, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

RULE_SEPARATOR = "_"
VALUE_SEPARATOR = ","


def parse_feature_thresholds(thresholds: str) -> List[List[float]]:
    """
    Parse the slur-classifier threshold string into a numeric table.

    Rows are separated by ``"_"`` and values within a row by ``","``,
    e.g. ``"20,0,0_10,10,1.5_0,0,1.7"``.

    Parameters
    ----------
    thresholds : str
        Encoded threshold table.

    Returns
    -------
    list of list of float
        One inner list per rule row.

    Raises
    ------
    ValueError
        If the string is empty, a value is not numeric, or rows differ in length.
    """
    if not isinstance(thresholds, str) or not thresholds.strip():
        raise ValueError("feature_thresholds must be a non-empty string")

    table: List[List[float]] = []
    for row_txt in thresholds.split(RULE_SEPARATOR):
        try:
            row = [float(v) for v in row_txt.split(VALUE_SEPARATOR)]
        except ValueError as e:
            raise ValueError(f"feature_thresholds: malformed row {row_txt!r}") from e
        table.append(row)

    if len({len(r) for r in table}) != 1:
        raise ValueError("feature_thresholds rows must all have the same length")
    return table


def serialize_feature_thresholds(table: Sequence[Sequence[float]]) -> str:
    """Inverse of `parse_feature_thresholds`; floats are written with ``repr`` so parsing is exact."""
    rows = [list(r) for r in table]
    if not rows or any(len(r) == 0 for r in rows):
        raise ValueError("feature threshold table must be non-empty")
    if len({len(r) for r in rows}) != 1:
        raise ValueError("feature threshold table must be rectangular")
    return RULE_SEPARATOR.join(
        VALUE_SEPARATOR.join(repr(float(v)) for v in row) for row in rows
    )


@dataclass(frozen=True)
class TWaveDelineatorConfig:
    """
    Central, typed configuration for the T-wave delineator.
    Every rule threshold lives here; amplitudes are in µV and lengths in samples at 1000 Hz.
    Use `from_mapping()` to build from the legacy camelCase keys and `describe()` to list them.
    """
    # ----- Candidate discovery -----
    candidate_finder: int = 1                  # 1: moving zero-crossing line, 2: derivative walk
    delta_step_slope: float = 10.0             # threshold lines per unit slope (mode 1)
    loose_window: int = 10                     # points checked for contiguity between candidates
    min_points: int = 10                       # min rising-range width of a candidate
    delta_amplitude: float = 5.0               # µV band below max that forms a flat peak

    # ----- Amplitude rules -----
    min_voltage_main_peak: float = 150.0
    percent_main_peak: float = 0.8
    min_voltage: float = 100.0
    percent_peak: float = 0.3
    max_delta_amplitude_notches: float = 50.0
    min_amplitude_flatness: float = 7.0        # merge tolerance
    min_valid_amplitude_peak: float = 7.0      # peak -> slured peak
    measurable: float = 100.0                  # main peak below this is non-measurable

    # ----- Slur classifier (decision-tree thresholds) -----
    feature_thresholds: str = "20,0,0_10,10,1.5_0,0,1.7"

    # ----- T segment window (fractions of RR) -----
    approximate_range_of_tsegment: float = 0.4
    approximate_boundary_of_toff: float = 0.75
    j_point_offset: int = 25                   # samples skipped after QRS offset

    # ----- Input handling -----
    required_sampling_rate: float = 1000.0
    lead: str = "VCGMAG"
    input_units: str = "uV"                    # {"uV","mV"}
    apply_filter: bool = False
    filter_high_cutoff: float = 25.0           # Hz, Butterworth low-pass
    filter_order: int = 5

    version: str = "v1"

    def __post_init__(self):
        if self.candidate_finder not in (1, 2): raise ValueError("candidate_finder ∈ {1,2}")
        if self.delta_step_slope <= 0: raise ValueError("delta_step_slope > 0")
        if self.loose_window < 1: raise ValueError("loose_window >= 1")
        if self.min_points < 0: raise ValueError("min_points >= 0")
        if self.delta_amplitude < 0: raise ValueError("delta_amplitude >= 0")

        if not (0.0 <= self.percent_main_peak <= 1.0): raise ValueError("percent_main_peak in [0,1]")
        if not (0.0 <= self.percent_peak <= 1.0): raise ValueError("percent_peak in [0,1]")
        if self.max_delta_amplitude_notches < 0: raise ValueError("max_delta_amplitude_notches >= 0")
        if self.min_amplitude_flatness < 0: raise ValueError("min_amplitude_flatness >= 0")
        if self.min_valid_amplitude_peak < 0: raise ValueError("min_valid_amplitude_peak >= 0")

        table = parse_feature_thresholds(self.feature_thresholds)
        if len(table) < 3 or len(table[0]) < 3:
            raise ValueError("feature_thresholds must encode at least a 3x3 table")

        if not (0.0 < self.approximate_range_of_tsegment <= 1.0):
            raise ValueError("approximate_range_of_tsegment in (0,1]")
        if self.approximate_boundary_of_toff <= 0: raise ValueError("approximate_boundary_of_toff > 0")
        if self.j_point_offset < 0: raise ValueError("j_point_offset >= 0")

        if self.required_sampling_rate <= 0: raise ValueError("required_sampling_rate > 0")
        if self.input_units not in {"uV", "mV"}: raise ValueError("input_units ∈ {'uV','mV'}")
        if self.filter_order < 1: raise ValueError("filter_order >= 1")
        if not (0.0 < self.filter_high_cutoff < self.required_sampling_rate / 2):
            raise ValueError("filter_high_cutoff in (0, fs/2)")

    @property
    def threshold_table(self) -> List[List[float]]:
        return parse_feature_thresholds(self.feature_thresholds)

    @property
    def amplitude_scale(self) -> float:
        """Factor that brings the input lead into µV."""
        return 1000.0 if self.input_units == "mV" else 1.0

    # ----- Presets -----
    @classmethod
    def for_millivolt_input(cls) -> "TWaveDelineatorConfig":
        """Records stored in mV (e.g. physionet WFDB) are rescaled to µV before delineation."""
        return replace(cls(), input_units="mV")

    @classmethod
    def for_derivative_finder(cls) -> "TWaveDelineatorConfig":
        return replace(cls(), candidate_finder=2)

    # ----- Legacy key table -----
    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TWaveDelineatorConfig":
        """
        Build a config from field names or legacy camelCase keys.

        Parameters
        ----------
        values : mapping
            e.g. ``{"minPoints": 12, "percent_peak": 0.25}``.

        Raises
        ------
        TypeError
            If a key is neither a field nor a legacy key.
        """
        field_names = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            if key in field_names:
                kwargs[key] = value
            elif key in LEGACY_KEYS:
                kwargs[LEGACY_KEYS[key][0]] = value
            else:
                raise TypeError(f"Unknown config key: {key}")
        return cls(**kwargs)

    def describe(self) -> Dict[str, Tuple[str, Any, str]]:
        """Flat legacy key -> (type, current value, description) table."""
        return {
            key: (type(getattr(self, name)).__name__, getattr(self, name), desc)
            for key, (name, desc) in LEGACY_KEYS.items()
        }


LEGACY_KEYS: Mapping[str, Tuple[str, str]] = MappingProxyType({
    "filterHighCutoff": ("filter_high_cutoff", "high cutoff of the Butterworth low-pass in Hz"),
    "filterOrder": ("filter_order", "order of the Butterworth low-pass"),
    "candidateFinder": ("candidate_finder", "moving zero crossing line (1) or first/second derivative walk (2)"),
    "featursThreshold": ("feature_thresholds", "decision-tree thresholds of the slur classifier"),
    "deltaStepSlope": ("delta_step_slope", "resolution of the moving zero crossing lines"),
    "looseWindow": ("loose_window", "min points of a valid candidate"),
    "minPoints": ("min_points", "min points that make a candidate"),
    "deltaAmplitude": ("delta_amplitude", "delta amplitude of points that make the peak of a candidate"),
    "minVoltageMainPeak": ("min_voltage_main_peak", "minimum acceptable voltage of the main peak"),
    "percentMainePeak": ("percent_main_peak", "fraction of the main peak used to evaluate other candidates"),
    "minVoltage": ("min_voltage", "minimum acceptable voltage"),
    "percentPeak": ("percent_peak", "fraction of the main peak used to evaluate other peaks"),
    "maxDelatAplitudeNotches": ("max_delta_amplitude_notches", "acceptable amplitude gap between two peaks"),
    "minAmplitudeFlatness": ("min_amplitude_flatness", "amplitude tolerance for merging flat candidates"),
    "minValidAmplitudePeak": ("min_valid_amplitude_peak", "peak drop below which a peak is a slur"),
    "approximateRangeOfTsegment": ("approximate_range_of_tsegment", "T segment length as a fraction of RR"),
    "approximateBoundaryOfToff": ("approximate_boundary_of_toff", "latest Toff as a fraction of RR"),
    "measurable": ("measurable", "min T peak amplitude of a measurable ECG"),
})
