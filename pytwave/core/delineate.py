from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from pytwave.config import TWaveDelineatorConfig
from pytwave.ecg import (
    GLOBAL_LEAD,
    AnnotationType,
    ECGRecord,
    add_annotation,
    erase_annotations,
    get_annotations,
    lead_from_name,
)
from pytwave.processing import (
    CandidateLabel,
    DelineationResult,
    convert_peak_to_slur,
    delineate_candidate,
    few_points_candidates,
    find_candidates,
    first_derivative,
    inconsistent_peaks,
    keep_just_two_peaks,
    label_peaks,
    low_amplitude_main_peak,
    low_amplitude_peaks,
    lowpass_filter,
    merging_candidates,
    non_measurable_signal,
    peak_candidates,
    readjust_toff,
    relabel_candidates,
    relabel_slurs,
    remove_candidates,
    resolve_candidate_ranges,
    round_half_away,
    slur_classifier,
    unrelated_slurs,
)

T_WAVE_TYPES = (
    AnnotationType.TON,
    AnnotationType.TOFF,
    AnnotationType.TPEAK,
    AnnotationType.TPPEAK,
)
DEFAULT_RPEAK = 250
DEFAULT_RR_FRACTION = 0.8


class TWaveDelineator:
    """
    T-wave delineator for one vector-magnitude lead.

    Finds onset, up to two peaks and offset of the T wave with a fixed-order
    pipeline: derivative candidates, candidate ranges, peak labels, edge
    geometry, amplitude/shape rules, and an energy-based offset refinement.

    Parameters
    ----------
    cfg : TWaveDelineatorConfig, optional
        Base configuration; defaults to `TWaveDelineatorConfig()`.
    verbose : bool
        Print per-rule counts and refinement decisions.
    plot : bool
        Plot every delineation.
    **overrides
        Field-level overrides applied to `cfg` (e.g. ``min_points=12``).
    """

    def __init__(
        self,
        cfg: Optional[TWaveDelineatorConfig] = None,
        verbose: bool = False,
        plot: bool = False,
        **overrides: Any,
    ):
        self.verbose = verbose
        self.plot = plot

        base = cfg if cfg is not None else TWaveDelineatorConfig()
        for k in overrides:
            if not hasattr(base, k):
                raise TypeError(f"Unknown config key: {k}")
        self.cfg: TWaveDelineatorConfig = replace(base, **overrides)
        self.thresholds = self.cfg.threshold_table

    def _hit(self, result: DelineationResult, name: str, count: int) -> None:
        result.rules_hit[name] = int(count)
        if self.verbose:
            print(f"[Rules]: {name} -> {count}")

    def delineate(self, twave: np.ndarray, point_start: int = 0) -> DelineationResult:
        """
        Delineate one T segment.

        Parameters
        ----------
        twave : np.ndarray
            T segment samples in µV (at least 3 samples).
        point_start : int
            Absolute index of ``twave[0]``; every returned position is shifted by it.

        Returns
        -------
        DelineationResult
            ``on``/``off``/``last_candidate`` are -1 and ``peak`` is empty when
            no peak survives the rules.
        """
        cfg = self.cfg
        result = DelineationResult()
        twave = np.asarray(twave, dtype=float)

        try:
            derivative = first_derivative(twave)

            crossing, peak_positions = find_candidates(
                twave, derivative, cfg.candidate_finder, cfg.delta_step_slope
            )
            candidates = resolve_candidate_ranges(derivative, crossing, cfg.loose_window)

            bad = few_points_candidates(candidates, cfg.min_points)
            self._hit(result, "fewPointsCandidates", len(bad))
            candidates = remove_candidates(candidates, bad)

            candidates = label_peaks(candidates, peak_positions)
            candidates = [
                delineate_candidate(twave, derivative, c, cfg.delta_amplitude)
                for c in candidates
            ]

            bad = low_amplitude_main_peak(candidates, cfg.min_voltage_main_peak, cfg.percent_main_peak)
            self._hit(result, "lowAmplitudeMainPeak", len(bad))
            candidates = remove_candidates(candidates, bad)

            bad = low_amplitude_peaks(candidates, cfg.min_voltage, cfg.percent_peak)
            self._hit(result, "lowAmplitudePeaks", len(bad))
            candidates = remove_candidates(candidates, bad)

            bad = inconsistent_peaks(candidates, cfg.max_delta_amplitude_notches)
            self._hit(result, "inconsistentPeaks", len(bad))
            candidates = remove_candidates(candidates, bad)

            # rising/falling slurs must be known before unrelated slurs go
            candidates = relabel_slurs(candidates)

            bad = unrelated_slurs(candidates)
            self._hit(result, "unrelatedSlure", len(bad))
            candidates = remove_candidates(candidates, bad)

            candidates, merged = merging_candidates(twave, candidates, cfg.min_amplitude_flatness)
            self._hit(result, "meargingCandidates", len(merged) // 2)

            bad = slur_classifier(candidates, self.thresholds)
            self._hit(result, "slurClassifier", len(bad))
            candidates = remove_candidates(candidates, bad)

            extra = keep_just_two_peaks(candidates)
            self._hit(result, "keepJustTwoPeaks", len(extra))
            candidates = relabel_candidates(candidates, extra, CandidateLabel.PEAK_UNRELATED)

            slured = convert_peak_to_slur(twave, candidates, cfg.min_valid_amplitude_peak)
            self._hit(result, "convertPeakToSlur", len(slured))
            candidates = relabel_candidates(candidates, slured, CandidateLabel.SLURED_PEAK)

            result.non_measurable = non_measurable_signal(candidates, cfg.measurable)
            self._hit(result, "non-measurable", 1 if result.non_measurable else 0)

            peaks = peak_candidates(candidates)
            if peaks:
                first, last = candidates[0], candidates[-1]
                result.on = (
                    round_half_away(point_start - first.b0 / first.a0) if first.a0 != 0 else -1
                )
                result.off = (
                    round_half_away(point_start - last.b1 / last.a1) if last.a1 != 0 else -1
                )
                result.last_candidate = int(point_start + last.x)
                for i in peaks:
                    c = candidates[i]
                    result.peak.append(int(point_start + c.x))
                    result.flatness.append(float(c.flatness_samples))
                    result.distortion.append(float(c.distortion))
                    result.skewness.append(float(c.skewness))
        except Exception as e:
            logging.error("Could not delineate T wave (point_start=%s): %s", point_start, e)
            raise

        if self.verbose:
            logging.info(
                "T wave: on=%s peak=%s off=%s (%d candidates)",
                result.on, result.peak, result.off, len(candidates),
            )
        if self.plot:
            from pytwave.plots import plot_twave_delineation
            plot_twave_delineation(twave, result, point_start=point_start)
        return result

    def readjust_toff(
        self,
        wave: np.ndarray,
        result: DelineationResult,
        rr: float,
        rpeak: float,
    ) -> float:
        """Energy/cost refinement of ``result.off`` over the full lead (-1 when not possible)."""
        try:
            return readjust_toff(wave, result, rr, rpeak, verbose=self.verbose)
        except Exception as e:
            logging.error("Could not refine Toff (off=%s): %s", result.off, e)
            raise

    # ----- record level -----
    def _qrs_offset(self, annotations: pd.DataFrame) -> int:
        glob = get_annotations(annotations, AnnotationType.QOFF, GLOBAL_LEAD)
        if glob.size == 1:
            return int(glob[0])
        offs = get_annotations(annotations, AnnotationType.QOFF)
        if offs.size == 0:
            raise ValueError("No QRS offset (QOFF) annotation to seed the T segment.")
        return int(np.mean(offs))

    def _r_peak(self, record: ECGRecord, annotations: pd.DataFrame) -> int:
        glob = get_annotations(annotations, AnnotationType.RPEAK, GLOBAL_LEAD)
        if glob.size == 1:
            return int(glob[0])
        peaks = get_annotations(annotations, AnnotationType.RPEAK)
        if peaks.size:
            return int(np.mean(peaks))
        if record.has_property("precut"):
            return int(record.nsamples - record.get_property("precut"))
        return DEFAULT_RPEAK

    @staticmethod
    def _rr(record: ECGRecord) -> float:
        if record.has_property("meanrr"):
            return record.get_property("meanrr")
        if record.has_property("precut"):
            return record.nsamples - record.get_property("precut")
        return DEFAULT_RR_FRACTION * record.nsamples

    def delineate_record(
        self,
        record: ECGRecord,
        annotations: pd.DataFrame,
    ) -> Tuple[pd.DataFrame, DelineationResult]:
        """
        Delineate the T wave of a record and write TON/TPEAK/TPPEAK/TOFF.

        Parameters
        ----------
        record : ECGRecord
            Must be sampled at ``cfg.required_sampling_rate`` and hold ``cfg.lead``.
        annotations : pd.DataFrame
            Existing annotations; needs at least one QOFF (global or per lead).

        Returns
        -------
        pd.DataFrame
            New annotation frame; previous T-wave points of the lead are replaced.
        DelineationResult
            Delineation with ``off`` set to the refined offset when one was found.

        Raises
        ------
        ValueError
            Wrong sampling rate, missing lead or missing QRS offset.
        """
        cfg = self.cfg
        if record.fs != cfg.required_sampling_rate:
            raise ValueError(f"frequency should be {cfg.required_sampling_rate:g}Hz (got {record.fs:g}Hz)")

        lead_idx = int(lead_from_name(cfg.lead))
        signal = record.lead(cfg.lead) * cfg.amplitude_scale
        if cfg.apply_filter:
            signal = lowpass_filter(signal, record.fs, cfg.filter_high_cutoff, cfg.filter_order)

        seed_off = self._qrs_offset(annotations)
        rpeak = self._r_peak(record, annotations)
        rr = self._rr(record)

        point_start = seed_off + cfg.j_point_offset
        point_end = point_start + int(rr * cfg.approximate_range_of_tsegment)
        if point_end >= record.nsamples:
            point_end = record.nsamples - 1
        if self.verbose:
            print(f"[Record]: qoff={seed_off} rpeak={rpeak} rr={rr:g} T segment=[{point_start}, {point_end}]")

        result = self.delineate(signal[point_start: point_end + 1], point_start)
        toff_new = self.readjust_toff(signal, result, rr, rpeak)

        old = np.concatenate([get_annotations(annotations, t, lead_idx) for t in T_WAVE_TYPES])
        out = erase_annotations(annotations, lead_idx, old)

        if result.has_delineation:
            result.rules_hit["toff_maxslope"] = int(result.off)
            toff = 0 if toff_new == -1 else int(toff_new)

            lead_qoff = get_annotations(annotations, AnnotationType.QOFF, lead_idx)
            qoff = int(lead_qoff[0]) if lead_qoff.size == 1 else -1
            if result.on == qoff and result.on > 0:
                out = add_annotation(out, result.on + 1, AnnotationType.TON, lead_idx)
            elif result.on > qoff and result.on > 0:
                out = add_annotation(out, result.on, AnnotationType.TON, lead_idx)

            if toff != 0 and toff < point_start + rr * cfg.approximate_boundary_of_toff:
                out = add_annotation(out, toff, AnnotationType.TOFF, lead_idx)
            if toff != 0:
                result.off = toff

            out = add_annotation(out, result.peak[0], AnnotationType.TPEAK, lead_idx)
            if result.second_peak is not None:
                out = add_annotation(out, result.second_peak, AnnotationType.TPPEAK, lead_idx)
            result.rules_hit["hasDelineators"] = 1
        else:
            result.rules_hit["hasDelineators"] = 0

        return out, result

    def delineate_records(
        self,
        items: Iterable[Tuple[ECGRecord, pd.DataFrame]],
    ) -> List[Tuple[pd.DataFrame, DelineationResult]]:
        """Run `delineate_record` on independent (record, annotations) pairs."""
        return [self.delineate_record(record, anns) for record, anns in items]
