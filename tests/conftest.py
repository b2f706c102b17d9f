"""
Pytest configuration and shared fixtures for pytwave tests.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from pytwave.ecg import AnnotationType, ECGLead, ECGRecord, GLOBAL_LEAD, make_annotations
from pytwave.processing.candidate import Candidate, CandidateLabel


def gaussian_wave(n_samples: int, center: float, amplitude: float = 300.0, width: float = 30.0) -> np.ndarray:
    """Smooth single-peaked wave, amplitude in µV."""
    t = np.arange(n_samples, dtype=float)
    return amplitude * np.exp(-((t - center) ** 2) / (2 * width ** 2))


@pytest.fixture
def sampling_rate() -> float:
    """Sampling rate required by the delineator (1000 Hz)."""
    return 1000.0


@pytest.fixture
def bell_twave() -> np.ndarray:
    """
    300-sample T segment with a single 300 µV Gaussian peak at sample 150.

    The derivative peaks at about ±6.06 µV/sample around samples 120 and 180.
    """
    return gaussian_wave(300, center=150.0)


def notched_wave(n_samples: int, first: float, second: float) -> np.ndarray:
    """Two narrow Gaussians (300 and 280 µV, width 20) with a deep valley between them."""
    return (
        gaussian_wave(n_samples, first, amplitude=300.0, width=20.0)
        + gaussian_wave(n_samples, second, amplitude=280.0, width=20.0)
    )


@pytest.fixture
def notched_twave() -> np.ndarray:
    """
    300-sample notched T segment peaking at samples 150 and 230.

    The peaks differ by 20 µV and the valley at sample 190 drops to about 78 µV.
    """
    return notched_wave(300, 150.0, 230.0)


@pytest.fixture
def notched_vcg_record(sampling_rate: float) -> ECGRecord:
    """`vcg_record` with a notched T wave peaking at samples 300 and 380."""
    return ECGRecord(
        data=pd.DataFrame({"VCGMAG": notched_wave(1000, 300.0, 380.0)}),
        fs=sampling_rate,
        properties={"meanrr": 800},
    )


@pytest.fixture
def monotonic_wave() -> np.ndarray:
    """Straight ramp: no derivative crossing, hence no candidate."""
    return np.arange(50, dtype=float) * 2.0


@pytest.fixture
def vcg_record(sampling_rate: float) -> ECGRecord:
    """
    One-second VCG magnitude record with a T wave peaking at sample 300.

    With QOFF at 100 and meanrr of 800 samples the T segment is [125, 445].
    """
    signal = gaussian_wave(1000, center=300.0)
    return ECGRecord(
        data=pd.DataFrame({"VCGMAG": signal}),
        fs=sampling_rate,
        properties={"meanrr": 800},
    )


@pytest.fixture
def vcg_annotations() -> pd.DataFrame:
    """Global QRS offset and R peak for `vcg_record`."""
    return make_annotations([
        (50, AnnotationType.RPEAK, GLOBAL_LEAD),
        (100, AnnotationType.QOFF, GLOBAL_LEAD),
    ])


@pytest.fixture
def stale_t_annotations(vcg_annotations: pd.DataFrame) -> pd.DataFrame:
    """Annotations carrying an old TPEAK and TOFF on the VCG lead."""
    return make_annotations(
        list(vcg_annotations.itertuples(index=False, name=None))
        + [
            (500, AnnotationType.TPEAK, ECGLead.VCGMAG),
            (650, AnnotationType.TOFF, ECGLead.VCGMAG),
        ]
    )


def make_candidate(
    x: int,
    y: float,
    rising=(0, 0),
    crange=(0, 0),
    label=CandidateLabel.PEAK,
    **kwargs,
) -> Candidate:
    """Hand-built candidate for rule tests."""
    return Candidate(rising_range=rising, candidate_range=crange, label=label, x=x, y=y, **kwargs)


@pytest.fixture
def candidate_factory():
    """Access to `make_candidate` from tests."""
    return make_candidate
