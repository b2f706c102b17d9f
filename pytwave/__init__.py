"""
pytwave: T-wave delineation for vector-magnitude ECG leads.

Locates T-wave onset, one or two peaks and offset, together with flatness,
skewness and distortion of each peak.
"""

from .version import __version__

# Core classes
from .config import TWaveDelineatorConfig, parse_feature_thresholds, serialize_feature_thresholds
from .core.delineate import TWaveDelineator
from .ecg import AnnotationType, ECGLead, ECGRecord
from .processing import Candidate, CandidateLabel, DelineationResult

# Submodules
from . import feature
from . import plots
from . import processing

__all__ = [
    # Version
    "__version__",
    # Core
    "TWaveDelineator",
    "TWaveDelineatorConfig",
    "DelineationResult",
    "Candidate",
    "CandidateLabel",
    "ECGRecord",
    "AnnotationType",
    "ECGLead",
    "parse_feature_thresholds",
    "serialize_feature_thresholds",
    # Submodules
    "feature",
    "plots",
    "processing",
]
