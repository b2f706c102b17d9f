"""
Minimal ECG container and lead-scoped annotation tables.

Annotations are kept in a pandas DataFrame with one row per fiducial point:

    location  int   sample index
    type      int   `AnnotationType`
    lead      int   `ECGLead` (``GLOBAL_LEAD`` for record-level points)

At most one annotation exists per (lead, location); adding a point at an
occupied location replaces it. All helpers return new frames.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

ANNOTATION_COLUMNS = ("location", "type", "lead")


class AnnotationType(IntEnum):
    PON = 1
    PPEAK = 2
    POFF = 3
    QON = 4
    QPEAK = 5
    RPEAK = 6
    RPPEAK = 7
    SPEAK = 8
    QOFF = 9
    TON = 10
    TPEAK = 11
    TPPEAK = 12
    TOFF = 13
    UON = 14
    UPEAK = 15
    UOFF = 16
    UNKNOWN = 17


class ECGLead(IntEnum):
    GLOBAL = -1
    UNKNOWN1 = 0
    I = 1
    II = 2
    III = 3
    AVR = 4
    AVL = 5
    AVF = 6
    V1 = 7
    V2 = 8
    V3 = 9
    V4 = 10
    V5 = 11
    V6 = 12
    VCGMAG = 13
    X = 14
    Y = 15
    Z = 16
    UNKNOWN2 = 17


GLOBAL_LEAD = int(ECGLead.GLOBAL)

ANNOTATION_DESCRIPTIONS: Mapping[AnnotationType, str] = MappingProxyType({
    AnnotationType.PON: "P-wave onset",
    AnnotationType.PPEAK: "P-wave peak",
    AnnotationType.POFF: "P-wave offset",
    AnnotationType.QON: "QRS onset",
    AnnotationType.QPEAK: "Q-peak",
    AnnotationType.RPEAK: "R-wave peak",
    AnnotationType.RPPEAK: "R'-wave peak",
    AnnotationType.SPEAK: "S-wave peak",
    AnnotationType.QOFF: "QRS offset",
    AnnotationType.TON: "T-wave onset",
    AnnotationType.TPEAK: "T-wave peak",
    AnnotationType.TPPEAK: "T-wave second peak",
    AnnotationType.TOFF: "T-wave offset",
    AnnotationType.UON: "U-wave onset",
    AnnotationType.UPEAK: "U-wave peak",
    AnnotationType.UOFF: "U-wave offset",
})

LEAD_NAMES: Mapping[ECGLead, str] = MappingProxyType({
    ECGLead.GLOBAL: "Global", ECGLead.UNKNOWN1: "Unknown1",
    ECGLead.I: "I", ECGLead.II: "II", ECGLead.III: "III",
    ECGLead.AVR: "avR", ECGLead.AVL: "avL", ECGLead.AVF: "avF",
    ECGLead.V1: "V1", ECGLead.V2: "V2", ECGLead.V3: "V3",
    ECGLead.V4: "V4", ECGLead.V5: "V5", ECGLead.V6: "V6",
    ECGLead.VCGMAG: "VCGMAG", ECGLead.X: "X", ECGLead.Y: "Y", ECGLead.Z: "Z",
    ECGLead.UNKNOWN2: "Unknown2",
})

LEADS_BY_NAME: Mapping[str, ECGLead] = MappingProxyType(
    {name.upper(): lead for lead, name in LEAD_NAMES.items()}
)


def lead_from_name(name: str) -> ECGLead:
    """Case-insensitive lead lookup (``"vcgmag"`` -> ``ECGLead.VCGMAG``)."""
    try:
        return LEADS_BY_NAME[str(name).upper()]
    except KeyError:
        raise ValueError(f"Unknown lead name: {name}") from None


@dataclass
class ECGRecord:
    """
    ECG samples with one DataFrame column per lead.

    Parameters
    ----------
    data : pd.DataFrame
        Columns are lead names (e.g. ``"VCGMAG"``), rows are samples.
    fs : float
        Sampling rate in Hz.
    properties : dict
        Optional scalars such as ``meanrr`` and ``precut`` (samples).
    """
    data: pd.DataFrame
    fs: float
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def nsamples(self) -> int:
        return int(len(self.data))

    def has_property(self, key: str) -> bool:
        return key in self.properties and self.properties[key] is not None

    def get_property(self, key: str) -> float:
        return float(self.properties[key])

    def lead(self, name: str, start: int = 0, end: Optional[int] = None) -> np.ndarray:
        """Samples ``start..end`` (inclusive) of lead `name`."""
        column = self._column(name)
        stop = self.nsamples - 1 if end is None else end
        return self.data[column].to_numpy(dtype=float)[start: stop + 1]

    def _column(self, name: str) -> str:
        for col in self.data.columns:
            if str(col).upper() == str(name).upper():
                return col
        raise ValueError(f"Lead {name!r} not found in record (have {list(self.data.columns)})")


def empty_annotations() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype="int64") for c in ANNOTATION_COLUMNS})


def make_annotations(rows: Iterable[Tuple[int, int, int]]) -> pd.DataFrame:
    """Annotation frame from ``(location, type, lead)`` tuples; later rows win on conflicts."""
    frame = pd.DataFrame(list(rows), columns=list(ANNOTATION_COLUMNS))
    if frame.empty:
        return empty_annotations()
    frame = frame.astype("int64")
    frame = frame.drop_duplicates(subset=["lead", "location"], keep="last")
    return frame.sort_values(["lead", "location"]).reset_index(drop=True)


def get_annotations(
    annotations: pd.DataFrame,
    ann_type: AnnotationType,
    lead: Optional[int] = None,
) -> np.ndarray:
    """Locations of `ann_type`, restricted to `lead` when given (all leads otherwise)."""
    mask = annotations["type"] == int(ann_type)
    if lead is not None:
        mask &= annotations["lead"] == int(lead)
    return annotations.loc[mask, "location"].to_numpy(dtype=int)


def erase_annotations(annotations: pd.DataFrame, lead: int, locations: Iterable[int]) -> pd.DataFrame:
    """Drop every annotation of `lead` placed at one of `locations`."""
    locs = sorted({int(x) for x in locations})
    mask = (annotations["lead"] == int(lead)) & annotations["location"].isin(locs)
    return annotations.loc[~mask].reset_index(drop=True)


def add_annotation(
    annotations: pd.DataFrame,
    location: int,
    ann_type: AnnotationType,
    lead: int,
) -> pd.DataFrame:
    """Place an annotation, replacing whatever sits at (lead, location)."""
    kept = erase_annotations(annotations, lead, [location])
    row = pd.DataFrame(
        {"location": [int(location)], "type": [int(ann_type)], "lead": [int(lead)]}
    ).astype("int64")
    out = pd.concat([kept, row], ignore_index=True) if len(kept) else row
    return out.sort_values(["lead", "location"]).reset_index(drop=True)
