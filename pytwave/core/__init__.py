"""T-wave delineator orchestration."""

from .delineate import TWaveDelineator

__all__ = ["TWaveDelineator"]
