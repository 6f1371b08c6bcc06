"""Feeder performance matrix, compliance classification and category routing."""

from .categories import ANALYSIS_CATEGORIES, AnalysisCategory, route_feeder
from .compliance import classify_feeder
from .date_range import expand_date_range
from .matrix import FeederProfile, ReadingPoint, build_matrix

__all__ = [
    "ANALYSIS_CATEGORIES",
    "AnalysisCategory",
    "FeederProfile",
    "ReadingPoint",
    "build_matrix",
    "classify_feeder",
    "expand_date_range",
    "route_feeder",
]
