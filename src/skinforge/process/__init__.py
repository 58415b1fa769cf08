"""Mesh processing steps that run between import and export."""

from skinforge.process.diagnostics import InfluenceReport, analyze_influences, format_report
from skinforge.process.limit_bone_weights import (
    InfluenceLimiter,
    LimitStats,
    limit_bone_influences,
)

__all__ = [
    "InfluenceLimiter",
    "InfluenceReport",
    "LimitStats",
    "analyze_influences",
    "format_report",
    "limit_bone_influences",
]
