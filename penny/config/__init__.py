"""
Configuration
"""

from .config import (
    Config, PipelineConfig, PollSettings, ReportSettings, RecommendationSettings,
    GradeBand, UnitPrice, DEFAULT_GRADE_THRESHOLDS, DEFAULT_UNIT_CONVERSIONS, deep_merge,
)

__all__ = ['Config', 'PipelineConfig', 'PollSettings', 'ReportSettings', 'RecommendationSettings',
           'GradeBand', 'UnitPrice', 'DEFAULT_GRADE_THRESHOLDS', 'DEFAULT_UNIT_CONVERSIONS', 'deep_merge']
