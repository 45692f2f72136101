"""
Recommendation sources and fetcher
"""

from .sources import (
    BaseRecommendationSource, NoRecommendationSource, StaticRecommendationSource,
    HttpRecommendationSource, CostOptimizationHubSource, parse_recommendations,
)
from .fetcher import RecommendationFetcher, create_source

__all__ = ['BaseRecommendationSource', 'NoRecommendationSource', 'StaticRecommendationSource',
           'HttpRecommendationSource', 'CostOptimizationHubSource', 'parse_recommendations',
           'RecommendationFetcher', 'create_source']
