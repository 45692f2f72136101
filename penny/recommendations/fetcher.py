"""
Recommendation fetcher
"""

import logging
from typing import List, Optional

from .sources import (
    BaseRecommendationSource, CostOptimizationHubSource, HttpRecommendationSource,
    NoRecommendationSource, Scope, StaticRecommendationSource,
)
from ..config import RecommendationSettings
from ..core import Recommendation, DegradedFetchError


logger = logging.getLogger(__name__)


def create_source(settings: RecommendationSettings, client=None) -> BaseRecommendationSource:
    """
    Build the source named in settings

    Args:
        settings: Recommendation settings
        client: Optional boto3 client for the Cost Optimization Hub source
    """
    if settings.source == 'static':
        return StaticRecommendationSource(settings.items)
    if settings.source == 'http':
        return HttpRecommendationSource(settings.url, settings.timeout_seconds)
    if settings.source == 'cost_optimization_hub':
        return CostOptimizationHubSource(client=client, region=settings.region)
    return NoRecommendationSource()


class RecommendationFetcher:
    """
    Reads recommendations from one source

    Failures surface as DegradedFetchError; callers are expected to carry on
    without recommendations.
    """

    def __init__(self, source: BaseRecommendationSource):
        self.source = source

    async def fetch(self, scope: Optional[Scope] = None) -> List[Recommendation]:
        """
        Fetch recommendations for a scope

        Raises:
            DegradedFetchError: the source could not be read
        """
        try:
            recommendations = await self.source.list_recommendations(scope or {})
        except DegradedFetchError as e:
            logger.warning("[RecommendationFetcher] %s source unavailable: %s", self.source.name, e)
            raise

        logger.info("[RecommendationFetcher] %d recommendations from %s source",
                    len(recommendations), self.source.name)
        return recommendations
