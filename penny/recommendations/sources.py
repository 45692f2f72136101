"""
Recommendation sources

Each source reads optimization opportunities from one place and raises
DegradedFetchError for any failure to do so.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
from botocore.exceptions import BotoCoreError, ClientError

from ..aws import create_client
from ..core import Recommendation, DegradedFetchError


logger = logging.getLogger(__name__)

Scope = Dict[str, List[str]]


def parse_recommendations(payload: Any) -> List[Recommendation]:
    """
    Parse a JSON payload of recommendations

    Accepts a list of items or {"recommendations": [...]}. Each item needs
    a category and an amount; the savings key may be spelled 'amount',
    'estimated_monthly_savings' or 'estimatedMonthlySavings'.

    Raises:
        DegradedFetchError: if the payload does not have that shape
    """
    if isinstance(payload, dict):
        payload = payload.get('recommendations')
    if not isinstance(payload, list):
        raise DegradedFetchError("Recommendation payload is not a list")

    recommendations = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise DegradedFetchError(f"Recommendation {index} is not an object")
        amount = item.get('amount', item.get('estimated_monthly_savings', item.get('estimatedMonthlySavings')))
        category = item.get('category', item.get('service'))
        if category is None or amount is None:
            raise DegradedFetchError(f"Recommendation {index} is missing category or amount")
        try:
            amount = float(amount)
        except (TypeError, ValueError) as e:
            raise DegradedFetchError(f"Recommendation {index} has a non-numeric amount {amount!r}") from e
        if not math.isfinite(amount):
            raise DegradedFetchError(f"Recommendation {index} has a non-finite amount {amount!r}")
        recommendations.append(Recommendation(str(category), amount, str(item.get('description', ''))))

    return recommendations


class BaseRecommendationSource(ABC):
    """Read-only source of recommendations"""

    name = "source"

    @abstractmethod
    async def list_recommendations(self, scope: Scope) -> List[Recommendation]:
        """
        List recommendations

        Args:
            scope: Filters such as {'account_ids': [...], 'regions': [...]}

        Returns:
            Recommendations, possibly empty
        """
        pass


class NoRecommendationSource(BaseRecommendationSource):
    """Used when no source is configured"""

    name = "none"

    async def list_recommendations(self, scope: Scope) -> List[Recommendation]:
        return []


class StaticRecommendationSource(BaseRecommendationSource):
    """Recommendations listed in configuration"""

    name = "static"

    def __init__(self, items: Iterable[Recommendation]):
        self.items = list(items)

    async def list_recommendations(self, scope: Scope) -> List[Recommendation]:
        return list(self.items)


class HttpRecommendationSource(BaseRecommendationSource):
    """
    Recommendations served as JSON over HTTP

    Scope filters are sent as comma separated query parameters.
    """

    name = "http"

    def __init__(self, url: str, timeout_seconds: float = 10.0):
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def list_recommendations(self, scope: Scope) -> List[Recommendation]:
        params = {key: ','.join(values) for key, values in scope.items()}
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.url, params=params) as response:
                    response.raise_for_status()
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DegradedFetchError(f"GET {self.url} failed: {e!r}") from e

        return parse_recommendations(payload)


class CostOptimizationHubSource(BaseRecommendationSource):
    """
    AWS Cost Optimization Hub

    Uses the ListRecommendations paginator. The API is served from us-east-1.
    """

    name = "cost_optimization_hub"

    def __init__(self, client=None, region: str = "us-east-1"):
        self.client = client or create_client('cost-optimization-hub', region)

    async def list_recommendations(self, scope: Scope) -> List[Recommendation]:
        request_filter = {}
        if scope.get('account_ids'):
            request_filter['accountIds'] = list(scope['account_ids'])
        if scope.get('regions'):
            request_filter['regions'] = list(scope['regions'])

        params = {}
        if request_filter:
            params['filter'] = request_filter

        recommendations = []
        try:
            paginator = self.client.get_paginator('list_recommendations')
            for page in paginator.paginate(**params):
                for item in page.get('items', []):
                    recommendations.append(self._to_recommendation(item))
        except (ClientError, BotoCoreError, TypeError, ValueError) as e:
            raise DegradedFetchError(f"Cost Optimization Hub: {e}") from e

        return recommendations

    @staticmethod
    def _to_recommendation(item: Dict[str, Any]) -> Recommendation:
        action = item.get('actionType', 'Optimize')
        resource = item.get('resourceId') or item.get('resourceArn', '')
        summary: Optional[str] = item.get('recommendedResourceSummary')
        description = f"{action} {resource}".strip()
        if summary:
            description = f"{description} ({summary})"
        amount = float(item.get('estimatedMonthlySavings', 0.0))
        if not math.isfinite(amount):
            raise ValueError(f"non-finite estimatedMonthlySavings {amount!r} for {resource or 'resource'}")
        return Recommendation(
            category=item.get('currentResourceType', 'Unknown'),
            amount=amount,
            description=description,
        )
