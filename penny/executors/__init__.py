"""
Query engines and the executor that drives them
"""

from .base import BaseQueryEngine
from .athena import AthenaQueryEngine
from .local import DuckDBQueryEngine
from .query_executor import QueryExecutor, Phase

__all__ = ['BaseQueryEngine', 'AthenaQueryEngine', 'DuckDBQueryEngine', 'QueryExecutor', 'Phase']
