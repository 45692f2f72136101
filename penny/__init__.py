"""
Scheduled cloud billing reports: Athena query, recommendations, metrics, email
"""

from .core import (
    QueryRequest, QueryState, QueryExecution, ResultSet, InvocationResult,
    BillingRecord, Recommendation, CostReport, PennyError,
)
from .config import Config, PipelineConfig
from .retry import BackoffPolicy, Deadline, Retrier
from .executors import BaseQueryEngine, AthenaQueryEngine, DuckDBQueryEngine, QueryExecutor
from .decoder import ResultSetDecoder
from .recommendations import RecommendationFetcher
from .metrics import MetricsEngine
from .report import ReportRenderer, ReportDocument
from .notifier import Notifier, SendOutcome, SendStatus
from .pipeline import ReportPipeline

__version__ = "0.1.0"

__all__ = [
    'QueryRequest', 'QueryState', 'QueryExecution', 'ResultSet', 'InvocationResult',
    'BillingRecord', 'Recommendation', 'CostReport', 'PennyError',
    'Config', 'PipelineConfig',
    'BackoffPolicy', 'Deadline', 'Retrier',
    'BaseQueryEngine', 'AthenaQueryEngine', 'DuckDBQueryEngine', 'QueryExecutor',
    'ResultSetDecoder', 'RecommendationFetcher', 'MetricsEngine',
    'ReportRenderer', 'ReportDocument',
    'Notifier', 'SendOutcome', 'SendStatus',
    'ReportPipeline',
]
