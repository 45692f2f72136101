"""
Core data models and types
"""

from .query import QueryRequest, QueryState, QueryStatus, QueryExecution, DEFAULT_QUERY_TYPE
from .result import ResultPage, ResultSet, InvocationResult
from .report import BillingRecord, Recommendation, ConvertedUnit, CostReport
from .errors import (
    PennyError, ConfigError, InvalidRequestError, TransientIOError,
    RetriesExhaustedError, QueryFailedError, DecodeError, DegradedFetchError,
    NotificationRejected, DeadlineExceeded,
)

__all__ = ['QueryRequest', 'QueryState', 'QueryStatus', 'QueryExecution', 'DEFAULT_QUERY_TYPE',
           'ResultPage', 'ResultSet', 'InvocationResult',
           'BillingRecord', 'Recommendation', 'ConvertedUnit', 'CostReport',
           'PennyError', 'ConfigError', 'InvalidRequestError', 'TransientIOError',
           'RetriesExhaustedError', 'QueryFailedError', 'DecodeError', 'DegradedFetchError',
           'NotificationRejected', 'DeadlineExceeded']
