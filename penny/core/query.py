"""
Query data model
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

from .errors import InvalidRequestError


DEFAULT_QUERY_TYPE = "cost_report"


class QueryState(Enum):
    """Execution state as observed from the query engine"""
    SUBMITTED = "SUBMITTED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (QueryState.SUCCEEDED, QueryState.FAILED, QueryState.CANCELLED)


@dataclass(frozen=True)
class QueryRequest:
    """
    One query to run, built from the scheduler's trigger input

    Attributes:
        sql: SQL query string
        database: Target database name
        output_location: Storage location for engine result artifacts
        query_name: Logical name, used in subjects and attachment names
        query_type: Tag selecting the report profile
    """
    sql: str
    database: str
    output_location: str
    query_name: str
    query_type: str = DEFAULT_QUERY_TYPE

    @classmethod
    def from_event(cls, event: Dict[str, Any]) -> "QueryRequest":
        """
        Build a request from an invocation event

        Accepts both snake_case keys and the CamelCase keys used by the
        scheduled rule payload (QueryString, Database, OutputLocation,
        QueryName, QueryType).

        Raises:
            InvalidRequestError: if a required field is missing or blank
        """
        aliases = {
            'sql': ('sql', 'query', 'QueryString'),
            'database': ('database', 'Database'),
            'output_location': ('output_location', 'OutputLocation'),
            'query_name': ('query_name', 'QueryName'),
            'query_type': ('query_type', 'QueryType'),
        }

        values = {}
        for name, keys in aliases.items():
            for key in keys:
                if event.get(key):
                    values[name] = str(event[key]).strip()
                    break

        missing = [name for name in ('sql', 'database', 'output_location', 'query_name')
                   if not values.get(name)]
        if missing:
            raise InvalidRequestError(f"Invocation input is missing: {', '.join(missing)}")

        return cls(**values)


@dataclass(frozen=True)
class QueryStatus:
    """Snapshot returned by one status check"""
    state: QueryState
    reason: Optional[str] = None
    statistics: Dict[str, Any] = field(default_factory=dict)


@dataclass
class QueryExecution:
    """
    Handle on one submitted query

    Only the QueryExecutor mutates it, from status checks.
    """
    execution_id: str
    started_at: float
    state: QueryState = QueryState.SUBMITTED
    reason: Optional[str] = None
    status_checks: int = 0
    statistics: Dict[str, Any] = field(default_factory=dict)

    def observe(self, status: QueryStatus) -> bool:
        """Record a status check, returns True if the state changed"""
        self.status_checks += 1
        changed = status.state is not self.state
        self.state = status.state
        self.reason = status.reason
        if status.statistics:
            self.statistics = dict(status.statistics)
        return changed
