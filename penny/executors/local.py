"""
Local DuckDB query engine

Runs the query in-process and serves the results through the same
submit / status / paged results contract as Athena. Used for dry runs
against exported billing data and in tests.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import duckdb

from .base import BaseQueryEngine
from ..core import QueryRequest, QueryState, QueryStatus, ResultPage, QueryFailedError


logger = logging.getLogger(__name__)


@dataclass
class _LocalExecution:
    state: QueryState
    rows: List[List[str]]
    reason: Optional[str] = None


def _cell(value) -> str:
    # Athena returns every cell as text and NULL as an empty cell
    return '' if value is None else str(value)


class DuckDBQueryEngine(BaseQueryEngine):
    """
    DuckDB engine

    The query runs to completion inside submit(), so the first status check
    already sees a terminal state. `request.database` and
    `request.output_location` are ignored.
    """

    name = "DuckDB"

    def __init__(self, database: str = ":memory:", setup_sql: Sequence[str] = (),
                 page_size: int = 1000):
        """
        Initialize engine

        Args:
            database: DuckDB database file, or ':memory:'
            setup_sql: Statements run once on connect (e.g. CREATE VIEW over a CSV export)
            page_size: Rows per results page
        """
        self.conn = duckdb.connect(database)
        self.page_size = page_size
        self._executions: Dict[str, _LocalExecution] = {}

        for statement in setup_sql:
            self.conn.execute(statement)

    async def submit(self, request: QueryRequest) -> str:
        execution_id = str(uuid.uuid4())

        try:
            cursor = self.conn.execute(request.sql)
            header = [column[0] for column in cursor.description]
            rows = [header] + [[_cell(value) for value in row] for row in cursor.fetchall()]
            execution = _LocalExecution(QueryState.SUCCEEDED, rows)
        except duckdb.Error as e:
            logger.info("[%s] Query %s failed: %s", self.name, execution_id, e)
            execution = _LocalExecution(QueryState.FAILED, [], reason=str(e))

        self._executions[execution_id] = execution
        return execution_id

    async def get_status(self, execution_id: str) -> QueryStatus:
        execution = self._lookup(execution_id)
        return QueryStatus(
            state=execution.state,
            reason=execution.reason,
            statistics={'Rows': max(len(execution.rows) - 1, 0)},
        )

    async def get_results(self, execution_id: str, page_token: Optional[str] = None) -> ResultPage:
        execution = self._lookup(execution_id)
        if execution.state is not QueryState.SUCCEEDED:
            raise QueryFailedError("Results requested for a query that did not succeed",
                                   execution_id, execution.state.value)

        start = int(page_token) if page_token else 0
        end = start + self.page_size
        next_token = str(end) if end < len(execution.rows) else None
        return ResultPage(rows=execution.rows[start:end], next_token=next_token)

    def close(self):
        self.conn.close()

    def _lookup(self, execution_id: str) -> _LocalExecution:
        if execution_id not in self._executions:
            raise QueryFailedError("Unknown execution id", execution_id)
        return self._executions[execution_id]
