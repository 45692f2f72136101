"""
Query executor

Drives one query through submit -> poll -> fetch against a query engine.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import List

from .base import BaseQueryEngine
from ..config import PollSettings
from ..core import (
    QueryRequest, QueryExecution, QueryState, ResultSet,
    QueryFailedError, DeadlineExceeded,
)
from ..retry import BackoffPolicy, Clock, Deadline, Retrier, Sleep


logger = logging.getLogger(__name__)


class Phase(Enum):
    """Executor phase for one query"""
    SUBMITTING = "submitting"
    POLLING = "polling"
    WAITING = "waiting"
    FETCHING = "fetching"
    DONE = "done"


class QueryExecutor:
    """
    Query executor

    Polls are strictly sequential and spaced by PollSettings, never closer
    than poll.min_interval. Transient engine errors on any call are retried
    under the backoff policy. A terminal FAILED or CANCELLED state is raised
    as QueryFailedError and not retried. The remote query is never cancelled;
    running out of time raises DeadlineExceeded.
    """

    def __init__(self, engine: BaseQueryEngine, poll: PollSettings = None,
                 retry: BackoffPolicy = None, clock: Clock = time.monotonic,
                 sleep: Sleep = asyncio.sleep):
        """
        Initialize executor

        Args:
            engine: Query engine to run against
            poll: Status polling interval
            retry: Backoff for transient engine errors
            clock: Monotonic time source
            sleep: Coroutine used for every wait
        """
        self.engine = engine
        self.poll = poll or PollSettings()
        self.clock = clock
        self.sleep = sleep
        self.retrier = Retrier(retry or BackoffPolicy(), sleep=sleep)
        self.phase = Phase.SUBMITTING

    async def submit_and_wait(self, request: QueryRequest, deadline: Deadline) -> ResultSet:
        """
        Run a query to completion and return all of its rows

        Args:
            request: Query to run
            deadline: Time by which the result must be available

        Returns:
            ResultSet with the header row first

        Raises:
            QueryFailedError: engine reported FAILED or CANCELLED
            RetriesExhaustedError: transient errors persisted
            DeadlineExceeded: deadline reached before the result was read
        """
        execution = await self.submit(request, deadline)
        await self.wait_for_completion(execution, deadline)

        if execution.state is not QueryState.SUCCEEDED:
            reason = execution.reason or "no reason reported"
            logger.error("[QueryExecutor] Query %s %s: %s",
                         execution.execution_id, execution.state.value, reason)
            raise QueryFailedError(reason, execution.execution_id, execution.state.value)

        result_set = await self.fetch_results(execution, deadline)
        self.phase = Phase.DONE
        return result_set

    async def submit(self, request: QueryRequest, deadline: Deadline) -> QueryExecution:
        self.phase = Phase.SUBMITTING
        self._check_deadline(deadline, "submitting the query")

        execution_id = await self.retrier.call(
            "submit query", self.engine.submit, request, deadline=deadline
        )
        execution = QueryExecution(execution_id=execution_id, started_at=self.clock())
        logger.info("[QueryExecutor] Query %s submitted to %s: execution id %s",
                    request.query_name, self.engine.name, execution_id)
        return execution

    async def wait_for_completion(self, execution: QueryExecution, deadline: Deadline) -> QueryExecution:
        """
        Poll until the execution reaches a terminal state

        The first status check is issued right after submission, so a query
        that reports RUNNING n times and then SUCCEEDED takes n + 1 checks.
        """
        waits = 0

        while True:
            self.phase = Phase.POLLING
            self._check_deadline(deadline, f"polling {execution.execution_id}")

            status = await self.retrier.call(
                "get query status", self.engine.get_status, execution.execution_id, deadline=deadline
            )
            if execution.observe(status):
                logger.info("[QueryExecutor] Execution %s is %s",
                            execution.execution_id, execution.state.value)

            if execution.state.is_terminal:
                elapsed = self.clock() - execution.started_at
                logger.info("[QueryExecutor] Execution %s finished %s after %d status checks (%.1fs)",
                            execution.execution_id, execution.state.value,
                            execution.status_checks, elapsed)
                return execution

            self.phase = Phase.WAITING
            interval = self.poll.interval(waits)
            if interval >= deadline.remaining():
                raise DeadlineExceeded(
                    f"Query {execution.execution_id} still {execution.state.value} "
                    f"with {deadline.remaining():.1f}s left; stopped waiting"
                )
            await self.sleep(interval)
            waits += 1

    async def fetch_results(self, execution: QueryExecution, deadline: Deadline) -> ResultSet:
        """Read every result page in order; the header comes with the first page"""
        self.phase = Phase.FETCHING
        rows: List[List[str]] = []
        page_token = None
        pages = 0

        while True:
            self._check_deadline(deadline, f"reading results of {execution.execution_id}")
            page = await self.retrier.call(
                "get query results", self.engine.get_results,
                execution.execution_id, page_token, deadline=deadline
            )
            rows.extend(page.rows)
            pages += 1
            page_token = page.next_token
            if not page_token:
                break

        logger.info("[QueryExecutor] Execution %s returned %d rows in %d pages",
                    execution.execution_id, max(len(rows) - 1, 0), pages)
        return ResultSet.from_rows(rows, execution_id=execution.execution_id)

    def _check_deadline(self, deadline: Deadline, activity: str):
        if deadline.expired():
            raise DeadlineExceeded(f"Deadline reached while {activity}")
