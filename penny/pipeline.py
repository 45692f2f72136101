"""
Report pipeline

One invocation: run the billing query, decode it, fetch recommendations,
build the metrics, render the report and email it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from .config import PipelineConfig
from .core import (
    CostReport, InvocationResult, QueryRequest, ResultSet,
    ConfigError, DegradedFetchError, PennyError, RetriesExhaustedError, NotificationRejected,
)
from .decoder import ResultSetDecoder
from .executors import AthenaQueryEngine, BaseQueryEngine, QueryExecutor
from .metrics import MetricsEngine
from .notifier import Notifier, SendStatus
from .recommendations import BaseRecommendationSource, RecommendationFetcher, create_source
from .report import ReportDocument, ReportRenderer
from .retry import Clock, Deadline, Sleep


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuiltReport:
    """Everything produced before sending"""
    result_set: ResultSet
    report: CostReport
    document: ReportDocument


class ReportPipeline:
    """
    Main pipeline class

    Coordinates executor, decoder, fetcher, metrics, renderer and notifier.
    Only a degraded recommendation fetch is absorbed; any other PennyError
    ends the invocation with a failure result and nothing is sent.
    """

    def __init__(self, config: PipelineConfig, engine: BaseQueryEngine,
                 recommendation_source: BaseRecommendationSource,
                 notifier: Optional[Notifier] = None,
                 clock: Clock = time.monotonic, sleep: Sleep = asyncio.sleep,
                 today: Callable[[], date] = date.today):
        """
        Initialize pipeline

        Args:
            config: Pipeline configuration
            engine: Query engine
            recommendation_source: Source for the recommendation feed
            notifier: Email notifier, required by run()
            clock: Monotonic time source
            sleep: Coroutine used for every wait
            today: Report date source
        """
        self.config = config
        self.engine = engine
        self.fetcher = RecommendationFetcher(recommendation_source)
        self.notifier = notifier
        self.clock = clock
        self.sleep = sleep
        self.today = today

    @classmethod
    def from_config(cls, config: PipelineConfig, engine: Optional[BaseQueryEngine] = None,
                    send: bool = True) -> "ReportPipeline":
        """
        Build a pipeline against AWS

        Args:
            config: Pipeline configuration
            engine: Query engine (Athena in config.region if None)
            send: Whether a notifier is needed

        Raises:
            ConfigError: if sending is requested without sender/recipients
        """
        if engine is None:
            engine = AthenaQueryEngine(region=config.region, workgroup=config.workgroup,
                                       page_size=config.result_page_size)

        notifier = None
        if send:
            config.validate_email()
            notifier = Notifier(config.sender, region=config.region, retry=config.retry)

        return cls(config, engine, create_source(config.recommendations), notifier=notifier)

    def deadline(self, seconds: Optional[float] = None) -> Deadline:
        """Deadline `seconds` from now, config.timeout_seconds by default"""
        return Deadline.after(seconds if seconds is not None else self.config.timeout_seconds, self.clock)

    async def build(self, request: QueryRequest, deadline: Deadline) -> BuiltReport:
        """
        Run the query and render the report without sending it

        Raises:
            PennyError: for any failure except a degraded recommendation fetch
        """
        settings = self.config.report_settings(request.query_type)
        executor = QueryExecutor(self.engine, self.config.poll, self.config.retry,
                                 clock=self.clock, sleep=self.sleep)
        decoder = ResultSetDecoder(settings.category_column, settings.amount_column)

        result_set = await executor.submit_and_wait(request, deadline)
        records = decoder.billing_records(decoder.decode(result_set))

        recommendations = []
        partial_reason = None
        if records:
            try:
                recommendations = await self.fetcher.fetch(self.config.recommendations.scope)
            except DegradedFetchError as e:
                partial_reason = str(e)
                logger.warning("[Pipeline] Continuing without recommendations: %s", e)

        report = MetricsEngine(settings).build_report(
            records, recommendations,
            query_name=request.query_name,
            as_of=self.today(),
            partial=partial_reason is not None,
            partial_reason=partial_reason,
        )
        document = ReportRenderer(self.config.subject_prefix).render(report, raw_rows=result_set.rows)

        logger.info("[Pipeline] Report for %s: %d records, spend %.2f, savings %.2f, grade %s%s",
                    request.query_name, report.record_count, report.total_spend,
                    report.total_savings, report.grade, " (partial)" if report.partial else "")
        return BuiltReport(result_set=result_set, report=report, document=document)

    async def run(self, request: QueryRequest, deadline: Optional[Deadline] = None) -> InvocationResult:
        """
        Run one invocation end to end

        Args:
            request: Query to run
            deadline: Invocation deadline (config.timeout_seconds from now if None)

        Returns:
            InvocationResult; failures carry the error kind and cause
        """
        deadline = deadline or self.deadline()
        logger.info("[Pipeline] Starting %s (%s), %s", request.query_name, request.query_type, deadline)

        try:
            if self.notifier is None:
                raise ConfigError("No notifier configured; build the pipeline with send=True")

            built = await self.build(request, deadline)
            outcome = await self.notifier.send(built.document, self.config.recipients, deadline=deadline)

            if outcome.status is SendStatus.REJECTED:
                raise NotificationRejected(outcome.reason)
            if outcome.status is SendStatus.TRANSIENT_FAILURE:
                logger.error("[Pipeline] %s failed: %s", request.query_name, outcome.reason)
                return InvocationResult.failure(outcome.reason, RetriesExhaustedError.kind,
                                                query_name=request.query_name)

        except PennyError as e:
            return self._failure(request, e)

        report = built.report
        message = (f"Report '{request.query_name}' sent to {len(self.config.recipients)} recipients"
                   if report.has_data else
                   f"No billing data for '{request.query_name}'; no-data report sent")
        logger.info("[Pipeline] %s", message)

        return InvocationResult.success(
            message,
            query_name=request.query_name,
            execution_id=built.result_set.execution_id,
            message_id=outcome.message_id,
            rows=len(built.result_set),
            partial=report.partial,
            grade=report.grade if report.has_data else None,
        )

    def _failure(self, request: QueryRequest, error: PennyError) -> InvocationResult:
        logger.error("[Pipeline] %s failed (%s): %s", request.query_name, error.kind, error)
        return InvocationResult.failure(str(error), error.kind, query_name=request.query_name)
