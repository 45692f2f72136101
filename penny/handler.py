"""
AWS Lambda entry point

Event format (from the scheduled rule):
{
    "query_name": "daily_cost_by_service",
    "query_type": "cost_report",
    "sql": "SELECT ...",
    "database": "cur_database",
    "output_location": "s3://bucket/athena-results/",
    "config": {"recipients": ["finops@example.com"]}     # optional overrides
}
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .config import Config, PipelineConfig
from .core import InvocationResult, PennyError, QueryRequest
from .logs import configure_logging
from .pipeline import ReportPipeline
from .retry import Clock, Deadline


logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = 'PENNY_CONFIG_DIR'
DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent.parent / 'config'


def load_config(event: Dict[str, Any], config_dir: Optional[str] = None) -> PipelineConfig:
    """
    Load the pipeline configuration for an invocation

    Files come from `config_dir`, else $PENNY_CONFIG_DIR, else the bundled
    config/ directory. The event's "config" mapping is merged on top.
    """
    config_dir = config_dir or os.environ.get(CONFIG_DIR_ENV) or DEFAULT_CONFIG_DIR
    return Config(str(config_dir)).pipeline(event.get('config'))


def invocation_deadline(context: Any, config: PipelineConfig, clock: Clock = time.monotonic) -> Deadline:
    """
    Deadline for this invocation

    Inside Lambda: remaining execution time minus the configured margin.
    Elsewhere: config.timeout_seconds.
    """
    if context is not None and hasattr(context, 'get_remaining_time_in_millis'):
        seconds = context.get_remaining_time_in_millis() / 1000.0 - config.deadline_margin_seconds
    else:
        seconds = config.timeout_seconds
    return Deadline.after(max(seconds, 0.0), clock)


def lambda_handler(event: Dict[str, Any], context: Any,
                   pipeline_factory: Callable[[PipelineConfig], ReportPipeline] = ReportPipeline.from_config
                   ) -> Dict[str, Any]:
    """
    AWS Lambda handler function

    Args:
        event: Invocation event
        context: Lambda context
        pipeline_factory: Builds the pipeline from configuration

    Returns:
        {"status": "success" | "failure", "message": ..., ...}
    """
    try:
        config = load_config(event)
        configure_logging(config.log_level)
        request = QueryRequest.from_event(event)
        pipeline = pipeline_factory(config)
    except PennyError as e:
        logger.error("[Handler] Invocation rejected (%s): %s", e.kind, e)
        return InvocationResult.failure(str(e), e.kind).to_dict()

    result = asyncio.run(pipeline.run(request, invocation_deadline(context, config)))
    return result.to_dict()
