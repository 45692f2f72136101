from typing import List, Optional

import pytest
from botocore.exceptions import ClientError

from penny.config import PipelineConfig
from penny.core import QueryRequest, QueryState, QueryStatus, ResultPage
from penny.executors import BaseQueryEngine
from penny.retry import BackoffPolicy


class FakeClock:
    """Clock and sleep pair; sleeping advances the clock instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedEngine(BaseQueryEngine):
    """
    Engine that replays scripted statuses and pages.

    Items in `statuses` and `submit_errors` may be exceptions, which are raised
    in place of a result. The last status repeats once the script runs out.
    """

    name = "Scripted"

    def __init__(self, statuses, pages=None, submit_errors=(), page_errors=(), reason=None):
        self.statuses = list(statuses)
        self.pages = list(pages or [ResultPage(rows=[['service', 'cost']])])
        self.submit_errors = list(submit_errors)
        self.page_errors = list(page_errors)
        self.reason = reason
        self.submit_calls = 0
        self.status_calls = 0
        self.page_tokens: List[Optional[str]] = []

    async def submit(self, request):
        self.submit_calls += 1
        if self.submit_errors:
            raise self.submit_errors.pop(0)
        return "exec-1"

    async def get_status(self, execution_id):
        self.status_calls += 1
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return QueryStatus(state=item, reason=self.reason if item.is_terminal else None)

    async def get_results(self, execution_id, page_token=None):
        self.page_tokens.append(page_token)
        if self.page_errors:
            raise self.page_errors.pop(0)
        index = int(page_token) if page_token else 0
        return self.pages[index]


class FakeSesClient:
    """Records send_raw_email calls and replays scripted responses."""

    def __init__(self, responses=None):
        self.responses = list(responses or ["msg-1"])
        self.calls = []

    def send_raw_email(self, **kwargs):
        self.calls.append(kwargs)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return {'MessageId': item}


def client_error(code: str, message: str = "error", operation: str = "Operation", status: int = 400):
    return ClientError(
        {'Error': {'Code': code, 'Message': message}, 'ResponseMetadata': {'HTTPStatusCode': status}},
        operation,
    )


def paged(*pages):
    """ResultPages chained with numeric tokens, as ScriptedEngine expects."""
    result = []
    for index, rows in enumerate(pages):
        next_token = str(index + 1) if index + 1 < len(pages) else None
        result.append(ResultPage(rows=rows, next_token=next_token))
    return result


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fast_retry():
    return BackoffPolicy(max_attempts=3, base_delay=0.5, multiplier=2.0, max_delay=4.0, jitter=0.0)


@pytest.fixture
def request_():
    return QueryRequest(
        sql="SELECT service, cost FROM billing",
        database="cur_database",
        output_location="s3://results/",
        query_name="daily_costs",
    )


@pytest.fixture
def pipeline_config():
    return PipelineConfig.from_dict({
        'sender': 'penny@example.com',
        'recipients': ['finops@example.com'],
        'retry': {'max_attempts': 3, 'base_delay': 0.5, 'multiplier': 2.0, 'max_delay': 4.0, 'jitter': 0.0},
        'poll': {'min_interval': 1.0, 'max_interval': 5.0, 'multiplier': 2.0},
        'report': {'unit_conversions': [{'name': 'coffee', 'label': 'cups of coffee', 'unit_price': 5}]},
    })


RUNNING = QueryState.RUNNING
SUCCEEDED = QueryState.SUCCEEDED
FAILED = QueryState.FAILED
CANCELLED = QueryState.CANCELLED
