import pytest

from penny.config import PollSettings
from penny.core import QueryFailedError, QueryRequest, QueryState
from penny.executors import DuckDBQueryEngine, QueryExecutor
from penny.retry import Deadline


SETUP = [
    "CREATE TABLE billing (service VARCHAR, cost DOUBLE)",
    "INSERT INTO billing VALUES ('EC2', 1000.0), ('S3', 200.5), ('RDS', NULL)",
]


def make_request(sql):
    return QueryRequest(sql=sql, database="local", output_location="local://", query_name="local")


@pytest.mark.asyncio
async def test_successful_query_is_terminal_on_first_check():
    engine = DuckDBQueryEngine(setup_sql=SETUP)

    execution_id = await engine.submit(make_request("SELECT service, cost FROM billing ORDER BY cost DESC NULLS LAST"))
    status = await engine.get_status(execution_id)
    page = await engine.get_results(execution_id)

    assert status.state is QueryState.SUCCEEDED
    assert status.statistics == {'Rows': 3}
    assert page.rows == [['service', 'cost'], ['EC2', '1000.0'], ['S3', '200.5'], ['RDS', '']]
    assert page.next_token is None


@pytest.mark.asyncio
async def test_sql_error_is_reported_as_failed_state():
    engine = DuckDBQueryEngine(setup_sql=SETUP)

    execution_id = await engine.submit(make_request("SELECT nope FROM billing"))
    status = await engine.get_status(execution_id)

    assert status.state is QueryState.FAILED
    assert 'nope' in status.reason
    with pytest.raises(QueryFailedError):
        await engine.get_results(execution_id)


@pytest.mark.asyncio
async def test_results_are_paged_with_header_on_first_page_only():
    engine = DuckDBQueryEngine(setup_sql=SETUP, page_size=2)

    execution_id = await engine.submit(make_request("SELECT service FROM billing ORDER BY service"))
    first = await engine.get_results(execution_id)
    second = await engine.get_results(execution_id, first.next_token)

    assert first.rows == [['service'], ['EC2']]
    assert second.rows == [['RDS'], ['S3']]
    assert second.next_token is None


@pytest.mark.asyncio
async def test_executor_reads_all_pages_from_local_engine(clock, fast_retry):
    engine = DuckDBQueryEngine(setup_sql=SETUP, page_size=2)
    executor = QueryExecutor(engine, PollSettings(), fast_retry, clock=clock, sleep=clock.sleep)

    result = await executor.submit_and_wait(
        make_request("SELECT service FROM billing ORDER BY service"), Deadline.after(60, clock))

    assert result.rows == (('service',), ('EC2',), ('RDS',), ('S3',))
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_unknown_execution_id_fails():
    engine = DuckDBQueryEngine()

    with pytest.raises(QueryFailedError):
        await engine.get_status('missing')
