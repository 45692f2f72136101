from unittest.mock import Mock

import pytest
from botocore.exceptions import EndpointConnectionError

from penny.core import QueryFailedError, QueryState, TransientIOError
from penny.executors import AthenaQueryEngine

from conftest import client_error


@pytest.fixture
def athena_client():
    client = Mock()
    client.start_query_execution.return_value = {'QueryExecutionId': 'abc-123'}
    return client


def make_engine(client, **kwargs):
    return AthenaQueryEngine(athena_client=client, **kwargs)


@pytest.mark.asyncio
async def test_submit_passes_database_location_and_workgroup(athena_client, request_):
    engine = make_engine(athena_client, workgroup='finops')

    execution_id = await engine.submit(request_)

    assert execution_id == 'abc-123'
    athena_client.start_query_execution.assert_called_once_with(
        QueryString=request_.sql,
        QueryExecutionContext={'Database': 'cur_database'},
        ResultConfiguration={'OutputLocation': 's3://results/'},
        WorkGroup='finops',
    )


@pytest.mark.asyncio
async def test_submit_without_workgroup_omits_it(athena_client, request_):
    await make_engine(athena_client).submit(request_)

    assert 'WorkGroup' not in athena_client.start_query_execution.call_args.kwargs


@pytest.mark.asyncio
@pytest.mark.parametrize("athena_state,expected", [
    ('QUEUED', QueryState.SUBMITTED),
    ('RUNNING', QueryState.RUNNING),
    ('SUCCEEDED', QueryState.SUCCEEDED),
    ('FAILED', QueryState.FAILED),
    ('CANCELLED', QueryState.CANCELLED),
])
async def test_status_maps_athena_states(athena_client, athena_state, expected):
    athena_client.get_query_execution.return_value = {
        'QueryExecution': {
            'Status': {'State': athena_state, 'StateChangeReason': 'reason text'},
            'Statistics': {'DataScannedInBytes': 1024},
        }
    }

    status = await make_engine(athena_client).get_status('abc-123')

    assert status.state is expected
    assert status.reason == 'reason text'
    assert status.statistics == {'DataScannedInBytes': 1024}


@pytest.mark.asyncio
async def test_results_page_reads_cells_and_token(athena_client):
    athena_client.get_query_results.return_value = {
        'ResultSet': {'Rows': [
            {'Data': [{'VarCharValue': 'service'}, {'VarCharValue': 'cost'}]},
            {'Data': [{'VarCharValue': 'EC2'}, {}]},
        ]},
        'NextToken': 'token-2',
    }

    page = await make_engine(athena_client, page_size=5000).get_results('abc-123')

    assert page.rows == [['service', 'cost'], ['EC2', '']]
    assert page.next_token == 'token-2'
    athena_client.get_query_results.assert_called_once_with(QueryExecutionId='abc-123', MaxResults=1000)


@pytest.mark.asyncio
async def test_results_follow_token(athena_client):
    athena_client.get_query_results.return_value = {'ResultSet': {'Rows': []}}

    page = await make_engine(athena_client).get_results('abc-123', 'token-2')

    assert page.next_token is None
    assert athena_client.get_query_results.call_args.kwargs['NextToken'] == 'token-2'


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    client_error('ThrottlingException', 'Rate exceeded'),
    client_error('TooManyRequestsException'),
    client_error('InternalServerException', status=500),
    client_error('SomethingNew', status=503),
    EndpointConnectionError(endpoint_url='https://athena.eu-west-1.amazonaws.com'),
])
async def test_transient_errors_are_classified(athena_client, request_, error):
    athena_client.start_query_execution.side_effect = error

    with pytest.raises(TransientIOError):
        await make_engine(athena_client).submit(request_)


@pytest.mark.asyncio
async def test_invalid_request_is_a_query_failure(athena_client, request_):
    athena_client.start_query_execution.side_effect = client_error(
        'InvalidRequestException', 'line 1:1: mismatched input', 'StartQueryExecution')

    with pytest.raises(QueryFailedError) as excinfo:
        await make_engine(athena_client).submit(request_)

    assert excinfo.value.reason == 'InvalidRequestException: line 1:1: mismatched input'
