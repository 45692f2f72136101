"""
AWS Athena query engine
"""

import logging
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from .base import BaseQueryEngine
from ..aws import create_client, error_code, error_message, is_transient
from ..core import (
    QueryRequest, QueryState, QueryStatus, ResultPage,
    QueryFailedError, TransientIOError,
)


logger = logging.getLogger(__name__)

# Athena reports QUEUED before RUNNING
ATHENA_STATES = {
    'QUEUED': QueryState.SUBMITTED,
    'RUNNING': QueryState.RUNNING,
    'SUCCEEDED': QueryState.SUCCEEDED,
    'FAILED': QueryState.FAILED,
    'CANCELLED': QueryState.CANCELLED,
}

MAX_PAGE_SIZE = 1000  # Max allowed by Athena


class AthenaQueryEngine(BaseQueryEngine):
    """
    Athena engine

    Characteristics:
    - Fully managed, results written to S3 by Athena
    - Results read back through GetQueryResults, up to 1000 rows per page
    """

    name = "Athena"

    def __init__(self, athena_client=None, region: str = "eu-west-1",
                 workgroup: Optional[str] = None, page_size: int = MAX_PAGE_SIZE):
        """
        Initialize engine

        Args:
            athena_client: boto3 Athena client (created from region if None)
            region: AWS region
            workgroup: Athena workgroup, engine default if None
            page_size: Rows requested per results page
        """
        self.athena_client = athena_client or create_client('athena', region)
        self.workgroup = workgroup
        self.page_size = min(page_size, MAX_PAGE_SIZE)

    async def submit(self, request: QueryRequest) -> str:
        params = {
            'QueryString': request.sql,
            'QueryExecutionContext': {'Database': request.database},
            'ResultConfiguration': {'OutputLocation': request.output_location},
        }
        if self.workgroup:
            params['WorkGroup'] = self.workgroup

        response = self._call('StartQueryExecution', self.athena_client.start_query_execution, **params)
        return response['QueryExecutionId']

    async def get_status(self, execution_id: str) -> QueryStatus:
        response = self._call('GetQueryExecution', self.athena_client.get_query_execution,
                              QueryExecutionId=execution_id)

        status = response['QueryExecution']['Status']
        raw_state = status['State']
        if raw_state not in ATHENA_STATES:
            raise QueryFailedError(f"Unknown Athena state {raw_state}", execution_id, raw_state)

        return QueryStatus(
            state=ATHENA_STATES[raw_state],
            reason=status.get('StateChangeReason'),
            statistics=response['QueryExecution'].get('Statistics', {}),
        )

    async def get_results(self, execution_id: str, page_token: Optional[str] = None) -> ResultPage:
        params = {'QueryExecutionId': execution_id, 'MaxResults': self.page_size}
        if page_token:
            params['NextToken'] = page_token

        response = self._call('GetQueryResults', self.athena_client.get_query_results, **params)

        rows = []
        for row in response['ResultSet']['Rows']:
            # NULL cells come back without a VarCharValue
            rows.append([column.get('VarCharValue', '') for column in row['Data']])

        return ResultPage(rows=rows, next_token=response.get('NextToken'))

    def _call(self, operation: str, method, **params):
        """Call the Athena API, translating botocore errors"""
        try:
            return method(**params)
        except (ClientError, BotoCoreError) as e:
            if is_transient(e):
                raise TransientIOError(f"Athena {operation}: {e}") from e
            if isinstance(e, ClientError):
                logger.error("[%s] %s rejected: %s %s", self.name, operation, error_code(e), error_message(e))
                raise QueryFailedError(f"{error_code(e)}: {error_message(e)}",
                                       params.get('QueryExecutionId')) from e
            raise
