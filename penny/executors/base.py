"""
Base query engine interface
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..core import QueryRequest, QueryStatus, ResultPage


class BaseQueryEngine(ABC):
    """
    Base class for query engines

    An engine runs queries asynchronously: submit returns immediately with an
    execution id, status is polled, and results are read in pages once the
    query has succeeded. Implementations raise TransientIOError for failures
    that are worth retrying and QueryFailedError for everything the engine
    reports as a failed query.
    """

    name = "engine"

    @abstractmethod
    async def submit(self, request: QueryRequest) -> str:
        """
        Start a query

        Args:
            request: Query to run

        Returns:
            Execution id
        """
        pass

    @abstractmethod
    async def get_status(self, execution_id: str) -> QueryStatus:
        """
        Check the state of a query

        Args:
            execution_id: Id returned by submit

        Returns:
            Current status
        """
        pass

    @abstractmethod
    async def get_results(self, execution_id: str, page_token: Optional[str] = None) -> ResultPage:
        """
        Read one page of results

        The header row is the first row of the first page only.

        Args:
            execution_id: Id of a succeeded query
            page_token: Token from the previous page, None for the first page

        Returns:
            ResultPage with rows and the next page token (None on the last page)
        """
        pass
