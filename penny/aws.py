"""
Shared helpers for boto3 collaborators
"""

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


# Error codes AWS uses for throttling and temporary service trouble
TRANSIENT_ERROR_CODES = {
    'Throttling',
    'ThrottlingException',
    'ThrottledException',
    'TooManyRequestsException',
    'RequestLimitExceeded',
    'RequestThrottled',
    'ServiceUnavailable',
    'ServiceUnavailableException',
    'InternalServerException',
    'InternalFailure',
    'InternalError',
}

TRANSIENT_CONNECTION_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)


def error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


def error_message(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Message', str(error))


def is_transient(error: Exception) -> bool:
    """True for throttling, 5xx and connection failures"""
    if isinstance(error, TRANSIENT_CONNECTION_ERRORS):
        return True
    if isinstance(error, ClientError):
        if error_code(error) in TRANSIENT_ERROR_CODES:
            return True
        status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0)
        return status >= 500
    return False


def create_client(service: str, region_name: str):
    """
    Create a boto3 client with botocore's own retries disabled

    Retries are handled by penny.retry so attempts and deadlines are
    accounted for in one place.
    """
    return boto3.client(
        service,
        region_name=region_name,
        config=BotoConfig(retries={'max_attempts': 1, 'mode': 'standard'}),
    )
