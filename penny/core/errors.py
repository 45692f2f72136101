"""
Error taxonomy for the report pipeline

Only DegradedFetchError is absorbed inside the pipeline. Every other
PennyError reaches the invocation boundary and becomes a failed result.
"""

from typing import Optional


class PennyError(Exception):
    """Base class for all pipeline errors"""

    kind = "error"


class ConfigError(PennyError):
    """Configuration is missing, unknown or out of range"""

    kind = "config_error"


class InvalidRequestError(PennyError):
    """Invocation input is missing a required field"""

    kind = "invalid_request"


class TransientIOError(PennyError):
    """Throttling or transient network failure talking to a collaborator"""

    kind = "transient_io"


class RetriesExhaustedError(PennyError):
    """
    A transient failure persisted through every retry attempt

    Attributes:
        operation: Name of the operation that was retried
        attempts: Number of attempts made
        last_error: The final transient error
    """

    kind = "retries_exhausted"

    def __init__(self, operation: str, attempts: int,
                 last_error: Optional[BaseException] = None):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}"
        )


class QueryFailedError(PennyError):
    """
    The query engine reported a terminal failure

    Attributes:
        execution_id: Engine execution id (None if submission was refused)
        state: Terminal state reported by the engine
        reason: Engine status reason, verbatim
    """

    kind = "query_failed"

    def __init__(self, reason: str, execution_id: Optional[str] = None,
                 state: str = "FAILED"):
        self.reason = reason
        self.execution_id = execution_id
        self.state = state
        super().__init__(f"Query {execution_id or '<unsubmitted>'} {state}: {reason}")


class DecodeError(PennyError):
    """The result set does not have the expected shape or values"""

    kind = "decode_error"


class DegradedFetchError(PennyError):
    """The recommendation source could not be read"""

    kind = "degraded_fetch"


class NotificationRejected(PennyError):
    """The messaging service refused the report (bad recipient, unverified sender)"""

    kind = "notification_rejected"


class DeadlineExceeded(PennyError):
    """The invocation ran out of time before reaching a result"""

    kind = "deadline_exceeded"
