"""
Result set and invocation result models
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Tuple


ResultRow = Tuple[str, ...]


@dataclass(frozen=True)
class ResultPage:
    """One page of rows returned by the query engine"""
    rows: List[List[str]]
    next_token: Optional[str] = None


@dataclass(frozen=True)
class ResultSet:
    """
    Rows of a finished query, header row first

    Attributes:
        rows: All rows in engine order; rows[0] is the header
        execution_id: Engine execution id that produced the rows
    """
    rows: Tuple[ResultRow, ...]
    execution_id: Optional[str] = None

    @classmethod
    def from_rows(cls, rows, execution_id: Optional[str] = None) -> "ResultSet":
        return cls(rows=tuple(tuple(row) for row in rows), execution_id=execution_id)

    @property
    def header(self) -> ResultRow:
        return self.rows[0] if self.rows else ()

    @property
    def data_rows(self) -> Tuple[ResultRow, ...]:
        return self.rows[1:]

    def __len__(self) -> int:
        """Number of data rows (header excluded)"""
        return max(len(self.rows) - 1, 0)


@dataclass
class InvocationResult:
    """
    Outcome of one scheduled invocation, consumed by the host

    Attributes:
        status: "success" or "failure"
        message: Human-readable summary or failure cause
        error_type: Error kind for failures
        details: Extra fields (execution id, message id, partial flag, ...)
    """
    status: str
    message: str
    error_type: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def ok(self) -> bool:
        return self.status == self.SUCCESS

    @classmethod
    def success(cls, message: str, **details) -> "InvocationResult":
        return cls(status=cls.SUCCESS, message=message, details=details)

    @classmethod
    def failure(cls, message: str, error_type: str, **details) -> "InvocationResult":
        return cls(status=cls.FAILURE, message=message, error_type=error_type, details=details)

    def to_dict(self) -> Dict[str, Any]:
        result = {'status': self.status, 'message': self.message}
        if self.error_type:
            result['error_type'] = self.error_type
        result.update(self.details)
        return result
