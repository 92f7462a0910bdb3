"""
Shared error handling for the rule table engine.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class RuleTableException(Exception):
    """Base exception for rule table construction and evaluation."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details={key: str(value) for key, value in self.details.items()}
        )


class ConstructionError(RuleTableException):
    """A rule table definition failed validation at build time."""

    def __init__(self, message: str, table: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if table is not None:
            details.setdefault("table", table)
        self.table = table
        super().__init__("CONSTRUCTION_ERROR", message, details)


class RuleExecutionError(RuleTableException):
    """Evaluation of a rule table chain failed.

    The fault that triggered the failure, if any, is chained as
    ``__cause__`` and also available as ``cause``.
    """

    code = "EXECUTION_ERROR"

    def __init__(self, message: str, table: str, chain: str,
                 cause: Optional[BaseException] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("table", table)
        details.setdefault("chain", chain)
        if cause is not None:
            details.setdefault("cause", repr(cause))
        self.table = table
        self.chain = chain
        self.cause = cause
        super().__init__(type(self).code, message, details)
        if cause is not None:
            self.__cause__ = cause


class TransferDepthExceededError(RuleExecutionError):
    """Nested goTo/jumpTo transfers exceeded the configured depth limit."""

    code = "TRANSFER_DEPTH_EXCEEDED"

    def __init__(self, table: str, chain: str, limit: int, target: Optional[str] = None):
        self.limit = limit
        self.target = target
        details: Dict[str, Any] = {"limit": limit}
        if target is not None:
            details["target"] = target
        super().__init__(
            f"Transfer depth limit {limit} exceeded in table '{table}', chain '{chain}'",
            table,
            chain,
            details=details
        )
