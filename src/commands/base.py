"""
Planner command results.

Every function in commands.mesh hands back a CommandResult. The CLI turns
a failed one into a CommandError and exit code 1; the web API sends
to_dict() as JSON. A failed import or validation result means the
MeshSession was left as it was before the call.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum


class ResultStatus(Enum):
    """Outcome of a planner command."""
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"


@dataclass
class CommandResult:
    """
    Outcome of one planner command.

    Attributes:
        success: False only when the command was rejected
        status: SUCCESS, ERROR, or WARNING for a success the operator
            should look at (unpositioned nodes, weak bridges)
        message: One-line text shown by the CLI and returned by the API
        data: JSON-safe payload (links, robustness, export document...)
        error: Parser or validation detail behind a failure
    """
    success: bool
    status: ResultStatus = ResultStatus.SUCCESS
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "Success", data: Dict[str, Any] = None) -> 'CommandResult':
        return cls(
            success=True,
            status=ResultStatus.SUCCESS,
            message=message,
            data=data or {},
        )

    @classmethod
    def fail(cls, message: str, error: str = None, data: Dict[str, Any] = None) -> 'CommandResult':
        """Rejected command; error defaults to the message."""
        return cls(
            success=False,
            status=ResultStatus.ERROR,
            message=message,
            error=error or message,
            data=data or {},
        )

    @classmethod
    def warn(cls, message: str, data: Dict[str, Any] = None) -> 'CommandResult':
        """Applied, but the mesh has something the operator should review."""
        return cls(
            success=True,
            status=ResultStatus.WARNING,
            message=message,
            data=data or {}
        )

    def to_dict(self) -> dict:
        """API response body; 'error' appears only on failures."""
        result = {
            'success': self.success,
            'status': self.status.value,
            'message': self.message,
            'data': self.data,
        }
        if self.error:
            result['error'] = self.error
        return result


class CommandError(Exception):
    """A failed CommandResult raised by the CLI so it can exit non-zero."""

    def __init__(self, message: str, result: CommandResult = None):
        super().__init__(message)
        self.result = result or CommandResult.fail(message)
