"""Error kinds raised while managing Apex classes

Every failure the manager can report carries a short ``kind`` string so
callers can branch on it without parsing the message text.
"""
from typing import Any, Dict, List, Optional


class ApexManagerError(Exception):
    """Base class for failures reported back to the caller"""

    kind = "unexpected"

    def log_fields(self) -> Dict[str, Any]:
        """Structured fields attached to the error log record"""
        return {}


class NotFoundError(ApexManagerError):
    kind = "not_found"


class AmbiguousClassNameError(ApexManagerError):
    """More than one ApexClass matched an exact name lookup"""

    kind = "ambiguous"


class RemoteRejectionError(ApexManagerError):
    """The Tooling API answered a create/update/delete with success = false"""

    kind = "rejected"

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []

    def log_fields(self) -> Dict[str, Any]:
        return {"remote_errors": self.errors}


class DeploymentFailedError(ApexManagerError):
    """ContainerAsyncRequest ended in a state other than Completed"""

    kind = "deployment_failed"

    def __init__(self, message: str, state: Optional[str] = None):
        super().__init__(message)
        self.state = state

    def log_fields(self) -> Dict[str, Any]:
        return {"deploy_state": self.state}


class DeploymentTimeoutError(ApexManagerError):
    kind = "timeout"


class DeploymentCancelledError(ApexManagerError):
    kind = "cancelled"


def error_kind(error: BaseException) -> str:
    """Return the kind for any exception; unknown exceptions are 'unexpected'"""
    if isinstance(error, ApexManagerError):
        return error.kind
    return ApexManagerError.kind
