"""
ZRP BOM Engine - Exceptions

Every engine error carries an error code and the HTTP status the API
surface answers with. Detail loaders catch these and turn them into
section or view state; only mutations let them reach the client, where
main.py renders `to_dict()` as the error body.
"""
from typing import Any, Dict, List, Optional


class ZRPException(Exception):
    """Base for engine errors; `details` is structured context for logs and responses"""

    error_code: str = "ZRP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = {k: v for k, v in details.items() if v is not None}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ===================
# Preconditions (400)
# ===================


class ValidationError(ZRPException):
    """A required input is missing: no vendor, no shortage lines, nothing to receive."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message, field=field)


class InvalidStateError(ZRPException):
    """The order's status does not allow the action (e.g. receiving a draft PO)."""

    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        current_state: Optional[str] = None,
        allowed_states: Optional[List[str]] = None,
    ):
        super().__init__(
            message,
            current_state=current_state,
            allowed_states=list(allowed_states) if allowed_states else None,
        )


class NotFoundError(ZRPException):
    """Upstream 404, or an unknown BOM position / PO line."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(
            message,
            resource=resource,
            resource_id=None if resource_id is None else str(resource_id),
        )


# ===================
# Data integrity (422)
# ===================


class InvalidBOMError(ZRPException):
    """A fetched BOM is not a walkable tree; resolve_bom reports it as a failed section."""

    error_code = "INVALID_BOM"
    status_code = 422


class CircularBOMError(InvalidBOMError):
    error_code = "CIRCULAR_BOM"

    def __init__(self, path: List[str]):
        super().__init__(f"invalid BOM: cycle detected ({' -> '.join(path)})", path=list(path))


class BOMDepthExceededError(InvalidBOMError):
    error_code = "BOM_DEPTH_EXCEEDED"

    def __init__(self, ipn: str, *, max_depth: int):
        super().__init__(
            f"invalid BOM: {ipn} is nested deeper than {max_depth} levels",
            ipn=ipn,
            max_depth=max_depth,
        )


class StatusDriftError(ZRPException):
    """A server shortage label contradicts its own quantities (strict mode only)."""

    error_code = "STATUS_DRIFT"
    status_code = 422

    def __init__(self, ipn: str, *, reported: str, expected: str):
        super().__init__(
            f"Shortage status for {ipn} reported as '{reported}', quantities imply '{expected}'",
            ipn=ipn,
            reported=reported,
            expected=expected,
        )


# ===================
# Upstream (5xx)
# ===================


class IntegrationError(ZRPException):
    """The operations API answered with an error or an unusable body."""

    error_code = "INTEGRATION_ERROR"
    status_code = 502

    def __init__(self, service: str, message: str, *, upstream_status: Optional[int] = None):
        super().__init__(f"{service}: {message}", service=service, upstream_status=upstream_status)


class ServiceUnavailableError(ZRPException):
    """The operations API timed out or refused the connection."""

    error_code = "SERVICE_UNAVAILABLE"
    status_code = 503

    def __init__(self, service: str, message: str = "is unreachable"):
        super().__init__(f"{service} {message}", service=service)
