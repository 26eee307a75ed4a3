"""
Typed errors shared by the stores, the service clients and the orchestrator.

Every class carries a machine-readable ``code`` and the HTTP status the API
answers with. The same codes travel in the ``{"error": {"code", "message"}}``
envelope, so a client can rebuild the same error type from a response:

    P2PError
    +-- NotFoundError                 NOT_FOUND               404
    +-- UnprocessableError            UNPROCESSABLE           422
    +-- InvalidStateError             INVALID_STATE           409
    |   +-- ConcurrencyConflictError  CONCURRENT_MODIFICATION 409
    +-- PolicyDeniedError             POLICY_DENIED           403
    +-- DependencyUnavailableError    DEPENDENCY_UNAVAILABLE  503
    +-- DataIntegrityError            DATA_INTEGRITY          502

PolicyDenied is a legitimate business decision and final for the request.
DependencyUnavailable reflects an infrastructure fault and may be retried.
"""

from typing import Optional


class P2PError(Exception):
    """Base class. Subclasses override ``code`` and ``status_code``."""

    code: str = "P2P_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class NotFoundError(P2PError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, key: str, message: Optional[str] = None):
        self.entity = entity
        self.key = key
        super().__init__(message or f"{entity} {key} not found")


class UnprocessableError(P2PError):
    code = "UNPROCESSABLE"
    status_code = 422


class InvalidStateError(P2PError):
    code = "INVALID_STATE"
    status_code = 409

    def __init__(self, message: str, current_status: Optional[str] = None):
        self.current_status = current_status
        super().__init__(message)


class ConcurrencyConflictError(InvalidStateError):
    """Conditional update found the row changed since it was read."""

    code = "CONCURRENT_MODIFICATION"


class PolicyDeniedError(P2PError):
    code = "POLICY_DENIED"
    status_code = 403


class DependencyUnavailableError(P2PError):
    code = "DEPENDENCY_UNAVAILABLE"
    status_code = 503

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(message)


class DataIntegrityError(P2PError):
    code = "DATA_INTEGRITY"
    status_code = 502

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(message)


ERRORS_BY_CODE: dict[str, type[P2PError]] = {
    cls.code: cls
    for cls in (
        NotFoundError,
        UnprocessableError,
        InvalidStateError,
        ConcurrencyConflictError,
        PolicyDeniedError,
        DependencyUnavailableError,
        DataIntegrityError,
    )
}
