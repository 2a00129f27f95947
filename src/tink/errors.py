"""
Tink error types — one class per failure kind the engine reports.

Services raise these; the produced surface (``prepare_session``,
``verify_session``, ``settle_session``, webhook ``handle``) turns them into
``EngineFailure`` results instead of letting them escape.
"""

from typing import Any, Optional


class TinkError(Exception):
    kind = "internal"

    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    def to_failure(self) -> "EngineFailure":
        from tink.models.result import EngineFailure
        return EngineFailure(kind=self.kind, code=self.code, message=self.message, details=self.details)


class NotFoundError(TinkError):
    """Session, merchant, transaction or dispute absent."""
    kind = "not_found"


class InvalidStateError(TinkError):
    """Operation attempted from a status that forbids it."""
    kind = "invalid_state"


class ValidationError(TinkError):
    """Malformed amounts, split percentages, missing fields."""
    kind = "validation"


class FacilitatorError(TinkError):
    """Facilitator call failed or returned an explicit failure."""
    kind = "facilitator"


class UnauthorizedError(TinkError):
    kind = "unauthorized"

    def __init__(self, message: str, code: str = "Unauthorized"):
        super().__init__(code, message)


class InternalError(TinkError):
    kind = "internal"

    def __init__(self, message: str = "Internal error", code: str = "Internal"):
        super().__init__(code, message)
