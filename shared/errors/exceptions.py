"""
Error taxonomy shared by the coordinator services and the sync client.

Every failure is scoped to one order or one request. Client errors
(NotFound, InvalidTransition, InvalidHandshakeState, ValidationError) are
surfaced to the calling actor as-is; TransientIO is the only retryable one.
"""


class CoordinatorError(Exception):
    """Base class. `code` is the wire identifier used in error bodies."""

    status_code = 500
    code = "internal_error"
    retryable = False

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.code)
        self.detail = detail or self.code


class NotFound(CoordinatorError):
    status_code = 404
    code = "not_found"


class InvalidTransition(CoordinatorError):
    status_code = 409
    code = "invalid_transition"


class InvalidHandshakeState(CoordinatorError):
    status_code = 409
    code = "invalid_handshake_state"


class ValidationError(CoordinatorError):
    status_code = 422
    code = "validation_error"


class TransientIO(CoordinatorError):
    status_code = 503
    code = "transient_io"
    retryable = True


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (NotFound, InvalidTransition, InvalidHandshakeState, ValidationError, TransientIO)
}
