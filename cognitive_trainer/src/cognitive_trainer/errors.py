"""
Engine Error Types

Errors raised by the session engine. SessionManager methods raise these
synchronously to the caller; nothing is swallowed inside the engine.
"""


class EngineError(Exception):
    """Base exception for session engine errors."""

    pass


class NotFoundError(EngineError):
    """Raised for an unknown session id or activity reference."""

    pass


class ConflictError(EngineError):
    """Raised when a session of the same kind is already running.

    Attributes:
        kind: Session kind that is already in use
        active_session_id: Id of the non-terminal session holding the slot
    """

    def __init__(self, kind, active_session_id: str) -> None:
        self.kind = kind
        self.active_session_id = active_session_id
        super().__init__(
            f"A {getattr(kind, 'value', kind)} session is already in progress ({active_session_id})"
        )


class InvalidStateError(EngineError):
    """Raised when an operation is not valid for the session's current state.

    Attributes:
        session_id: Session the operation targeted
        status: Status the session was in
        operation: Name of the rejected operation
    """

    def __init__(self, session_id: str, status, operation: str) -> None:
        self.session_id = session_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} session {session_id} while {getattr(status, 'value', status)}"
        )


class AccessDeniedError(EngineError):
    """Raised when a premium activity is started without an entitlement.

    Callers route this to an upgrade flow instead of a generic retry.
    """

    upgrade_required = True

    def __init__(self, reference_id: str, message: str = "Premium subscription required for this activity") -> None:
        self.reference_id = reference_id
        super().__init__(message)


class InvalidArtifactError(EngineError, ValueError):
    """Raised when a submitted artifact cannot be scored."""

    pass


class PersistenceError(EngineError):
    """Raised when the history store fails to read or write.

    Attributes:
        operation: Store operation that failed
        original_error: Underlying exception
    """

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"History store '{operation}' failed: {original_error}")
