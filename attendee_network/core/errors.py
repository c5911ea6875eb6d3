"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``attendee_network.main`` maps them onto HTTP statuses.
"""


class NetworkError(Exception):
    """Base class for every error surfaced to callers of the services."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConflictError(NetworkError):
    """Duplicate friendship or like, or a transition from the wrong state."""

    kind = "conflict"
    status_code = 409


class NotFoundError(NetworkError):
    kind = "not_found"
    status_code = 404


class UnauthorizedError(NetworkError):
    """The acting user is not a party to the row being changed."""

    kind = "unauthorized"
    status_code = 403


class TransientError(NetworkError):
    """Store timeout or connection failure. Safe to retry the whole operation."""

    kind = "transient"
    status_code = 503


class InvalidError(NetworkError):
    kind = "invalid"
    status_code = 422
