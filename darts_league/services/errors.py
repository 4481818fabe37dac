"""Error kinds raised by league services and turned into JSON responses."""


class LeagueError(Exception):
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = list(details or [])

    def to_dict(self):
        payload = {'error': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(LeagueError):
    """Malformed or out-of-range submission. Nothing was written."""
    status_code = 400


class AuthorizationError(LeagueError):
    status_code = 403


class NotFoundError(LeagueError):
    status_code = 404


class ConflictError(LeagueError):
    """The write collided with another one; retrying is safe."""
    status_code = 409


class ConsistencyError(LeagueError):
    """A persistence failure rolled the whole reconciliation back."""
    status_code = 500
