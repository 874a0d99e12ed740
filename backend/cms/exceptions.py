"""Error taxonomy shared by services and routers.

Services raise these; the handlers registered in ``cms.main`` turn them into
``{"success": false, "error": <code>, "message": <text>}`` responses.
"""


class CMSError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = "unexpected_error"
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, *, headers: dict[str, str] | None = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class ValidationError(CMSError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class AuthenticationError(CMSError):
    status_code = 401
    code = "authentication_error"
    default_message = "Could not validate credentials"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(CMSError):
    status_code = 403
    code = "authorization_error"
    default_message = "Insufficient permissions"


class NotFoundError(CMSError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class ConflictError(CMSError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class UnexpectedError(CMSError):
    pass


class ConfigurationError(UnexpectedError):
    code = "configuration_error"
    default_message = "Server misconfiguration"
