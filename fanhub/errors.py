"""
Error taxonomy for the Fan Hub

Every failure a caller can see is one of these. Route handlers let them
propagate and the handler registered in create_app() turns them into
``{"error": message}`` JSON responses with the matching status code.
"""


class FanHubError(Exception):
    """Base class for errors reported to API callers"""

    status_code = 500
    default_message = "Operation failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message}


class ValidationError(FanHubError):
    """Bad caller input: unknown literal, out-of-range value, missing field"""

    status_code = 400
    default_message = "Invalid request"


class PreconditionError(FanHubError):
    """Well-formed request rejected because of the current state"""

    status_code = 409
    default_message = "Operation not allowed in the current state"


class NotFoundError(FanHubError):
    status_code = 404
    default_message = "Resource not found"


class AuthenticationError(FanHubError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(FanHubError):
    status_code = 403
    default_message = "Forbidden"


class OperationFailedError(FanHubError):
    """Storage or other upstream failure on a path that must not degrade"""

    status_code = 500
    default_message = "Operation failed"
