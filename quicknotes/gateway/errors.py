"""
Gateway error taxonomy.
Every failure leaving the gateway is one of these, rendered as
``{"error": message}`` with the matching status code.
"""


class GatewayError(Exception):
    """Base class for errors surfaced to gateway callers."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message}


class Unauthorized(GatewayError):
    """Missing or rejected credential."""

    status_code = 401


class InvalidInput(GatewayError):
    """Missing or malformed request field."""

    status_code = 400


class UpstreamFailure(GatewayError):
    """GitHub API error or network fault; the cause is logged, never returned."""

    status_code = 500
