from __future__ import annotations
"""Error types shared by the gateway, navigator and transport layers."""

INVALID_PROFILE = "InvalidProfile"
MISSING_BUCKET = "MissingBucket"
MISSING_KEY = "MissingKey"
TRANSPORT_ERROR = "TransportError"
UNKNOWN_ERROR = "UnknownError"


class GatewayError(RuntimeError):
    """Normalized failure reported by the object-store gateway."""

    default_code = UNKNOWN_ERROR

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "code": self.code}


class InvalidRequestError(GatewayError):
    """Raised before any store call when a request is missing required input."""

    default_code = INVALID_PROFILE


class StoreError(GatewayError):
    """The store rejected the call; ``code`` is the store's error identifier."""


class TransportError(GatewayError):
    """The store could not be reached at all."""

    default_code = TRANSPORT_ERROR


class UnknownError(GatewayError):
    """Any failure that could not be classified."""
