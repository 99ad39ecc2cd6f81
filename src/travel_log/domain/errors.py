"""Error taxonomy shared by services and the HTTP layer."""


class TravelLogError(Exception):
    """Base class for errors that map onto a client response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(TravelLogError):
    """Missing, unknown, expired or unauthenticated session."""

    status_code = 401
    default_message = "Not authenticated"


class ValidationError(TravelLogError):
    """Invalid or missing request field."""

    status_code = 400
    default_message = "Invalid request"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class PayloadTooLargeError(ValidationError):
    """Upload exceeds the configured size ceiling."""

    status_code = 413

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(
            "image", f"Image exceeds the upload limit of {limit_bytes} bytes"
        )


class CodecError(TravelLogError):
    """Image could not be decoded or converted."""

    status_code = 400
    default_message = "Unsupported or corrupt image"


class NotFoundError(TravelLogError):
    """Requested location or image does not exist."""

    status_code = 404
    default_message = "Not found"


class StorageError(TravelLogError):
    """Database query failed; the underlying message stays server-side."""

    status_code = 500
    default_message = "Storage failure"

    def __init__(self, operation: str, location_id: int | None = None) -> None:
        self.operation = operation
        self.location_id = location_id
        super().__init__()
