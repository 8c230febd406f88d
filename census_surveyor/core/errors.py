"""
Error taxonomy for the census domain.

Every error the application raises on purpose derives from CensusError and
carries the HTTP status it maps to. The API layer turns these into the
`{"success": false, "error": ...}` body; core code never imports FastAPI.
"""

from typing import Optional


class CensusError(Exception):
    """Base class for expected, client-reportable failures."""
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CensusError):
    """
    Client input is malformed.

    `errors` holds field-level problems as {"path": ..., "message": ...}
    dicts, using the same dotted camelCase paths the client sends.
    """
    status_code = 400

    def __init__(
        self,
        message: str,
        errors: Optional[list[dict[str, str]]] = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def for_field(cls, path: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"path": path, "message": message}])


class NotFoundError(CensusError):
    """A record id does not resolve."""
    status_code = 404


class TranscodeError(CensusError):
    """Image decode/encode failed, including the pixel-limit guard."""
    status_code = 500


class UploadError(CensusError):
    """
    The object store rejected an operation.

    The message is deliberately generic; provider detail goes to the log.
    """
    status_code = 500
