"""Error taxonomy shared by the services and the HTTP layer.

Every error knows the HTTP status and the machine-readable code the API
reports for it, so routers only have to raise.
"""

from typing import Optional


class DocFillError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class SessionNotFoundError(DocFillError):
    status_code = 404
    code = "session_not_found"


class InvalidInputError(DocFillError):
    status_code = 400
    code = "invalid_request"


class FieldNotInSessionError(InvalidInputError):
    code = "invalid_field"

    def __init__(self, field: str):
        super().__init__(f"Field '{field}' does not exist in this document.")
        self.field = field


class ExtractionFailedError(DocFillError):
    status_code = 500
    code = "field_detection_error"


class OracleError(DocFillError):
    """The semantic oracle could not produce a usable answer."""

    status_code = 502
    code = "oracle_failed"


class OracleTimeoutError(OracleError):
    status_code = 504
    code = "oracle_timeout"


class QuotaExhaustedError(OracleError):
    """Rate limit or quota hit; callers should suggest retrying later."""

    status_code = 429
    code = "ai_quota_exhausted"


class GenerationFailedError(DocFillError):
    status_code = 500
    code = "document_generation_failed"


class IncompleteStateError(DocFillError):
    status_code = 400
    code = "incomplete_answers"

    def __init__(self, missing_fields):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"Not all fields have been answered. Missing: {', '.join(self.missing_fields)}"
        )
