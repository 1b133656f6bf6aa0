from typing import Optional, Any


class FacturaBotError(Exception):
    """
    Base exception for FacturaBot application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationGap(FacturaBotError):
    """
    Raised when an inbound event carries no usable text.
    Acknowledged as a no-op, never surfaced to the user.
    """
    def __init__(self, message: str = "Inbound event has no usable text", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_GAP", status_code=200, details=details)


class UpstreamError(FacturaBotError):
    """
    Raised when the billing service answers with a non-success status,
    times out, or cannot be reached. `body` holds the raw response text.
    """
    def __init__(self, message: str = "Billing service error", upstream_status: Optional[int] = None, body: str = ""):
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(
            message,
            code="UPSTREAM_ERROR",
            status_code=502,
            details={"upstream_status": upstream_status, "body": body},
        )


class TransportError(FacturaBotError):
    """
    Raised when an outbound WhatsApp message could not be delivered.
    """
    def __init__(self, message: str = "Message transport failed", details: Optional[Any] = None):
        super().__init__(message, code="TRANSPORT_ERROR", status_code=502, details=details)


class StepOutOfRangeError(FacturaBotError):
    """
    Raised when a step script is indexed outside 1..N.
    """
    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(
            f"Step {index} is out of range (1..{length})",
            code="STEP_OUT_OF_RANGE",
            details={"index": index, "length": length},
        )


class SubmissionInputError(FacturaBotError):
    """
    Raised when collected answers cannot be turned into billing requests
    (missing fields, unparseable amount).
    """
    def __init__(self, message: str = "Collected answers are incomplete", details: Optional[Any] = None):
        super().__init__(message, code="SUBMISSION_INPUT_ERROR", status_code=422, details=details)
