"""
Standardised error handling for ShortsProcessor.
"""

from app.core.constants import ErrorCode, RETRYABLE_ERRORS


class JobError(Exception):
    """Raised when a job encounters a known error condition."""

    def __init__(self, code: str, message: str, detail: str | None = None,
                 retryable: bool | None = None):
        self.code = code
        self.message = message
        # captured tool diagnostics (stderr), if any
        self.detail = detail
        # pipeline stage that was running when the error surfaced
        self.stage: str | None = None
        # auto-detect retryable from code if not explicitly set
        self.retryable = retryable if retryable is not None else (code in RETRYABLE_ERRORS)
        super().__init__(f"[{code}] {message}")


class ValidationError(JobError):
    """Malformed or missing request fields."""

    def __init__(self, message: str, code: str = ErrorCode.VALIDATION):
        super().__init__(code, message)


class FetchError(JobError):
    """The media-fetch tool did not produce the segment."""

    class Reason:
        TIMEOUT = "Timeout"
        OUTPUT_TOO_LARGE = "OutputTooLarge"
        TOOL_FAILURE = "ToolFailure"

    _CODES = {
        Reason.TIMEOUT: ErrorCode.FETCH_TIMEOUT,
        Reason.OUTPUT_TOO_LARGE: ErrorCode.FETCH_OUTPUT_TOO_LARGE,
        Reason.TOOL_FAILURE: ErrorCode.FETCH_TOOL_FAILURE,
    }

    def __init__(self, reason: str, message: str, detail: str | None = None):
        self.reason = reason
        super().__init__(self._CODES[reason], message, detail)


class RenderError(JobError):
    """The transcoding tool did not produce the output file."""

    class Reason:
        TIMEOUT = "Timeout"
        TOOL_FAILURE = "ToolFailure"

    _CODES = {
        Reason.TIMEOUT: ErrorCode.RENDER_TIMEOUT,
        Reason.TOOL_FAILURE: ErrorCode.RENDER_TOOL_FAILURE,
    }

    def __init__(self, reason: str, message: str, detail: str | None = None):
        self.reason = reason
        super().__init__(self._CODES[reason], message, detail)


class NotFoundError(JobError):
    """Unknown or expired artifact handle."""

    def __init__(self, message: str = "File expired or not found"):
        super().__init__(ErrorCode.NOT_FOUND, message)


class InternalError(JobError):
    """Unexpected I/O failure inside the pipeline."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(ErrorCode.INTERNAL, message, detail)


def is_retryable(code: str) -> bool:
    return code in RETRYABLE_ERRORS
