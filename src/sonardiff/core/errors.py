"""Errors raised by the analysis pipeline.

AI responses are validated all-or-nothing and every failure below is terminal
for the invocation. CSV input never raises these; malformed rows are dropped.
"""


class AnalysisError(Exception):
    """Base class for pipeline failures."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class PreconditionError(AnalysisError):
    """The pipeline was invoked with inputs it cannot run on."""


class MissingCredentialError(PreconditionError):
    """No API key was supplied."""

    def __init__(self, stage: str | None = None):
        super().__init__("OpenAI API key is not configured", stage=stage)


class TransportError(AnalysisError):
    """The provider answered with a non-success status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, stage: str | None = None):
        super().__init__(message, stage=stage)
        self.status_code = status_code


class EmptyResponseError(AnalysisError):
    """The provider succeeded but returned no message content."""


class ResponseParseError(AnalysisError):
    """The response content is not valid JSON, even after removing code fences."""


class ShapeValidationError(AnalysisError):
    """The response JSON does not have the expected structure."""
