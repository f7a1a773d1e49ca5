"""Errors raised while turning a voice clip into transactions."""

from typing import Optional


class VoiceError(Exception):
    """Base exception for the voice pipeline."""
    pass


class PermissionDeniedError(VoiceError):
    """Microphone access was refused."""

    def __init__(self, message: str = "Please enable microphone access to use Auto Create."):
        super().__init__(message)


class TransportFailureError(VoiceError):
    """
    The extraction call failed.

    Covers network errors, non-2xx responses, error payloads and
    envelopes that do not match the response schema.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ExtractionTimeoutError(TransportFailureError):
    """The extraction call did not answer in time."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Extraction timed out after {timeout_seconds:g}s")


class EmptyExtractionError(VoiceError):
    """
    Nothing to apply: the clip was empty or no transaction was heard.

    Caught by the voice flow and reported as EMPTY_EXTRACTION.
    """
    pass


class SessionBusyError(VoiceError):
    """A voice session is already in progress."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Voice session is busy (state: {state})")
