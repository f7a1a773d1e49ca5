"""Voice extraction services package."""

from wallet.services.extraction.client import (
    ExtractionClient,
    HttpExtractionClient,
    parse_extraction_payload,
)
from wallet.services.extraction.endpoint import (
    LocalExtractionClient,
    TransactionExtractor,
    handle_extraction_request,
)
from wallet.services.extraction.errors import (
    EmptyExtractionError,
    ExtractionTimeoutError,
    PermissionDeniedError,
    SessionBusyError,
    TransportFailureError,
    VoiceError,
)

__all__ = [
    "ExtractionClient",
    "HttpExtractionClient",
    "LocalExtractionClient",
    "TransactionExtractor",
    "handle_extraction_request",
    "parse_extraction_payload",
    "EmptyExtractionError",
    "ExtractionTimeoutError",
    "PermissionDeniedError",
    "SessionBusyError",
    "TransportFailureError",
    "VoiceError",
]
