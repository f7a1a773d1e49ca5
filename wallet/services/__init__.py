"""Services package."""

from wallet.services.audio import AudioRecorder, FileAudioRecorder
from wallet.services.extraction import (
    EmptyExtractionError,
    ExtractionClient,
    ExtractionTimeoutError,
    HttpExtractionClient,
    LocalExtractionClient,
    PermissionDeniedError,
    SessionBusyError,
    TransportFailureError,
    VoiceError,
    handle_extraction_request,
)
from wallet.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsWalletStorage,
    InMemoryAuditStorage,
    InMemoryWalletStorage,
    NotFoundError,
    StorageError,
    WalletStorageInterface,
)

__all__ = [
    # Audio
    "AudioRecorder",
    "FileAudioRecorder",
    # Extraction
    "EmptyExtractionError",
    "ExtractionClient",
    "ExtractionTimeoutError",
    "HttpExtractionClient",
    "LocalExtractionClient",
    "PermissionDeniedError",
    "SessionBusyError",
    "TransportFailureError",
    "VoiceError",
    "handle_extraction_request",
    # Storage
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsWalletStorage",
    "InMemoryAuditStorage",
    "InMemoryWalletStorage",
    "NotFoundError",
    "StorageError",
    "WalletStorageInterface",
]
