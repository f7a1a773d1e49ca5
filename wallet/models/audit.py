"""
Audit Models for the Wallet

Every significant action in the wallet is logged for audit purposes.
This provides:
1. Traceability of every write made on the user's behalf
2. Debugging information when a voice session goes wrong
3. A record of which categories were guessed rather than matched

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the voice pipeline has its own event type.
    """
    # Session lifecycle
    SESSION_OPENED = "session_opened"
    SESSION_CLOSED = "session_closed"
    PROFILE_CREATED = "profile_created"
    PROFILE_UPDATED = "profile_updated"

    # Records
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_DELETED = "transaction_deleted"
    CATEGORY_CREATED = "category_created"
    CATEGORY_DELETED = "category_deleted"

    # Voice pipeline
    RECORDING_STARTED = "recording_started"
    PERMISSION_DENIED = "permission_denied"
    EXTRACTION_REQUESTED = "extraction_requested"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_EMPTY = "extraction_empty"
    EXTRACTION_FAILED = "extraction_failed"
    CATEGORY_FALLBACK_USED = "category_fallback_used"
    CANDIDATE_REJECTED = "candidate_rejected"
    CANDIDATE_FAILED = "candidate_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    One line of the audit trail: a write, a voice session step, or a
    failure the user never saw as an exception.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="User the event happened for"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'category', 'voice_session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one voice session share this
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Flatten for structlog keyword arguments.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Row for the AuditLog worksheet.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Factory methods, one per AuditEventType, used by AuditLogger.

    Usage:
        event = AuditEventBuilder.transaction_created(user_id, tx.id, tx.category_id, str(tx.amount))
        event = AuditEventBuilder.extraction_failed(user_id, "timeout", msg, correlation_id)
    """

    @staticmethod
    def session_opened(user_id: str, transaction_count: int, category_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_OPENED,
            user_id=user_id,
            entity_type="session",
            description="Wallet session opened",
            details={
                "transaction_count": transaction_count,
                "category_count": category_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def session_closed(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_CLOSED,
            user_id=user_id,
            entity_type="session",
            description="Wallet session closed",
            is_user_action=True,
        )

    @staticmethod
    def profile_created(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_CREATED,
            user_id=user_id,
            entity_type="profile",
            entity_id=user_id,
            description=f"Profile created for {email}",
        )

    @staticmethod
    def profile_updated(user_id: str, changed_fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            user_id=user_id,
            entity_type="profile",
            entity_id=user_id,
            description=f"Profile updated: {', '.join(changed_fields) or 'nothing'}",
            details={"fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_created(
        user_id: str,
        transaction_id: str,
        category_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {amount}",
            details={
                "category_id": category_id,
                "amount": amount,
            },
            is_user_action=correlation_id is None,
        )

    @staticmethod
    def transaction_deleted(user_id: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def category_created(user_id: str, category_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            user_id=user_id,
            entity_type="category",
            entity_id=category_id,
            description=f"Category created: {name}",
            is_user_action=True,
        )

    @staticmethod
    def category_deleted(user_id: str, category_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            user_id=user_id,
            entity_type="category",
            entity_id=category_id,
            description="Category deleted",
            is_user_action=True,
        )

    @staticmethod
    def recording_started(user_id: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDING_STARTED,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description="Voice recording started",
            is_user_action=True,
        )

    @staticmethod
    def permission_denied(user_id: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERMISSION_DENIED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description="Microphone permission denied",
        )

    @staticmethod
    def extraction_requested(
        user_id: str,
        audio_size: int,
        category_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_REQUESTED,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description=f"Extraction requested for {audio_size} bytes of audio",
            details={
                "audio_size_bytes": audio_size,
                "category_count": category_count,
            },
        )

    @staticmethod
    def extraction_completed(
        user_id: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description=f"Extraction returned {candidate_count} candidates",
            details={"candidate_count": candidate_count},
        )

    @staticmethod
    def extraction_empty(user_id: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_EMPTY,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description="Extraction understood no transactions",
        )

    @staticmethod
    def extraction_failed(
        user_id: str,
        reason: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description=f"Extraction failed: {reason}",
            details={"reason": reason},
            error_message=error_message,
        )

    @staticmethod
    def category_fallback_used(
        user_id: str,
        extracted_name: str,
        fallback_category_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="category",
            entity_id=fallback_category_id,
            correlation_id=correlation_id,
            description=f"No category named '{extracted_name}', used default",
            details={"extracted_name": extracted_name},
        )

    @staticmethod
    def candidate_rejected(
        user_id: str,
        position: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CANDIDATE_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description=f"Candidate {position} rejected with {len(issues)} issues",
            details={"position": position, "issues": issues},
        )

    @staticmethod
    def candidate_failed(
        user_id: str,
        position: int,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CANDIDATE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="voice_session",
            correlation_id=correlation_id,
            description=f"Candidate {position} could not be saved",
            details={"position": position},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
