"""
Audit Logger

DESIGN DECISION: Every write made on the user's behalf is logged.
This provides:
1. Complete traceability of voice-created transactions
2. Debugging capability when extraction misbehaves
3. A record of guessed categories

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace one voice session end to end
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from wallet.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from wallet.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Writes wallet audit events.

    Each event goes to the structlog stream and, when an audit store
    is attached, to that store as well.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger("wallet.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Emit one event locally, then persist it.

        Returns False only when the attached store rejected the write.
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Persistence failures stay in the local log
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_session_opened(
        self,
        user_id: str,
        transaction_count: int,
        category_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.session_opened(
            user_id=user_id,
            transaction_count=transaction_count,
            category_count=category_count,
        ))

    async def log_session_closed(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.session_closed(user_id=user_id))

    async def log_profile_created(self, user_id: str, email: str) -> None:
        await self.log(AuditEventBuilder.profile_created(user_id=user_id, email=email))

    async def log_profile_updated(self, user_id: str, changed_fields: list[str]) -> None:
        await self.log(AuditEventBuilder.profile_updated(
            user_id=user_id,
            changed_fields=changed_fields,
        ))

    async def log_transaction_created(
        self,
        user_id: str,
        transaction_id: str,
        category_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a saved transaction. A correlation id marks voice-created ones."""
        await self.log(AuditEventBuilder.transaction_created(
            user_id=user_id,
            transaction_id=transaction_id,
            category_id=category_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(self, user_id: str, transaction_id: str) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
        ))

    async def log_category_created(self, user_id: str, category_id: str, name: str) -> None:
        await self.log(AuditEventBuilder.category_created(
            user_id=user_id,
            category_id=category_id,
            name=name,
        ))

    async def log_category_deleted(self, user_id: str, category_id: str) -> None:
        await self.log(AuditEventBuilder.category_deleted(
            user_id=user_id,
            category_id=category_id,
        ))

    async def log_recording_started(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.recording_started(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_permission_denied(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.permission_denied(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_extraction_requested(
        self,
        user_id: str,
        audio_size: int,
        category_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_requested(
            user_id=user_id,
            audio_size=audio_size,
            category_count=category_count,
            correlation_id=correlation_id,
        ))

    async def log_extraction_completed(
        self,
        user_id: str,
        candidate_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(
            user_id=user_id,
            candidate_count=candidate_count,
            correlation_id=correlation_id,
        ))

    async def log_extraction_empty(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.extraction_empty(
            user_id=user_id,
            correlation_id=correlation_id,
        ))

    async def log_extraction_failed(
        self,
        user_id: str,
        reason: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_failed(
            user_id=user_id,
            reason=reason,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_category_fallback(
        self,
        user_id: str,
        extracted_name: str,
        fallback_category_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_fallback_used(
            user_id=user_id,
            extracted_name=extracted_name,
            fallback_category_id=fallback_category_id,
            correlation_id=correlation_id,
        ))

    async def log_candidate_rejected(
        self,
        user_id: str,
        position: int,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.candidate_rejected(
            user_id=user_id,
            position=position,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_candidate_failed(
        self,
        user_id: str,
        position: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.candidate_failed(
            user_id=user_id,
            position=position,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Record a failure reported by Gemini, Sheets or the endpoint."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    New id shared by every event of one voice session.

    Use this at the start of a voice session and pass it through
    every step of that session.
    """
    return uuid4()
