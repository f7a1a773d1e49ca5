"""
Main Orchestrator for the Wallet

This module ties together all the components and defines the
end-to-end flows for:
1. Voice entry (record -> encode -> extract -> validate -> resolve -> save)
2. Monthly insight (aggregate -> model -> commentary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- One voice session at a time per user session
- Every candidate is validated before it reaches the store
- Every outcome becomes exactly one user-facing message
- Every step is audited under one correlation id

CRITICAL: Candidates are applied one by one, in the order received.
A failure does NOT roll back the transactions already saved; the
outcome lists what was saved and what was not.
"""

import asyncio
import base64
from datetime import date, datetime, time
from typing import Callable, Optional
from uuid import UUID

import structlog

from wallet.agents import InsightAgent, VoiceExtractionAgent
from wallet.audit import AuditLogger, create_correlation_id
from wallet.config import get_settings
from wallet.models.extraction import (
    CandidateFailure,
    ExtractionRequest,
    VoiceOutcome,
    VoiceOutcomeStatus,
    VoiceSessionState,
)
from wallet.models.finance import Transaction, TransactionCreate
from wallet.models.reports import FinancialInsight
from wallet.reports import insight_summary
from wallet.resolution import CategoryResolutionError, CategoryResolver
from wallet.services.audio import AudioRecorder
from wallet.services.extraction import (
    EmptyExtractionError,
    ExtractionClient,
    ExtractionTimeoutError,
    HttpExtractionClient,
    LocalExtractionClient,
    PermissionDeniedError,
    SessionBusyError,
    TransportFailureError,
)
from wallet.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsWalletStorage,
    InMemoryWalletStorage,
    WalletStorageInterface,
)
from wallet.session import WalletSession
from wallet.validation import CandidateValidator


logger = structlog.get_logger(__name__)


MESSAGE_EMPTY_EXTRACTION = (
    "I couldn't hear any transactions. "
    "Try saying something like 'Pay 50 dollars for transport today'."
)
MESSAGE_TRANSPORT_FAILURE = "Failed to process voice command."
MESSAGE_TIMEOUT = "Processing took too long. Please try again."


def _success_message(created: list[Transaction], fallbacks: list[str]) -> str:
    message = f"Auto-created {len(created)} transactions!"
    if fallbacks:
        names = ", ".join(f"'{name}'" for name in fallbacks)
        message += f" No matching category for {names}; the default category was used."
    return message


def _partial_message(
    created: list[Transaction],
    rejected: list[CandidateFailure],
    failed: list[CandidateFailure],
    fallbacks: list[str],
) -> str:
    total = len(created) + len(rejected) + len(failed)
    message = f"Saved {len(created)} of {total} transactions."
    if rejected:
        message += f" {len(rejected)} could not be understood."
    if failed:
        message += f" {len(failed)} could not be saved."
    if fallbacks:
        names = ", ".join(f"'{name}'" for name in fallbacks)
        message += f" No matching category for {names}; the default category was used."
    return message


class VoiceTransactionFlow:
    """
    Orchestrates voice entry for one wallet session.

    States:
    IDLE -> RECORDING -> ENCODING -> AWAITING_EXTRACTION -> APPLYING -> IDLE
                                                        \\-> FAILED -> IDLE

    NO retries anywhere: the user can simply speak again.
    """

    def __init__(
        self,
        session: WalletSession,
        client: ExtractionClient,
        recorder: Optional[AudioRecorder] = None,
        resolver: Optional[CategoryResolver] = None,
        validator: Optional[CandidateValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._session = session
        self._client = client
        self._recorder = recorder
        self._resolver = resolver or CategoryResolver()
        self._validator = validator or CandidateValidator()
        self._audit_logger = audit_logger or session.audit_logger
        self._timeout = timeout_seconds or get_settings().extraction.timeout_seconds
        self._clock = clock
        self._state = VoiceSessionState.IDLE
        self._correlation_id: Optional[UUID] = None

    @property
    def state(self) -> VoiceSessionState:
        return self._state

    async def start_recording(self) -> Optional[VoiceOutcome]:
        """
        Ask for the microphone and start recording.

        Returns:
            None once recording has started, or a PERMISSION_DENIED
            outcome (the flow is back in IDLE).

        Raises:
            SessionBusyError: if a voice session is already running
        """
        if self._state != VoiceSessionState.IDLE:
            raise SessionBusyError(self._state.value)
        if self._recorder is None:
            raise RuntimeError("No audio recorder configured")

        correlation_id = create_correlation_id()
        user_id = self._session.user_id

        if not await self._recorder.request_permission():
            await self._audit_logger.log_permission_denied(
                user_id=user_id,
                correlation_id=correlation_id,
            )
            error = PermissionDeniedError()
            return VoiceOutcome(
                status=VoiceOutcomeStatus.PERMISSION_DENIED,
                message=str(error),
            )

        try:
            await self._recorder.start()
        except Exception as e:
            # Microphone granted but unusable; same outcome for the user
            logger.error("recording_start_failed", error=str(e))
            await self._audit_logger.log_error(
                error_type="recording_start_failed",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return VoiceOutcome(
                status=VoiceOutcomeStatus.PERMISSION_DENIED,
                message="Could not start recording. Please check your microphone.",
            )

        self._correlation_id = correlation_id
        self._state = VoiceSessionState.RECORDING
        await self._audit_logger.log_recording_started(
            user_id=user_id,
            correlation_id=correlation_id,
        )
        return None

    async def stop_and_process(self) -> Optional[VoiceOutcome]:
        """
        Stop recording and run the clip through the pipeline.

        Returns None if nothing was being recorded.
        """
        if self._state != VoiceSessionState.RECORDING:
            return None

        correlation_id = self._correlation_id or create_correlation_id()
        self._state = VoiceSessionState.ENCODING
        try:
            audio = await self._recorder.stop()
        except Exception as e:
            logger.error("recording_stop_failed", error=str(e))
            self._correlation_id = None
            return await self._fail(
                VoiceOutcomeStatus.TRANSPORT_FAILURE,
                reason="recording_failed",
                error=e,
                correlation_id=correlation_id,
            )

        return await self._run(audio, correlation_id)

    async def process_audio(self, audio_bytes: bytes) -> VoiceOutcome:
        """
        Run an already captured clip through the pipeline.

        Raises:
            SessionBusyError: if a voice session is already running
        """
        if self._state != VoiceSessionState.IDLE:
            raise SessionBusyError(self._state.value)

        self._state = VoiceSessionState.ENCODING
        return await self._run(audio_bytes, create_correlation_id())

    async def _fail(
        self,
        status: VoiceOutcomeStatus,
        reason: str,
        error: Exception,
        correlation_id: UUID,
    ) -> VoiceOutcome:
        """Record a failed extraction and build its outcome."""
        self._state = VoiceSessionState.FAILED
        await self._audit_logger.log_extraction_failed(
            user_id=self._session.user_id,
            reason=reason,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        message = MESSAGE_TIMEOUT if status == VoiceOutcomeStatus.TIMEOUT else MESSAGE_TRANSPORT_FAILURE
        self._state = VoiceSessionState.IDLE
        return VoiceOutcome(status=status, message=message)

    async def _run(self, audio: bytes, correlation_id: UUID) -> VoiceOutcome:
        try:
            return await self._extract_and_apply(audio, correlation_id)
        except EmptyExtractionError as e:
            logger.info("extraction_empty", reason=str(e))
            await self._audit_logger.log_extraction_empty(
                user_id=self._session.user_id,
                correlation_id=correlation_id,
            )
            return VoiceOutcome(
                status=VoiceOutcomeStatus.EMPTY_EXTRACTION,
                message=MESSAGE_EMPTY_EXTRACTION,
            )
        finally:
            self._state = VoiceSessionState.IDLE
            self._correlation_id = None

    async def _extract_and_apply(self, audio: bytes, correlation_id: UUID) -> VoiceOutcome:
        user_id = self._session.user_id
        categories = self._session.categories
        current_date: date = self._clock().date()

        # ENCODING
        if not audio:
            raise EmptyExtractionError("Recorded clip is empty")

        request = ExtractionRequest(
            audio=base64.b64encode(audio).decode("ascii"),
            categories=[c.name for c in categories],
            current_date=current_date,
        )

        # AWAITING_EXTRACTION
        self._state = VoiceSessionState.AWAITING_EXTRACTION
        await self._audit_logger.log_extraction_requested(
            user_id=user_id,
            audio_size=len(audio),
            category_count=len(categories),
            correlation_id=correlation_id,
        )

        try:
            response = await asyncio.wait_for(
                self._client.extract(request),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return await self._fail(
                VoiceOutcomeStatus.TIMEOUT,
                reason="timeout",
                error=ExtractionTimeoutError(self._timeout),
                correlation_id=correlation_id,
            )
        except ExtractionTimeoutError as e:
            return await self._fail(
                VoiceOutcomeStatus.TIMEOUT,
                reason="timeout",
                error=e,
                correlation_id=correlation_id,
            )
        except TransportFailureError as e:
            return await self._fail(
                VoiceOutcomeStatus.TRANSPORT_FAILURE,
                reason="transport",
                error=e,
                correlation_id=correlation_id,
            )
        except Exception as e:
            # Clients should only raise TransportFailureError
            logger.error("extraction_client_error", error=str(e), error_type=type(e).__name__)
            return await self._fail(
                VoiceOutcomeStatus.TRANSPORT_FAILURE,
                reason=type(e).__name__,
                error=e,
                correlation_id=correlation_id,
            )

        if not response.transactions:
            raise EmptyExtractionError("No transactions in the extraction response")

        await self._audit_logger.log_extraction_completed(
            user_id=user_id,
            candidate_count=len(response.transactions),
            correlation_id=correlation_id,
        )

        # APPLYING
        self._state = VoiceSessionState.APPLYING
        return await self._apply(response.transactions, current_date, correlation_id)

    async def _apply(
        self,
        candidates: list,
        current_date: date,
        correlation_id: UUID,
    ) -> VoiceOutcome:
        user_id = self._session.user_id
        categories = self._session.categories
        created: list[Transaction] = []
        fallbacks: list[str] = []
        rejected: list[CandidateFailure] = []
        failed: list[CandidateFailure] = []

        for position, raw in enumerate(candidates):
            validation = self._validator.validate(position, raw, current_date)

            if not validation.is_valid:
                rejected.append(CandidateFailure(
                    position=position,
                    category_name=raw.get("category_name") if isinstance(raw, dict) else None,
                    amount=str(raw.get("amount")) if isinstance(raw, dict) else None,
                    reason="; ".join(issue.message for issue in validation.errors),
                ))
                await self._audit_logger.log_candidate_rejected(
                    user_id=user_id,
                    position=position,
                    issues=[issue.model_dump() for issue in validation.issues],
                    correlation_id=correlation_id,
                )
                continue

            for warning in validation.warnings:
                logger.warning(
                    "candidate_warning",
                    position=position,
                    field=warning.field,
                    message=warning.message,
                )

            candidate = validation.candidate
            try:
                resolution = self._resolver.resolve(candidate.category_name, categories)
            except CategoryResolutionError as e:
                failed.append(CandidateFailure(
                    position=position,
                    category_name=candidate.category_name,
                    amount=str(candidate.amount),
                    reason=str(e),
                ))
                await self._audit_logger.log_candidate_failed(
                    user_id=user_id,
                    position=position,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                continue

            if resolution.used_fallback:
                fallbacks.append(candidate.category_name)
                await self._audit_logger.log_category_fallback(
                    user_id=user_id,
                    extracted_name=candidate.category_name,
                    fallback_category_id=resolution.category.id,
                    correlation_id=correlation_id,
                )

            try:
                data = TransactionCreate(
                    category_id=resolution.category.id,
                    amount=candidate.amount,
                    note=candidate.note,
                    date=datetime.combine(candidate.date, time.min),
                )
                tx = await self._session.add_transaction(data, correlation_id=correlation_id)
            except Exception as e:
                failed.append(CandidateFailure(
                    position=position,
                    category_name=candidate.category_name,
                    amount=str(candidate.amount),
                    reason=str(e),
                ))
                await self._audit_logger.log_candidate_failed(
                    user_id=user_id,
                    position=position,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                continue

            created.append(tx)

        if rejected or failed:
            return VoiceOutcome(
                status=VoiceOutcomeStatus.PARTIAL_FAILURE,
                message=_partial_message(created, rejected, failed, fallbacks),
                created=created,
                fallbacks=fallbacks,
                rejected=rejected,
                failed=failed,
            )

        return VoiceOutcome(
            status=VoiceOutcomeStatus.SUCCESS,
            message=_success_message(created, fallbacks),
            created=created,
            fallbacks=fallbacks,
        )


class InsightFlow:
    """
    Orchestrates the monthly insight.

    Only aggregates for the current month reach the model.
    """

    def __init__(self, insight_agent: Optional[InsightAgent] = None):
        self._insight_agent = insight_agent or InsightAgent()

    async def generate(
        self,
        session: WalletSession,
        now: Optional[datetime] = None,
    ) -> FinancialInsight:
        summary = insight_summary(session.transactions, session.categories, now)
        logger.info(
            "insight_requested",
            user_id=session.user_id,
            transaction_count=summary.transaction_count,
        )
        return await self._insight_agent.generate_insight(summary)


def create_extraction_client() -> ExtractionClient:
    """
    Hosted endpoint when EXTRACTION_ENDPOINT_URL is set,
    otherwise Gemini in-process.
    """
    if get_settings().extraction.endpoint_url:
        return HttpExtractionClient()
    return LocalExtractionClient(VoiceExtractionAgent())


def create_app_components(
    use_storage: bool = True,
) -> tuple[WalletStorageInterface, ExtractionClient, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    Returns:
        (wallet_storage, extraction_client, audit_logger)
    """
    storage: WalletStorageInterface
    audit_logger: AuditLogger

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsWalletStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            storage = InMemoryWalletStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        storage = InMemoryWalletStorage()
        audit_logger = AuditLogger()  # Local-only logging

    return storage, create_extraction_client(), audit_logger
