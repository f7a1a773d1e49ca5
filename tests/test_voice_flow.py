"""
Tests for the voice transaction flow.

The extraction client and the recorder are fakes; storage is in memory.
"""

import base64
from datetime import date, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
import requests

from wallet.models.audit import AuditEventType
from wallet.models.extraction import VoiceOutcomeStatus, VoiceSessionState
from wallet.orchestrator import (
    MESSAGE_EMPTY_EXTRACTION,
    MESSAGE_TIMEOUT,
    MESSAGE_TRANSPORT_FAILURE,
    VoiceTransactionFlow,
)
from wallet.services.extraction import (
    ExtractionTimeoutError,
    HttpExtractionClient,
    SessionBusyError,
    TransportFailureError,
)
from wallet.services.extraction import client as client_module
from wallet.session import WalletSession

from conftest import FailingWalletStorage, FakeExtractionClient, FakeRecorder


NOW = datetime(2024, 3, 20, 10, 30)


def _flow(session, client, validator, recorder=None, timeout=5.0) -> VoiceTransactionFlow:
    return VoiceTransactionFlow(
        session,
        client,
        recorder=recorder,
        validator=validator,
        timeout_seconds=timeout,
        clock=lambda: NOW,
    )


class TestRecording:
    """start_recording / stop_and_process."""

    @pytest.mark.asyncio
    async def test_record_and_process(self, session, validator):
        """Test the full happy path from the microphone."""
        client = FakeExtractionClient(transactions=[
            {"amount": 50, "note": "taxi", "category_name": "transport", "date": "2024-03-20"},
        ])
        recorder = FakeRecorder(clip=b"hello")
        flow = _flow(session, client, validator, recorder)

        assert await flow.start_recording() is None
        assert flow.state == VoiceSessionState.RECORDING
        assert recorder.started

        outcome = await flow.stop_and_process()
        assert outcome.status == VoiceOutcomeStatus.SUCCESS
        assert outcome.message == "Auto-created 1 transactions!"
        assert flow.state == VoiceSessionState.IDLE

        request = client.requests[0]
        assert base64.b64decode(request.audio) == b"hello"
        assert request.current_date == date(2024, 3, 20)
        assert request.categories[0] == "Food & Dining"

    @pytest.mark.asyncio
    async def test_permission_denied_returns_to_idle(self, session, validator, audit_storage):
        """Test that a refused microphone is reported, not raised."""
        flow = _flow(session, FakeExtractionClient(), validator, FakeRecorder(granted=False))

        outcome = await flow.start_recording()
        assert outcome.status == VoiceOutcomeStatus.PERMISSION_DENIED
        assert "microphone" in outcome.message
        assert flow.state == VoiceSessionState.IDLE
        assert audit_storage.events[-1].event_type == AuditEventType.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_second_start_is_busy(self, session, validator):
        """Test that only one voice session runs at a time."""
        flow = _flow(session, FakeExtractionClient(), validator, FakeRecorder())
        await flow.start_recording()
        with pytest.raises(SessionBusyError):
            await flow.start_recording()
        with pytest.raises(SessionBusyError):
            await flow.process_audio(b"clip")

    @pytest.mark.asyncio
    async def test_stop_without_recording_is_a_no_op(self, session, validator):
        """Test stopping when idle."""
        flow = _flow(session, FakeExtractionClient(), validator, FakeRecorder())
        assert await flow.stop_and_process() is None


class TestExtractionOutcomes:
    """Empty, transport failure and timeout."""

    @pytest.mark.asyncio
    async def test_zero_candidates_is_empty_extraction(self, session, validator):
        """Test that an empty list is not a transport failure."""
        flow = _flow(session, FakeExtractionClient(transactions=[]), validator)
        outcome = await flow.process_audio(b"clip")
        assert outcome.status == VoiceOutcomeStatus.EMPTY_EXTRACTION
        assert outcome.message == MESSAGE_EMPTY_EXTRACTION
        assert session.transactions == []

    @pytest.mark.asyncio
    async def test_empty_clip_is_empty_extraction(self, session, validator, audit_storage):
        """Test that silence is never sent."""
        client = FakeExtractionClient()
        outcome = await _flow(session, client, validator).process_audio(b"")
        assert outcome.status == VoiceOutcomeStatus.EMPTY_EXTRACTION
        assert client.requests == []
        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.EXTRACTION_EMPTY in types
        assert AuditEventType.EXTRACTION_REQUESTED not in types

    @pytest.mark.asyncio
    async def test_transport_failure_mutates_nothing(self, session, validator, audit_storage):
        """Test a failing endpoint."""
        client = FakeExtractionClient(error=TransportFailureError("HTTP 500"))
        flow = _flow(session, client, validator)

        outcome = await flow.process_audio(b"clip")
        assert outcome.status == VoiceOutcomeStatus.TRANSPORT_FAILURE
        assert outcome.message == MESSAGE_TRANSPORT_FAILURE
        assert session.transactions == []
        assert flow.state == VoiceSessionState.IDLE
        failed = [e for e in audit_storage.events if e.event_type == AuditEventType.EXTRACTION_FAILED]
        assert failed[0].error_message == "HTTP 500"

    @pytest.mark.asyncio
    async def test_unexpected_client_error_is_converted(self, session, validator):
        """Test that nothing propagates out of the flow."""
        client = FakeExtractionClient(error=ValueError("bug"))
        outcome = await _flow(session, client, validator).process_audio(b"clip")
        assert outcome.status == VoiceOutcomeStatus.TRANSPORT_FAILURE

    @pytest.mark.asyncio
    async def test_timeout(self, session, validator):
        """Test that a hanging endpoint is cut off."""
        client = FakeExtractionClient(transactions=[{"amount": 1, "category_name": "Food"}], delay=1.0)
        flow = _flow(session, client, validator, timeout=0.05)

        outcome = await flow.process_audio(b"clip")
        assert outcome.status == VoiceOutcomeStatus.TIMEOUT
        assert outcome.message == MESSAGE_TIMEOUT
        assert session.transactions == []
        assert flow.state == VoiceSessionState.IDLE

    @pytest.mark.asyncio
    async def test_client_timeout_is_a_timeout(self, session, validator):
        """Test a client that gives up before the flow does."""
        client = FakeExtractionClient(error=ExtractionTimeoutError(45))
        outcome = await _flow(session, client, validator).process_audio(b"clip")
        assert outcome.status == VoiceOutcomeStatus.TIMEOUT
        assert outcome.message == MESSAGE_TIMEOUT

    @pytest.mark.asyncio
    async def test_http_read_timeout_is_a_timeout(self, monkeypatch, session, validator):
        """Test a slow hosted endpoint end to end."""
        def slow_post(url, json=None, headers=None, timeout=None):
            raise requests.ReadTimeout("read timed out")

        monkeypatch.setattr(client_module.requests, "post", slow_post)
        client = HttpExtractionClient(
            endpoint_url="https://example.test/functions/v1/analyze-finances",
            api_key="anon-key",
            timeout_seconds=5,
        )

        outcome = await _flow(session, client, validator).process_audio(b"clip")

        assert outcome.status == VoiceOutcomeStatus.TIMEOUT
        assert outcome.message == MESSAGE_TIMEOUT
        assert session.transactions == []


class TestApplying:
    """Candidates are validated, resolved and saved in order."""

    @pytest.mark.asyncio
    async def test_candidates_saved_in_order(self, session, validator):
        """Test several candidates and the date default."""
        client = FakeExtractionClient(transactions=[
            {"amount": 50, "category_name": "Transport", "date": "2024-03-18"},
            {"amount": 3000, "note": "March pay", "category_name": "SALARY"},
        ])
        outcome = await _flow(session, client, validator).process_audio(b"clip")

        assert outcome.status == VoiceOutcomeStatus.SUCCESS
        assert [t.category_id for t in outcome.created] == ["c2", "c6"]
        assert outcome.created[0].date == datetime(2024, 3, 18)
        assert outcome.created[1].date == datetime(2024, 3, 20)
        assert outcome.created[1].note == "March pay"
        assert len(session.transactions) == 2

    @pytest.mark.asyncio
    async def test_unknown_category_falls_back_visibly(self, session, validator, audit_storage):
        """Test that the fallback is surfaced."""
        client = FakeExtractionClient(transactions=[
            {"amount": 12, "category_name": "Parking Fees"},
        ])
        outcome = await _flow(session, client, validator).process_audio(b"clip")

        assert outcome.status == VoiceOutcomeStatus.SUCCESS
        assert outcome.created[0].category_id == "c1"
        assert outcome.fallbacks == ["Parking Fees"]
        assert "Parking Fees" in outcome.message
        types = [e.event_type for e in audit_storage.events]
        assert AuditEventType.CATEGORY_FALLBACK_USED in types

    @pytest.mark.asyncio
    async def test_invalid_candidate_is_rejected_others_kept(self, session, validator):
        """Test partial failure from validation."""
        client = FakeExtractionClient(transactions=[
            {"amount": 10, "category_name": "Transport"},
            {"amount": -5, "category_name": "Transport"},
            {"amount": "a lot", "category_name": "Shopping"},
            {"amount": 20, "category_name": "Shopping"},
        ])
        outcome = await _flow(session, client, validator).process_audio(b"clip")

        assert outcome.status == VoiceOutcomeStatus.PARTIAL_FAILURE
        assert len(outcome.created) == 2
        assert [r.position for r in outcome.rejected] == [1, 2]
        assert outcome.message.startswith("Saved 2 of 4 transactions.")

    @pytest.mark.asyncio
    async def test_overlong_note_is_rejected_not_raised(self, session, validator):
        """Test that a rambling note rejects one candidate and keeps the rest."""
        client = FakeExtractionClient(transactions=[
            {"amount": 10, "category_name": "Transport"},
            {"amount": 20, "category_name": "Transport", "note": "x" * 600},
        ])
        flow = _flow(session, client, validator)

        outcome = await flow.process_audio(b"clip")

        assert outcome.status == VoiceOutcomeStatus.PARTIAL_FAILURE
        assert [t.amount for t in outcome.created] == [Decimal("10")]
        assert [r.position for r in outcome.rejected] == [1]
        assert len(session.transactions) == 1
        assert flow.state == VoiceSessionState.IDLE

    @pytest.mark.asyncio
    async def test_store_failure_does_not_roll_back(self, validator, audit_logger):
        """Test that earlier saves survive a later failure."""
        storage = FailingWalletStorage(failing_amount=Decimal("99"))
        session = await WalletSession.open(
            storage, user_id="u2", email="u2@example.com", audit_logger=audit_logger,
        )
        client = FakeExtractionClient(transactions=[
            {"amount": 10, "category_name": "Transport"},
            {"amount": 99, "category_name": "Transport"},
            {"amount": 30, "category_name": "Transport"},
        ])
        outcome = await _flow(session, client, validator).process_audio(b"clip")

        assert outcome.status == VoiceOutcomeStatus.PARTIAL_FAILURE
        assert [t.amount for t in outcome.created] == [Decimal("10"), Decimal("30")]
        assert outcome.failed[0].position == 1
        assert "could not be saved" in outcome.message
        assert len(await storage.list_transactions("u2")) == 2

    @pytest.mark.asyncio
    async def test_events_share_correlation_id(self, session, validator, audit_storage):
        """Test that one voice session is traceable end to end."""
        client = FakeExtractionClient(transactions=[
            {"amount": 10, "category_name": "Transport"},
        ])
        await _flow(session, client, validator).process_audio(b"clip")

        requested = [e for e in audit_storage.events if e.event_type == AuditEventType.EXTRACTION_REQUESTED]
        correlation_id = requested[0].correlation_id
        trail = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in trail] == [
            AuditEventType.EXTRACTION_REQUESTED,
            AuditEventType.EXTRACTION_COMPLETED,
            AuditEventType.TRANSACTION_CREATED,
        ]
