"""
Tests for the wallet models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with fake external services)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from wallet.models.finance import (
    DEFAULT_CATEGORIES,
    BillingCycle,
    Category,
    CategoryCreate,
    CategoryIcon,
    ProfileUpdate,
    Transaction,
    TransactionCreate,
    TransactionType,
    UserProfile,
)
from wallet.models.extraction import (
    CandidateValidation,
    ExtractedTransaction,
    ExtractionRequest,
    ValidationIssue,
    VoiceOutcome,
    VoiceOutcomeStatus,
)
from wallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestWalletModels:
    """Tests for category, transaction and profile models."""

    def test_category_strips_whitespace(self):
        """Test that whitespace is stripped from category names."""
        category = CategoryCreate(name="  Groceries  ", type=TransactionType.EXPENSE)
        assert category.name == "Groceries"
        assert category.icon == CategoryIcon.TAG

    def test_category_rejects_bad_color(self):
        """Test that colours must be hex."""
        with pytest.raises(ValueError):
            CategoryCreate(name="Pets", type=TransactionType.EXPENSE, color="blue")

    def test_system_default_has_no_owner(self):
        """Test the system default flag."""
        system = Category(id="c1", name="Food", type=TransactionType.EXPENSE)
        own = Category(id="x", name="Pets", type=TransactionType.EXPENSE, owner="u1")
        assert system.is_system_default
        assert not own.is_system_default

    def test_transaction_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            TransactionCreate(
                category_id="c1",
                amount=Decimal("-1"),
                date=datetime(2024, 1, 1),
            )

    def test_transaction_defaults(self):
        """Test note and created_at defaults."""
        tx = Transaction(
            id="t1",
            owner="u1",
            category_id="c1",
            amount=Decimal("12.50"),
            date=datetime(2024, 1, 1),
        )
        assert tx.note == ""
        assert tx.created_at is not None

    def test_profile_billing_day_bounds(self):
        """Test that billing_start_day must be 1-31."""
        UserProfile(id="u1", email="a@b.co", billing_start_day=31)
        with pytest.raises(ValueError):
            UserProfile(id="u1", email="a@b.co", billing_start_day=0)
        with pytest.raises(ValueError):
            UserProfile(id="u1", email="a@b.co", billing_start_day=32)

    def test_profile_update_applies_only_set_fields(self):
        """Test partial profile updates."""
        profile = UserProfile(id="u1", email="a@b.co", full_name="Ann")
        updated = ProfileUpdate(billing_start_day=15).apply_to(profile)
        assert updated.billing_start_day == 15
        assert updated.full_name == "Ann"

    def test_billing_cycle_order_validation(self):
        """Test that a cycle cannot end before it starts."""
        with pytest.raises(ValueError):
            BillingCycle(start=datetime(2024, 2, 1), end=datetime(2024, 1, 1))

    def test_default_categories(self):
        """Test the shipped system categories."""
        assert len(DEFAULT_CATEGORIES) == 8
        assert all(c.is_system_default for c in DEFAULT_CATEGORIES)
        income = [c.name for c in DEFAULT_CATEGORIES if c.type == TransactionType.INCOME]
        assert income == ["Salary", "Freelance", "Investments"]


class TestExtractionModels:
    """Tests for the voice extraction models."""

    def test_request_wire_format_uses_camel_case_date(self):
        """Test that the request serializes currentDate."""
        request = ExtractionRequest(
            audio="YWJj",
            categories=["Food"],
            current_date=date(2024, 3, 10),
        )
        assert request.to_wire() == {
            "audio": "YWJj",
            "categories": ["Food"],
            "currentDate": "2024-03-10",
        }

    def test_request_accepts_wire_alias(self):
        """Test parsing a request body."""
        request = ExtractionRequest.model_validate({
            "audio": "YWJj",
            "categories": [],
            "currentDate": "2024-03-10",
        })
        assert request.current_date == date(2024, 3, 10)

    def test_extracted_transaction_defaults(self):
        """Test optional note and date."""
        candidate = ExtractedTransaction.model_validate({
            "amount": 50,
            "category_name": "Transport",
            "note": None,
        })
        assert candidate.note == ""
        assert candidate.date is None
        assert candidate.amount == Decimal("50")

    def test_extracted_transaction_keeps_day_of_timestamp(self):
        """Test that full timestamps are cut to the day."""
        candidate = ExtractedTransaction.model_validate({
            "amount": 5,
            "category_name": "Food",
            "date": "2024-03-10T12:00:00Z",
        })
        assert candidate.date == date(2024, 3, 10)

    def test_extracted_transaction_unknown_type_is_dropped(self):
        """Test that the informational type tolerates junk."""
        candidate = ExtractedTransaction.model_validate({
            "amount": 5,
            "category_name": "Food",
            "type": "spending",
        })
        assert candidate.type is None

    def test_extracted_transaction_requires_category_name(self):
        """Test that an empty category name is rejected."""
        with pytest.raises(ValueError):
            ExtractedTransaction.model_validate({"amount": 5, "category_name": ""})

    def test_candidate_validation_warnings_only(self):
        """Test that warnings don't invalidate a candidate."""
        result = CandidateValidation(
            position=0,
            candidate=ExtractedTransaction(amount=Decimal("1"), category_name="Food"),
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date is in the future",
                    severity="warning",
                ),
            ],
        )
        assert result.is_valid
        assert len(result.warnings) == 1
        assert result.errors == []

    def test_candidate_validation_without_candidate_is_invalid(self):
        """Test that a candidate that failed to parse is invalid."""
        result = CandidateValidation(position=2)
        assert not result.is_valid

    def test_voice_outcome_succeeded(self):
        """Test the success flag."""
        assert VoiceOutcome(status=VoiceOutcomeStatus.SUCCESS, message="ok").succeeded
        assert not VoiceOutcome(
            status=VoiceOutcomeStatus.EMPTY_EXTRACTION,
            message="nothing",
        ).succeeded


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test event",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEventBuilder.extraction_failed(
            user_id="u1",
            reason="timeout",
            error_message="took too long",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "extraction_failed"
        assert log_dict["severity"] == "error"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEventBuilder.session_opened("u1", transaction_count=3, category_count=8)
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "session_opened"
        assert row[4] == "u1"
        assert row[11] == "True"

    def test_voice_created_transaction_is_not_a_user_action(self):
        """Test that voice-created transactions are marked as such."""
        manual = AuditEventBuilder.transaction_created("u1", "t1", "c1", "10")
        voice = AuditEventBuilder.transaction_created(
            "u1", "t2", "c1", "10", correlation_id=uuid4()
        )
        assert manual.is_user_action
        assert not voice.is_user_action

    def test_category_fallback_is_a_warning(self):
        """Test the fallback event."""
        event = AuditEventBuilder.category_fallback_used(
            user_id="u1",
            extracted_name="Parking Fees",
            fallback_category_id="c1",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["extracted_name"] == "Parking Fees"
