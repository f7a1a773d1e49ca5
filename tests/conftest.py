"""
Shared fixtures.

No real API calls in tests: storage is in memory, the extraction
client and the recorder are fakes.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio

from wallet.audit import AuditLogger
from wallet.config.settings import AppSettings
from wallet.models.extraction import ExtractionRequest, ExtractionResponse
from wallet.models.finance import Category, TransactionCreate, TransactionType
from wallet.services.audio import AudioRecorder
from wallet.services.extraction import ExtractionClient
from wallet.services.storage import InMemoryAuditStorage, InMemoryWalletStorage, StorageError
from wallet.session import WalletSession
from wallet.validation import CandidateValidator


USER_ID = "user-1"
USER_EMAIL = "jane.doe@example.com"


class FakeExtractionClient(ExtractionClient):
    """Returns canned candidates, raises, or hangs."""

    def __init__(
        self,
        transactions: Optional[list] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.transactions = transactions or []
        self.error = error
        self.delay = delay
        self.requests: list[ExtractionRequest] = []

    async def extract(self, request: ExtractionRequest) -> ExtractionResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return ExtractionResponse(transactions=self.transactions)


class FakeRecorder(AudioRecorder):
    """In-memory recorder with a switchable permission."""

    def __init__(self, clip: bytes = b"fake-audio", granted: bool = True):
        self.clip = clip
        self.granted = granted
        self.started = False

    async def request_permission(self) -> bool:
        return self.granted

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> bytes:
        self.started = False
        return self.clip


class FailingWalletStorage(InMemoryWalletStorage):
    """Rejects transactions with a given amount."""

    def __init__(self, failing_amount: Decimal):
        super().__init__()
        self.failing_amount = failing_amount

    async def create_transaction(self, owner, data: TransactionCreate):
        if data.amount == self.failing_amount:
            raise StorageError("store unavailable")
        return await super().create_transaction(owner, data)


@pytest.fixture
def categories() -> list[Category]:
    return [
        Category(id="food", name="Food", type=TransactionType.EXPENSE, color="#ef4444"),
        Category(id="transport", name="Transport", type=TransactionType.EXPENSE, color="#f97316"),
        Category(id="salary", name="Salary", type=TransactionType.INCOME, color="#10b981"),
    ]


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        max_transaction_amount=10_000.0,
        future_date_tolerance_days=7,
    )


@pytest.fixture
def validator(app_settings) -> CandidateValidator:
    return CandidateValidator(app_settings)


@pytest.fixture
def wallet_storage() -> InMemoryWalletStorage:
    return InMemoryWalletStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest_asyncio.fixture
async def session(wallet_storage, audit_logger) -> WalletSession:
    return await WalletSession.open(
        wallet_storage,
        user_id=USER_ID,
        email=USER_EMAIL,
        audit_logger=audit_logger,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 20, 10, 30)
