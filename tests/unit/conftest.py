import itertools
import pytest
from unittest.mock import AsyncMock
from src.adapter.services.payment_gateway import MockPaymentGateway
from src.app.services.ledger_store import LedgerStore
from src.app.use_cases.wallet.policy import WalletPolicy
from src.domain.wallet import Wallet
from tests.unit.fakes import (
    OWNER_ID,
    InMemoryWalletRepository,
    InMemoryWalletTransactionRepository,
)


@pytest.fixture
def wallet_repo():
    return InMemoryWalletRepository()


@pytest.fixture
def transaction_repo():
    return InMemoryWalletTransactionRepository()


@pytest.fixture
def fake_sleep():
    return AsyncMock()


@pytest.fixture
def ledger(mock_uow, wallet_repo, transaction_repo, fake_sleep):
    return LedgerStore(
        mock_uow, wallet_repo, transaction_repo, max_attempts=5, sleep=fake_sleep
    )


@pytest.fixture
def policy():
    return WalletPolicy()


@pytest.fixture
def gateway(monkeypatch):
    counter = itertools.count(1)
    monkeypatch.setattr(
        "src.adapter.services.payment_gateway.generate_gateway_transaction_id",
        lambda: f"TXN_TEST_{next(counter)}",
    )
    return MockPaymentGateway()


@pytest.fixture
def make_wallet(wallet_repo):
    """Store a wallet directly, bypassing the ledger"""
    def _make(owner_id: str = OWNER_ID, currency: str = "INR", balance: int = 0, **fields):
        wallet = Wallet(owner_id=owner_id, currency=currency, balance=balance, **fields)
        wallet_repo.wallets[wallet.id] = wallet
        return wallet
    return _make


@pytest.fixture
def service(policy, mock_uow, wallet_repo, transaction_repo, gateway):
    from src.app.services.wallet_service import WalletService

    return WalletService(policy, mock_uow, wallet_repo, transaction_repo, gateway)
