"""Unit tests for InitiateTopup and HandleGatewayCallback

Tests cover:
- Top-up records a PENDING credit without touching the balance
- Amount limits, precision and daily limit
- SUCCESS callback applies the credit exactly once
- Replayed and conflicting callbacks
- FAILED/CANCELLED/PENDING callbacks
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from src.app.use_cases.wallet.policy import WalletPolicy
from src.domain.errors import GatewayUnavailable
from src.domain.transaction_state import TransactionStatus
from src.domain.wallet import WalletStatus
from tests.unit.fakes import OWNER_ID


async def start_topup(service, amount="500.00"):
    result = await service.initiate_topup(OWNER_ID, Decimal(amount), "UPI")
    assert result.is_ok(), result.error
    return result.value


@pytest.mark.asyncio
class TestInitiateTopup:
    async def test_creates_pending_credit_and_payment_url(self, service, wallet_repo, mock_uow):
        """
        Given: A user without a wallet
        When: A top-up of 500.00 via UPI is initiated
        Then: Wallet is provisioned, a PENDING credit is recorded, balance stays 0
        """
        # Act
        response = await start_topup(service)

        # Assert
        assert response.transaction.status == TransactionStatus.PENDING
        assert response.transaction.amount == Decimal("500.00")
        assert response.transaction.gateway_transaction_id == response.gateway_transaction_id
        assert response.gateway_transaction_id.startswith("TXN_")
        assert response.payment_url.endswith(response.gateway_transaction_id)
        assert response.transaction.metadata["payment_url"] == response.payment_url

        wallet = await wallet_repo.get_by_owner(OWNER_ID, "INR")
        assert wallet.balance == 0
        mock_uow.commit.assert_called()

    async def test_rejects_amount_above_max(self, service):
        result = await service.initiate_topup(OWNER_ID, Decimal("100000.01"), "UPI")

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_rejects_three_decimal_places(self, service):
        result = await service.initiate_topup(OWNER_ID, Decimal("10.005"), "UPI")

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_rejects_invalid_user_id(self, service):
        result = await service.initiate_topup("not-an-object-id", Decimal("10"), "UPI")

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.details[0]["field"] == "owner_id"

    async def test_rejects_unknown_payment_method(self, service):
        result = await service.initiate_topup(OWNER_ID, Decimal("10"), "CASH")

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_blocked_wallet_cannot_top_up(self, service, make_wallet):
        make_wallet(status=WalletStatus.BLOCKED)

        result = await service.initiate_topup(OWNER_ID, Decimal("10"), "UPI")

        assert result.is_err()
        assert result.error.code == "WALLET_BLOCKED"

    async def test_daily_limit(self, mock_uow, wallet_repo, transaction_repo, gateway):
        """
        Given: A daily top-up limit of 1000.00 and 600.00 already initiated today
        When: Another 500.00 is initiated
        Then: DAILY_LIMIT_EXCEEDED
        """
        from src.app.services.wallet_service import WalletService

        service = WalletService(
            WalletPolicy(daily_topup_limit=Decimal("1000")),
            mock_uow, wallet_repo, transaction_repo, gateway,
        )
        await start_topup(service, "600.00")

        result = await service.initiate_topup(OWNER_ID, Decimal("500.00"), "UPI")

        assert result.is_err()
        assert result.error.code == "DAILY_LIMIT_EXCEEDED"

    async def test_gateway_unavailable(self, service, gateway, transaction_repo, mock_uow):
        gateway.create_payment = AsyncMock(side_effect=GatewayUnavailable("gateway down"))

        result = await service.initiate_topup(OWNER_ID, Decimal("10"), "UPI")

        assert result.is_err()
        assert result.error.code == "GATEWAY_UNAVAILABLE"
        assert transaction_repo.transactions == {}
        mock_uow.rollback.assert_called()


@pytest.mark.asyncio
class TestGatewayCallback:
    async def test_success_credits_wallet(self, service, wallet_repo):
        """
        Given: A PENDING top-up of 500.00
        When: The gateway reports SUCCESS
        Then: Balance becomes 500.00 and the transaction is COMPLETED
        """
        topup = await start_topup(service)

        result = await service.handle_gateway_callback(
            topup.gateway_transaction_id, "SUCCESS", amount=Decimal("500.00"), currency="INR",
            gateway_response={"payment_id": "pay_1"},
        )

        assert result.is_ok()
        assert result.value.replayed is False
        assert result.value.balance == Decimal("500.00")
        assert result.value.transaction.status == TransactionStatus.COMPLETED
        assert result.value.transaction.balance_after == Decimal("500.00")
        wallet = await wallet_repo.get_by_owner(OWNER_ID, "INR")
        assert wallet.balance == 50000

    async def test_replayed_success_credits_once(self, service, wallet_repo):
        """
        Given: A top-up already settled by a SUCCESS callback
        When: The same callback arrives again
        Then: replayed=true and the balance is unchanged
        """
        topup = await start_topup(service)
        await service.handle_gateway_callback(topup.gateway_transaction_id, "SUCCESS")

        result = await service.handle_gateway_callback(topup.gateway_transaction_id, "SUCCESS")

        assert result.is_ok()
        assert result.value.replayed is True
        wallet = await wallet_repo.get_by_owner(OWNER_ID, "INR")
        assert wallet.balance == 50000
        assert wallet.version == 1

    async def test_failure_after_success_is_a_replay(self, service):
        topup = await start_topup(service)
        await service.handle_gateway_callback(topup.gateway_transaction_id, "COMPLETED")

        result = await service.handle_gateway_callback(topup.gateway_transaction_id, "FAILED")

        assert result.is_ok()
        assert result.value.replayed is True
        assert result.value.transaction.status == TransactionStatus.COMPLETED

    async def test_failed_callback_keeps_balance(self, service, wallet_repo):
        topup = await start_topup(service)

        result = await service.handle_gateway_callback(topup.gateway_transaction_id, "FAILED")

        assert result.is_ok()
        assert result.value.transaction.status == TransactionStatus.FAILED
        assert result.value.transaction.failure_reason == "Payment failed"
        wallet = await wallet_repo.get_by_owner(OWNER_ID, "INR")
        assert wallet.balance == 0

    async def test_cancelled_callback_uses_gateway_reason(self, service):
        topup = await start_topup(service)

        result = await service.handle_gateway_callback(
            topup.gateway_transaction_id, "CANCELLED", failure_reason="User closed checkout"
        )

        assert result.value.transaction.status == TransactionStatus.FAILED
        assert result.value.transaction.failure_reason == "User closed checkout"

    async def test_pending_callback_changes_nothing(self, service):
        topup = await start_topup(service)

        result = await service.handle_gateway_callback(topup.gateway_transaction_id, "PENDING")

        assert result.is_ok()
        assert result.value.replayed is False
        assert result.value.transaction.status == TransactionStatus.PENDING

    async def test_unknown_gateway_transaction(self, service):
        result = await service.handle_gateway_callback("TXN_0_0000", "SUCCESS")

        assert result.is_err()
        assert result.error.code == "GATEWAY_CALLBACK_MISMATCH"

    async def test_amount_mismatch_is_rejected(self, service, wallet_repo):
        topup = await start_topup(service)

        result = await service.handle_gateway_callback(
            topup.gateway_transaction_id, "SUCCESS", amount=Decimal("5000.00")
        )

        assert result.is_err()
        assert result.error.code == "GATEWAY_CALLBACK_MISMATCH"
        wallet = await wallet_repo.get_by_owner(OWNER_ID, "INR")
        assert wallet.balance == 0

    async def test_unknown_status_is_a_validation_error(self, service):
        result = await service.handle_gateway_callback("TXN_1", "REFUNDED")

        assert result.is_err()
        assert result.error.code == "VALIDATION_ERROR"

    async def test_invalid_signature(self, mock_uow, wallet_repo, transaction_repo):
        from src.adapter.services.payment_gateway import MockPaymentGateway
        from src.app.services.payment_gateway import compute_signature
        from src.app.services.wallet_service import WalletService
        from src.domain.errors import InvalidSignature

        service = WalletService(
            WalletPolicy(), mock_uow, wallet_repo, transaction_repo,
            MockPaymentGateway(webhook_secret="s3cret"),
        )
        payload = b'{"gateway_transaction_id": "TXN_1", "status": "SUCCESS"}'

        service.verify_callback_signature(payload, compute_signature(payload, "s3cret"))
        with pytest.raises(InvalidSignature):
            service.verify_callback_signature(payload, "deadbeef")
        with pytest.raises(InvalidSignature):
            service.verify_callback_signature(payload, None)
