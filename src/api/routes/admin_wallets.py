"""Admin Wallet Routes

FastAPI routes for back-office wallet management.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, Query, status

from src.api.error import ClientError
from src.api.schemas.wallet_request import (
    AdjustBalanceRequestSchema,
    RollbackRequestSchema,
    WalletStatusRequestSchema,
)
from src.app.services.wallet_service import WalletService
from src.app.use_cases.wallet.dtos import (
    LedgerMutationResponseDTO,
    ListWalletsResponseDTO,
    ReconciliationResultDTO,
    WalletDTO,
    WalletStatsDTO,
)
from src.depends import get_wallet_service

router = APIRouter(prefix="/admin/wallets", tags=["Admin Wallets"])


@router.get("", response_model=ListWalletsResponseDTO, status_code=status.HTTP_200_OK)
async def list_wallets(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    currency: Optional[str] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
    min_balance: Optional[Decimal] = Query(default=None),
    max_balance: Optional[Decimal] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    search: Optional[str] = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=20),
    service: WalletService = Depends(get_wallet_service),
):
    """
    List wallets with filters and pagination.

    **Query parameters:**
    - `status`: ACTIVE, BLOCKED, INACTIVE
    - `currency`, `user_id`
    - `min_balance` / `max_balance`: balance range in major units
    - `start_date` / `end_date`: wallet creation date range
    - `search`: substring of user ID or wallet ID
    - `page` (default 1), `limit` (default 20, max 100)
    """
    result = await service.list_wallets(
        status=status_filter,
        currency=currency,
        owner_id=user_id,
        min_balance=min_balance,
        max_balance=max_balance,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get("/stats", response_model=WalletStatsDTO, status_code=status.HTTP_200_OK)
async def get_stats(service: WalletService = Depends(get_wallet_service)):
    """Wallet counts by status and balance totals per currency."""
    result = await service.get_stats()

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/reconcile",
    response_model=ReconciliationResultDTO,
    status_code=status.HTTP_200_OK,
)
async def reconcile(service: WalletService = Depends(get_wallet_service)):
    """
    Compare every cached wallet balance with the sum of its applied
    transactions and report the wallets that disagree. Read-only.
    """
    result = await service.reconcile()

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/transactions/{transaction_id}/rollback",
    response_model=LedgerMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        409: {
            "description": "Transaction is not COMPLETED",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INVALID_STATE_TRANSITION",
                            "message": "Cannot move transaction from ROLLED_BACK to ROLLED_BACK"
                        }
                    }
                }
            }
        },
        402: {"description": "Wallet cannot absorb the compensating debit"},
    }
)
async def rollback_transaction(
    transaction_id: str,
    request: Optional[RollbackRequestSchema] = None,
    x_admin_id: Optional[str] = Header(default=None),
    service: WalletService = Depends(get_wallet_service),
):
    """
    Reverse a COMPLETED transaction.

    A compensating transaction of the opposite type is applied and the
    original moves to ROLLED_BACK. The original row is never edited in
    place, and a second rollback of the same transaction is rejected.

    **Returns:**
    - 200: The compensating transaction and the updated wallet
    - 402: Reversing a credit would overdraw the wallet
    - 404: Transaction not found
    - 409: Transaction is not COMPLETED
    """
    result = await service.rollback_transaction(
        transaction_id,
        reason=request.reason if request else None,
        admin_id=x_admin_id,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{user_id}/adjust",
    response_model=LedgerMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Debit would overdraw the wallet",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_FUNDS",
                            "message": "Insufficient balance. Required: 100.00, Available: 50.00"
                        }
                    }
                }
            }
        },
        400: {"description": "Validation error"},
    }
)
async def adjust_balance(
    user_id: str,
    request: AdjustBalanceRequestSchema,
    x_admin_id: str = Header(..., description="Acting admin user ID"),
    service: WalletService = Depends(get_wallet_service),
):
    """
    Manually credit or debit a user's wallet.

    The adjustment is recorded as an ADMIN_ADJUSTMENT transaction
    attributed to the admin in `X-Admin-Id` and applied immediately.

    **Request body:**
    - `amount` (required): 0.01 - 500,000
    - `type` (required): CREDIT or DEBIT
    - `description` (required): 5 - 250 characters
    - `currency` (optional): defaults to INR
    - `idempotency_key` (optional): repeat-safe key

    **Example request:**
    ```json
    {
      "amount": "100.00",
      "type": "CREDIT",
      "description": "Goodwill credit for delayed delivery"
    }
    ```

    **Returns:**
    - 200: Adjustment applied
    - 402: Debit would overdraw the wallet
    - 403: Wallet is blocked (debits only)
    - 400: Invalid request parameters
    """
    result = await service.adjust_balance(
        owner_id=user_id,
        amount=request.amount,
        transaction_type=request.type,
        description=request.description,
        admin_id=x_admin_id,
        currency=request.currency,
        idempotency_key=request.idempotency_key,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.patch(
    "/{user_id}/status",
    response_model=List[WalletDTO],
    status_code=status.HTTP_200_OK,
)
async def set_wallet_status(
    user_id: str,
    request: WalletStatusRequestSchema,
    service: WalletService = Depends(get_wallet_service),
):
    """
    Block, unblock or deactivate a user's wallets.

    Applies to every wallet of the user, or only the one in `currency`.
    """
    result = await service.set_status(user_id, request.status, currency=request.currency)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
