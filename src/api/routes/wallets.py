"""Wallet API Routes

FastAPI routes for user-facing wallet operations.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from src.api.error import ClientError
from src.api.schemas.wallet_request import TopupRequestSchema
from src.app.services.wallet_service import WalletService
from src.app.use_cases.wallet.dtos import (
    BalanceResponseDTO,
    ListTransactionsResponseDTO,
    TopupResponseDTO,
    WalletSummaryDTO,
)
from src.depends import get_wallet_service

router = APIRouter(prefix="/wallets", tags=["Wallets"])


@router.get(
    "/{user_id}/balance",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_balance(
    user_id: str,
    currency: Optional[str] = Query(default=None, description="Currency code (defaults to INR)"),
    service: WalletService = Depends(get_wallet_service),
):
    """
    Get a user's wallet balance.

    The wallet is created with a zero balance on first access.

    **Returns:**
    - `balance`: committed balance
    - `available_balance`: balance minus pending debits
    - `pending_credit` / `pending_debit`: totals of PENDING transactions
    - 400: Invalid user ID or unsupported currency
    """
    result = await service.get_owner_balance(user_id, currency)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{user_id}/topup",
    response_model=TopupResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {
            "description": "Validation error or daily limit exceeded",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "DAILY_LIMIT_EXCEEDED",
                            "message": "Daily top-up limit of 50000.00 INR exceeded"
                        }
                    }
                }
            }
        },
        403: {"description": "Wallet is blocked or inactive"},
        502: {"description": "Payment gateway unavailable"},
    }
)
async def initiate_topup(
    user_id: str,
    request: TopupRequestSchema,
    service: WalletService = Depends(get_wallet_service),
):
    """
    Start a wallet top-up through the payment gateway.

    A PENDING credit transaction is recorded and the gateway checkout URL
    is returned. The balance only changes once the gateway confirms the
    payment through the webhook.

    **Request body:**
    - `amount` (required): Top-up amount (0.01 - 100,000, max 2 decimals)
    - `payment_method` (required): UPI, CREDIT_CARD, DEBIT_CARD, NET_BANKING, WALLET
    - `currency` (optional): Currency code (defaults to INR)

    **Example request:**
    ```json
    {
      "amount": "500.00",
      "payment_method": "UPI"
    }
    ```

    **Returns:**
    - 201: Top-up initiated, `payment_url` to redirect the user to
    - 400: Invalid request parameters or daily limit exceeded
    - 403: Wallet is blocked or inactive
    - 502: Payment gateway unavailable
    """
    result = await service.initiate_topup(
        owner_id=user_id,
        amount=request.amount,
        payment_method=request.payment_method,
        currency=request.currency,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/{user_id}/transactions",
    response_model=ListTransactionsResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def list_transactions(
    user_id: str,
    currency: Optional[str] = Query(default=None),
    transaction_type: Optional[str] = Query(default=None, description="CREDIT or DEBIT"),
    status_filter: Optional[str] = Query(default=None, alias="status"),
    reference_type: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    page: int = Query(default=1),
    limit: int = Query(default=20),
    sort_by: str = Query(default="createdAt"),
    sort_order: str = Query(default="desc"),
    service: WalletService = Depends(get_wallet_service),
):
    """
    List a user's wallet transactions with filters and pagination.

    **Query parameters:**
    - `transaction_type`: CREDIT or DEBIT
    - `status`: PENDING, COMPLETED, FAILED, ROLLED_BACK
    - `reference_type`: ORDER, REFUND, PAYMENT_GATEWAY, ADMIN_ADJUSTMENT, WITHDRAWAL
    - `start_date` / `end_date`: ISO 8601 creation date range
    - `page` (default 1), `limit` (default 20, max 100)
    - `sort_by`: createdAt, amount, status or transaction_type
    - `sort_order`: asc or desc

    **Returns:**
    - 200: Page of transactions with `total` and `total_pages`
    - 400: Invalid filter values
    """
    result = await service.list_owner_transactions(
        user_id,
        currency=currency,
        transaction_type=transaction_type,
        status=status_filter,
        reference_type=reference_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/{user_id}/summary",
    response_model=WalletSummaryDTO,
    status_code=status.HTTP_200_OK,
)
async def get_summary(
    user_id: str,
    days: int = Query(default=30, description="Lookback window in days (1 - 365)"),
    currency: Optional[str] = Query(default=None),
    service: WalletService = Depends(get_wallet_service),
):
    """Completed credit and debit totals over the last `days` days."""
    result = await service.get_summary(user_id, days=days, currency=currency)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
