"""Internal Order Routes

Service-to-service endpoints used by the order and refund flows.
"""

from fastapi import APIRouter, Depends, status

from src.api.error import ClientError
from src.api.schemas.wallet_request import OrderDebitRequestSchema, RefundCreditRequestSchema
from src.app.services.wallet_service import WalletService
from src.app.use_cases.wallet.dtos import LedgerMutationResponseDTO
from src.depends import get_wallet_service

router = APIRouter(prefix="/internal/wallets", tags=["Internal"])


@router.post(
    "/{user_id}/order-debit",
    response_model=LedgerMutationResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Insufficient balance",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_FUNDS",
                            "message": "Insufficient balance. Required: 250.00, Available: 100.00"
                        }
                    }
                }
            }
        },
        403: {"description": "Wallet is blocked or inactive"},
    }
)
async def debit_for_order(
    user_id: str,
    request: OrderDebitRequestSchema,
    service: WalletService = Depends(get_wallet_service),
):
    """
    Pay for an order from the wallet.

    Repeating the call for the same order (or `idempotency_key`) returns
    the original debit with `duplicate: true` instead of charging again.

    **Example request:**
    ```json
    {
      "amount": "250.00",
      "order_id": "ORD-10042"
    }
    ```
    """
    result = await service.debit_for_order(
        owner_id=user_id,
        amount=request.amount,
        order_id=request.order_id,
        currency=request.currency,
        idempotency_key=request.idempotency_key,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/{user_id}/refund-credit",
    response_model=LedgerMutationResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def credit_for_refund(
    user_id: str,
    request: RefundCreditRequestSchema,
    service: WalletService = Depends(get_wallet_service),
):
    """
    Credit a refund to the wallet.

    Keyed on `refund_id` (falling back to `order_id`) so a retried refund
    is credited once.
    """
    result = await service.credit_for_refund(
        owner_id=user_id,
        amount=request.amount,
        order_id=request.order_id,
        refund_id=request.refund_id,
        reason=request.reason,
        currency=request.currency,
        idempotency_key=request.idempotency_key,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
