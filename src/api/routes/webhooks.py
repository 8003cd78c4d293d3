"""Webhook Routes

Inbound payment gateway callbacks.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from src.api.error import ClientError
from src.api.schemas.wallet_request import GatewayCallbackRequestSchema
from src.app.services.wallet_service import WalletService
from src.app.use_cases.wallet.dtos import CallbackResponseDTO
from src.depends import get_wallet_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post(
    "/payment-gateway",
    response_model=CallbackResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        401: {"description": "Invalid webhook signature"},
        409: {
            "description": "Callback does not match a recorded top-up",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "GATEWAY_CALLBACK_MISMATCH",
                            "message": "Unknown gateway transaction TXN_1704067200000_4821"
                        }
                    }
                }
            }
        },
    }
)
async def payment_gateway_callback(
    request: Request,
    x_gateway_signature: Optional[str] = Header(default=None),
    service: WalletService = Depends(get_wallet_service),
):
    """
    Receive a payment result from the gateway.

    The raw body is checked against the `X-Gateway-Signature` header
    (hex HMAC-SHA256) when a webhook secret is configured. Callbacks are
    idempotent: a repeat for an already resolved top-up returns the stored
    outcome with `replayed: true` and never credits twice.

    **Example request:**
    ```json
    {
      "gateway_transaction_id": "TXN_1704067200000_4821",
      "status": "SUCCESS",
      "amount": "500.00",
      "currency": "INR"
    }
    ```

    **Returns:**
    - 200: Callback processed (or replayed)
    - 401: Signature missing or invalid
    - 409: Unknown gateway transaction or amount/currency mismatch
    """
    payload = await request.body()
    service.verify_callback_signature(payload, x_gateway_signature)

    try:
        callback = GatewayCallbackRequestSchema.model_validate_json(payload)
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    logger.info(
        f"Gateway callback {callback.gateway_transaction_id} status={callback.status.value}"
    )

    result = await service.handle_gateway_callback(
        gateway_transaction_id=callback.gateway_transaction_id,
        status=callback.status,
        amount=callback.amount,
        currency=callback.currency,
        failure_reason=callback.failure_reason,
        gateway_response=callback.gateway_response,
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
