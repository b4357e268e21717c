"""
API Routes - FastAPI endpoints called by the game client.

Every endpoint answers HTTP 200 with an OperationResponse; failures are
reported through ``success`` and ``message``, not the status code.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from gamebridge.api.dependencies import get_ledger
from gamebridge.models.api import OperationResponse, SaveGameDataRequest, VerifyPurchaseRequest
from gamebridge.services.purchase_ledger import PurchaseLedger

router = APIRouter(prefix="/v1/users/{user_id}", tags=["users"])

UserId = Annotated[
    str, Path(min_length=1, max_length=255, description="Player identity from the auth provider")
]


@router.post(
    "/register",
    response_model=OperationResponse,
    response_model_exclude_none=True,
)
async def register_user(
    user_id: UserId,
    ledger: PurchaseLedger = Depends(get_ledger),
) -> OperationResponse:
    """Register the player. Safe to call on every login."""
    result = await ledger.register(user_id)
    return OperationResponse.from_result(result)


@router.put(
    "/game-data",
    response_model=OperationResponse,
    response_model_exclude_none=True,
)
async def save_game_data(
    user_id: UserId,
    request: SaveGameDataRequest,
    ledger: PurchaseLedger = Depends(get_ledger),
) -> OperationResponse:
    """Save the player's serialized game state."""
    result = await ledger.save_game_data(user_id, request.game_data)
    return OperationResponse.from_result(result)


@router.get(
    "/game-data",
    response_model=OperationResponse,
    response_model_exclude_none=True,
)
async def get_game_data(
    user_id: UserId,
    ledger: PurchaseLedger = Depends(get_ledger),
) -> OperationResponse:
    """Load the player's game state; returned in ``payload``."""
    result = await ledger.get_game_data(user_id)
    return OperationResponse.from_result(result)


@router.post(
    "/purchases",
    response_model=OperationResponse,
    response_model_exclude_none=True,
)
async def verify_purchase(
    user_id: UserId,
    request: VerifyPurchaseRequest,
    ledger: PurchaseLedger = Depends(get_ledger),
) -> OperationResponse:
    """
    Verify a Google Play receipt and record the purchase.

    Flow:
    1. Game completes a purchase through the purchasing library
    2. Game posts the receipt string here
    3. Backend verifies it with the Google Play Developer API
    4. Backend records the purchase token (a token is accepted only once)

    The game should grant the item only when ``success`` is true.
    """
    result = await ledger.verify_and_save(user_id, request.receipt)
    return OperationResponse.from_result(result)


@router.get(
    "/subscription/price-change",
    response_model=OperationResponse,
    response_model_exclude_none=True,
)
async def check_price_change(
    user_id: UserId,
    ledger: PurchaseLedger = Depends(get_ledger),
) -> OperationResponse:
    """
    Check whether the player's subscription has a price change to accept.

    ``payload`` is the subscription product id when one is pending.
    """
    result = await ledger.check_price_change(user_id)
    return OperationResponse.from_result(result)
