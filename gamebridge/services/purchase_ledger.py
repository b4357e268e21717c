"""
Purchase Ledger - Game data persistence and verified purchase recording.

Every public operation returns an OperationResult and never raises: failures
from the record store or the billing platform are translated at the
operation boundary by ``ledger_operation``.

Purchases are recorded verify-then-commit:
    1. Parse the client receipt and classify it (one-time or subscription)
    2. Verify it with the billing platform
    3. Record it under its purchase token, rejecting tokens already recorded
    4. For subscriptions, copy the receipt under the user for price-change checks
"""

import functools
import time
from collections.abc import Awaitable, Callable
from typing import Any

from structlog import get_logger

from gamebridge.exceptions import BridgeError, ReceiptFormatError, StoreError
from gamebridge.models.domain import OperationResult, PurchaseKind, Receipt
from gamebridge.observability.logging import log_context, token_prefix
from gamebridge.observability.metrics import metrics
from gamebridge.observability.tracing import trace_operation
from gamebridge.services.receipt_oracle import ReceiptOracle
from gamebridge.services.receipt_parser import parse_receipt
from gamebridge.services.record_store import (
    PURCHASES_COLLECTION,
    SUBSCRIPTION_RECEIPT_ID,
    USERS_COLLECTION,
    RecordStore,
    subscription_collection,
)

logger = get_logger(__name__)

# Client-visible messages; the game client matches on some of them
MSG_SAVED = "Save in database"
MSG_DUPLICATE_TOKEN = "Purchase token already exists in the database"
MSG_NOT_REGISTERED = "User is not registered in the database"
MSG_NO_SUBSCRIPTION = "No active subscription"
MSG_PRICE_CHANGE_PENDING = "Subscription price change and has not been accepted by user"
MSG_PRICE_UNCHANGED = "Subscription price has not changed or has been accepted by user"

Operation = Callable[..., Awaitable[OperationResult]]


def ledger_operation(name: str) -> Callable[[Operation], Operation]:
    """
    Wrap a ledger operation with logging context, tracing and metrics, and
    convert any failure it raises into a failed OperationResult.
    """

    def decorator(func: Operation) -> Operation:
        @functools.wraps(func)
        async def wrapper(
            self: "PurchaseLedger", user_id: str, *args: Any, **kwargs: Any
        ) -> OperationResult:
            start_time = time.time()
            with log_context(operation=name, user_id=user_id):
                try:
                    with trace_operation(f"ledger.{name}", user_id=user_id):
                        result = await func(self, user_id, *args, **kwargs)
                except BridgeError as exc:
                    logger.warning("ledger_operation_failed", error=str(exc))
                    metrics.record_error(type(exc).__name__, name)
                    result = OperationResult.from_error(exc)
                except Exception as exc:
                    logger.exception("ledger_operation_unexpected_error")
                    metrics.record_error(type(exc).__name__, name)
                    result = OperationResult.from_error(exc)

            metrics.record_ledger_operation(name, result.succeeded, time.time() - start_time)
            return result

        return wrapper

    return decorator


class PurchaseLedger:
    """Per-player save data and purchase records on top of a record store."""

    def __init__(self, store: RecordStore, oracle: ReceiptOracle) -> None:
        """
        Initialize the ledger.

        Args:
            store: Document store holding users and purchases
            oracle: Billing platform verifier
        """
        self._store = store
        self._oracle = oracle

    # ========================================================================
    # Registration & game data
    # ========================================================================

    @ledger_operation("register")
    async def register(self, user_id: str) -> OperationResult:
        """Mark the user as registered, keeping any saved game data."""
        await self._store.set(USERS_COLLECTION, user_id, {"registered": True}, merge=True)
        logger.info("user_registered")
        return OperationResult.ok()

    @ledger_operation("save_game_data")
    async def save_game_data(self, user_id: str, game_data: str) -> OperationResult:
        """Store the client's serialized game state as-is."""
        await self._store.set(USERS_COLLECTION, user_id, {"gameData": game_data}, merge=True)
        logger.info("game_data_saved", size=len(game_data))
        return OperationResult.ok()

    @ledger_operation("get_game_data")
    async def get_game_data(self, user_id: str) -> OperationResult:
        """
        Return the saved game state as payload.

        A user without a record and a user with no (or empty) game data get
        the same failure message.
        """
        document = await self._store.get(USERS_COLLECTION, user_id)
        game_data = document.get("gameData")

        if document.exists and game_data is not None and game_data != "":
            return OperationResult.ok(payload=str(game_data))

        logger.info("game_data_not_found", user_exists=document.exists)
        return OperationResult.failed(MSG_NOT_REGISTERED)

    # ========================================================================
    # Subscriptions
    # ========================================================================

    @ledger_operation("check_price_change")
    async def check_price_change(self, user_id: str) -> OperationResult:
        """
        Report whether the user's subscription has a price change awaiting
        their acceptance (priceChange.state == 0).

        Succeeds with the subscription's product id as payload.
        """
        document = await self._store.get(
            subscription_collection(user_id), SUBSCRIPTION_RECEIPT_ID
        )
        if not document.exists:
            return OperationResult.failed(MSG_NO_SUBSCRIPTION)

        try:
            receipt = Receipt.from_fields(
                {
                    "packageName": document.get("packageName"),
                    "productId": document.get("productId"),
                    "purchaseToken": document.get("purchaseToken"),
                }
            )
        except ValueError as exc:
            raise ReceiptFormatError(f"Stored subscription receipt is incomplete: {exc}") from exc

        response = await self._oracle.verify_subscription(receipt)

        if response.has_pending_price_change():
            logger.info("subscription_price_change_pending", product_id=receipt.product_id)
            return OperationResult.ok(MSG_PRICE_CHANGE_PENDING, payload=receipt.product_id)

        return OperationResult.failed(MSG_PRICE_UNCHANGED)

    # ========================================================================
    # Purchases
    # ========================================================================

    @ledger_operation("verify_and_save")
    async def verify_and_save(self, user_id: str, raw_receipt: str) -> OperationResult:
        """
        Verify a client receipt with the billing platform and record it.

        Nothing is stored unless verification succeeds. A purchase token can
        only be recorded once.
        """
        receipt = parse_receipt(raw_receipt)
        kind = receipt.kind

        if kind is PurchaseKind.SUBSCRIPTION:
            await self._oracle.verify_subscription(receipt)
        else:
            await self._oracle.verify_one_time(receipt)

        result = await self._record_purchase(user_id, receipt)
        if not result.succeeded or kind is not PurchaseKind.SUBSCRIPTION:
            return result

        try:
            return await self._save_subscription_receipt(user_id, receipt)
        except StoreError:
            # The purchase itself is already recorded at this point
            logger.error(
                "subscription_receipt_write_failed",
                product_id=receipt.product_id,
                token=token_prefix(receipt.purchase_token),
            )
            raise

    async def _record_purchase(self, user_id: str, receipt: Receipt) -> OperationResult:
        """Create the purchase record unless its token is already recorded."""
        document = receipt.to_document(user_id)

        existing = await self._store.get(PURCHASES_COLLECTION, receipt.purchase_token)
        created = not existing.exists and await self._store.create(
            PURCHASES_COLLECTION, receipt.purchase_token, document
        )

        if not created:
            metrics.record_duplicate_purchase(receipt.kind.value)
            logger.warning(
                "purchase_token_duplicate",
                product_id=receipt.product_id,
                token=token_prefix(receipt.purchase_token),
            )
            return OperationResult.failed(MSG_DUPLICATE_TOKEN)

        logger.info(
            "purchase_saved",
            product_id=receipt.product_id,
            order_id=receipt.order_id,
            kind=receipt.kind.value,
        )
        return OperationResult.ok(MSG_SAVED)

    async def _save_subscription_receipt(self, user_id: str, receipt: Receipt) -> OperationResult:
        """Overwrite the user's current subscription receipt."""
        await self._store.set(
            subscription_collection(user_id),
            SUBSCRIPTION_RECEIPT_ID,
            receipt.to_document(user_id),
        )
        logger.info("subscription_receipt_saved", product_id=receipt.product_id)
        return OperationResult.ok(MSG_SAVED)
