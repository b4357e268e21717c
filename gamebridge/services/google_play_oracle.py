"""
Google Play Receipt Oracle - Verifies receipts with the Android Publisher API.
"""

import asyncio
from typing import Any

import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from structlog import get_logger

from gamebridge.exceptions import OracleError
from gamebridge.models.domain import PurchaseKind, Receipt
from gamebridge.models.google_play import (
    ANDROID_PUBLISHER_SCOPE,
    GooglePlayCredentials,
    PlatformResponse,
)
from gamebridge.observability.logging import token_prefix
from gamebridge.observability.metrics import metrics

logger = get_logger(__name__)

PURCHASED_STATE = 0


class GooglePlayReceiptOracle:
    """
    Google Play receipt verifier.

    Looks up one-time products and subscriptions by purchase token.
    """

    def __init__(self, credentials: GooglePlayCredentials) -> None:
        """
        Initialize the oracle.

        Args:
            credentials: Service account allowed to read the app's purchases
        """
        self.credentials = credentials

        self._google_credentials = service_account.Credentials.from_service_account_info(  # type: ignore[no-untyped-call]
            credentials.to_service_account_info(),
            scopes=[ANDROID_PUBLISHER_SCOPE],
        )
        self.service = build(
            "androidpublisher", "v3", credentials=self._google_credentials, cache_discovery=False
        )

        logger.info("google_play_oracle_initialized", client_email=credentials.client_email)

    async def verify_one_time(self, receipt: Receipt) -> PlatformResponse:
        """
        Verify a one-time product purchase with Google Play.

        Raises:
            OracleError: If verification fails or the purchase is not completed
        """
        request = (
            self.service.purchases()
            .products()
            .get(
                packageName=receipt.package_name,
                productId=receipt.product_id,
                token=receipt.purchase_token,
            )
        )
        response = await self._execute(request, receipt, PurchaseKind.ONE_TIME)

        # purchaseState: 0=purchased, 1=canceled, 2=pending
        if response.purchase_state != PURCHASED_STATE:
            logger.warning(
                "google_play_purchase_not_completed",
                product_id=receipt.product_id,
                purchase_state=response.purchase_state,
            )
            metrics.record_oracle_verification(PurchaseKind.ONE_TIME.value, False)
            raise OracleError(f"Purchase not completed: state={response.purchase_state}")

        metrics.record_oracle_verification(PurchaseKind.ONE_TIME.value, True)
        return response

    async def verify_subscription(self, receipt: Receipt) -> PlatformResponse:
        """
        Verify a subscription purchase with Google Play.

        Raises:
            OracleError: If verification fails
        """
        request = (
            self.service.purchases()
            .subscriptions()
            .get(
                packageName=receipt.package_name,
                subscriptionId=receipt.product_id,
                token=receipt.purchase_token,
            )
        )
        response = await self._execute(request, receipt, PurchaseKind.SUBSCRIPTION)
        metrics.record_oracle_verification(PurchaseKind.SUBSCRIPTION.value, True)
        return response

    def _authorized_http(self) -> google_auth_httplib2.AuthorizedHttp:
        """One transport per request; httplib2 connections are not thread-safe."""
        return google_auth_httplib2.AuthorizedHttp(self._google_credentials, http=httplib2.Http())

    async def _execute(
        self, request: Any, receipt: Receipt, kind: PurchaseKind
    ) -> PlatformResponse:
        """Run a blocking API request off the event loop and map its errors."""
        logger.info(
            "verifying_google_play_receipt",
            kind=kind.value,
            product_id=receipt.product_id,
            package_name=receipt.package_name,
            token=token_prefix(receipt.purchase_token),
        )
        try:
            result: dict[str, Any] = await asyncio.to_thread(
                request.execute, http=self._authorized_http()
            )

        except HttpError as exc:
            metrics.record_oracle_verification(kind.value, False)
            error_content = exc.content.decode("utf-8") if exc.content else str(exc)
            logger.error(
                "google_play_verification_failed",
                kind=kind.value,
                status=exc.resp.status,
                error=error_content,
            )

            if exc.resp.status == 404:
                raise OracleError("Purchase not found or invalid token") from exc
            elif exc.resp.status == 410:
                raise OracleError("Purchase token expired") from exc
            else:
                raise OracleError(f"Google Play API error: {error_content}") from exc

        except Exception as exc:
            metrics.record_oracle_verification(kind.value, False)
            logger.exception("google_play_verification_unexpected_error", kind=kind.value)
            raise OracleError(f"Verification failed: {exc}") from exc

        response = PlatformResponse(kind=kind, resource=result)
        logger.info(
            "google_play_receipt_verified",
            kind=kind.value,
            order_id=response.order_id,
            product_id=receipt.product_id,
        )
        return response
