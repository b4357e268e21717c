"""
Receipt Oracle Protocol - Billing-platform-agnostic receipt verification.
"""

from typing import Protocol

from gamebridge.models.domain import Receipt
from gamebridge.models.google_play import PlatformResponse


class ReceiptOracle(Protocol):
    """
    Receipt verification protocol.

    Answers whether a parsed receipt is authentic according to the billing
    platform. Implementations hold their platform credential from construction
    on and are safe to share between concurrent requests.
    """

    async def verify_one_time(self, receipt: Receipt) -> PlatformResponse:
        """
        Verify a one-time (``inapp``) purchase.

        Raises:
            OracleError: If the receipt is invalid or the platform is unreachable
        """
        ...

    async def verify_subscription(self, receipt: Receipt) -> PlatformResponse:
        """
        Verify a subscription (``subs``) purchase.

        The returned resource carries ``priceChange`` when the platform has
        proposed a new price to the subscriber.

        Raises:
            OracleError: If the receipt is invalid or the platform is unreachable
        """
        ...
