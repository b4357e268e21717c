"""
Google Play domain models - Immutable dataclasses for receipt verification.
"""

from dataclasses import dataclass, field
from typing import Any

from gamebridge.models.domain import PurchaseKind

ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"

# priceChange.state values reported for subscriptions
PRICE_CHANGE_PENDING = 0
PRICE_CHANGE_ACCEPTED = 1


@dataclass(frozen=True)
class GooglePlayCredentials:
    """Service-account credential used to call the Android Publisher API."""

    client_email: str
    private_key: str
    token_uri: str = "https://oauth2.googleapis.com/token"

    def __post_init__(self) -> None:
        """Validate credential fields."""
        if not self.client_email or "@" not in self.client_email:
            raise ValueError("Service account client_email required")
        if not self.private_key:
            raise ValueError("Service account private_key required")

    def to_service_account_info(self) -> dict[str, str]:
        """Shape expected by google.oauth2.service_account."""
        return {
            "type": "service_account",
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": self.token_uri,
        }

    def __repr__(self) -> str:
        return f"GooglePlayCredentials(client_email={self.client_email!r})"


@dataclass(frozen=True)
class PlatformResponse:
    """Resource returned by Google Play for a verified receipt."""

    kind: PurchaseKind
    resource: dict[str, Any] = field(default_factory=dict)

    @property
    def order_id(self) -> str | None:
        return self.resource.get("orderId")

    @property
    def purchase_state(self) -> int | None:
        """0: purchased, 1: canceled, 2: pending (one-time products only)."""
        value = self.resource.get("purchaseState")
        return int(value) if value is not None else None

    @property
    def price_change_state(self) -> int | None:
        """State of a proposed subscription price change, if any."""
        price_change = self.resource.get("priceChange")
        if not isinstance(price_change, dict) or price_change.get("state") is None:
            return None
        return int(price_change["state"])

    def has_pending_price_change(self) -> bool:
        return self.price_change_state == PRICE_CHANGE_PENDING
