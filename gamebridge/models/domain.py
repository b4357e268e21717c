"""
Domain Models - Internal business logic models using dataclasses.

Receipts keep every platform field verbatim in ``fields``; the identifiers the
ledger depends on are lifted into typed attributes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gamebridge.exceptions import BridgeError

SUBSCRIPTION_MARKER = "subscription"


class PurchaseKind(str, Enum):
    """Billing SKU type of a purchase."""

    ONE_TIME = "inapp"
    SUBSCRIPTION = "subs"

    @classmethod
    def from_product_id(cls, product_id: str) -> "PurchaseKind":
        """Subscriptions are recognised by a marker in the product id."""
        if SUBSCRIPTION_MARKER in product_id:
            return cls.SUBSCRIPTION
        return cls.ONE_TIME


@dataclass(frozen=True)
class Receipt:
    """Parsed Google Play purchase receipt."""

    product_id: str
    purchase_token: str
    package_name: str
    order_id: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate the identifiers needed for verification and storage."""
        if not self.purchase_token:
            raise ValueError("Purchase token required")
        if not self.product_id:
            raise ValueError("Product ID required")
        if not self.package_name:
            raise ValueError("Package name required")

    @classmethod
    def from_fields(cls, data: dict[str, Any]) -> "Receipt":
        """Build a receipt from the platform's camelCase JSON object."""
        return cls(
            product_id=str(data.get("productId") or ""),
            purchase_token=str(data.get("purchaseToken") or ""),
            package_name=str(data.get("packageName") or ""),
            order_id=data.get("orderId"),
            fields=dict(data),
        )

    @property
    def kind(self) -> PurchaseKind:
        return PurchaseKind.from_product_id(self.product_id)

    def to_document(self, user_id: str) -> dict[str, Any]:
        """Receipt fields as stored, stamped with the owning user."""
        document = dict(self.fields)
        document.update(
            productId=self.product_id,
            purchaseToken=self.purchase_token,
            packageName=self.package_name,
            userId=user_id,
        )
        return document


@dataclass(frozen=True)
class StoreDocument:
    """Snapshot of a single record store document."""

    exists: bool
    fields: dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


@dataclass(frozen=True)
class OperationResult:
    """Uniform outcome of every ledger operation."""

    succeeded: bool
    message: str = ""
    payload: str | None = None

    @classmethod
    def ok(cls, message: str = "", payload: str | None = None) -> "OperationResult":
        return cls(succeeded=True, message=message, payload=payload)

    @classmethod
    def failed(cls, message: str) -> "OperationResult":
        return cls(succeeded=False, message=message)

    @classmethod
    def from_error(cls, error: Exception) -> "OperationResult":
        """Translate a collaborator failure into a failed result."""
        if isinstance(error, BridgeError):
            return cls.failed(getattr(error, "message", str(error)))
        return cls.failed(str(error))
