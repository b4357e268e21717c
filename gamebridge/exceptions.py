"""
Exception Classes - Typed exception hierarchy for the bridge collaborators.

Collaborators raise these; PurchaseLedger converts them to OperationResult
at its boundary using the raw ``message`` attribute.
"""


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class StoreError(BridgeError):
    """Raised when a record store read or write fails."""

    def __init__(self, message: str, collection: str | None = None) -> None:
        self.message = message
        self.collection = collection
        super().__init__(f"Record store error: {message}")


class OracleError(BridgeError):
    """Raised when the billing platform rejects a receipt or cannot be reached."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Receipt verification error: {message}")


class ReceiptFormatError(BridgeError):
    """Raised when a client receipt payload cannot be parsed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Receipt format error: {message}")
