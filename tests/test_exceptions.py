"""
Tests for exception classes.

Covers all exception types and their string representations.
"""

import pytest

from gamebridge.exceptions import BridgeError, OracleError, ReceiptFormatError, StoreError


class TestBridgeError:
    """Tests for base BridgeError."""

    def test_bridge_error_is_exception(self):
        """BridgeError is a subclass of Exception."""
        assert issubclass(BridgeError, Exception)

    @pytest.mark.parametrize("error_class", [StoreError, OracleError, ReceiptFormatError])
    def test_subclasses(self, error_class):
        """Every collaborator error is a BridgeError."""
        assert issubclass(error_class, BridgeError)


class TestStoreError:
    """Tests for StoreError."""

    def test_attributes(self):
        """Exception keeps the raw message and collection."""
        exc = StoreError("connection reset", collection="purchases")
        assert exc.message == "connection reset"
        assert exc.collection == "purchases"

    def test_str(self):
        """String form is prefixed with the category."""
        assert str(StoreError("connection reset")) == "Record store error: connection reset"

    def test_collection_optional(self):
        """collection defaults to None."""
        assert StoreError("x").collection is None


class TestOracleError:
    """Tests for OracleError."""

    def test_message(self):
        """Exception keeps the raw message."""
        exc = OracleError("Purchase token expired")
        assert exc.message == "Purchase token expired"
        assert str(exc) == "Receipt verification error: Purchase token expired"


class TestReceiptFormatError:
    """Tests for ReceiptFormatError."""

    def test_message(self):
        """Exception keeps the raw message."""
        exc = ReceiptFormatError("bad payload")
        assert exc.message == "bad payload"
        assert str(exc) == "Receipt format error: bad payload"

    def test_can_be_caught_as_bridge_error(self):
        """Handlers catching BridgeError see format errors."""
        with pytest.raises(BridgeError):
            raise ReceiptFormatError("bad payload")
