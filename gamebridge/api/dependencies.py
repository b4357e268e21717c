"""
FastAPI Dependencies - Ledger construction and lookup.
"""

from fastapi import HTTPException, Request, status
from structlog import get_logger

from gamebridge.config import Settings
from gamebridge.db.session import get_engine, get_session_factory
from gamebridge.models.google_play import GooglePlayCredentials
from gamebridge.observability.tracing import instrument_sqlalchemy
from gamebridge.services.google_play_oracle import GooglePlayReceiptOracle
from gamebridge.services.purchase_ledger import PurchaseLedger
from gamebridge.services.record_store import InMemoryRecordStore, RecordStore
from gamebridge.services.sql_record_store import SqlRecordStore

logger = get_logger(__name__)


def build_record_store(config: Settings) -> RecordStore:
    """Create the record store selected by RECORD_STORE."""
    if config.record_store == "memory":
        logger.warning("record_store_in_memory", detail="data is lost on restart")
        return InMemoryRecordStore()

    instrument_sqlalchemy(get_engine())
    return SqlRecordStore(get_session_factory())


def build_ledger(config: Settings) -> PurchaseLedger:
    """Wire the ledger from settings; the billing credential is fixed from here on."""
    credentials = GooglePlayCredentials(
        client_email=config.google_play_client_email,
        private_key=config.google_play_key_pem,
        token_uri=config.google_play_token_uri,
    )
    return PurchaseLedger(
        store=build_record_store(config),
        oracle=GooglePlayReceiptOracle(credentials),
    )


def get_ledger(request: Request) -> PurchaseLedger:
    """
    FastAPI dependency returning the application's ledger.

    Usage:
        @router.get("/endpoint")
        async def endpoint(ledger: PurchaseLedger = Depends(get_ledger)):
            ...
    """
    ledger: PurchaseLedger | None = getattr(request.app.state, "ledger", None)
    if ledger is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Purchase ledger not initialized",
        )
    return ledger
