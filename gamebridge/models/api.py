"""
API Models - Pydantic models for request/response validation.

OperationResponse is the wire contract consumed by the game client and must
keep its field names: success, message, payload.
"""

from pydantic import BaseModel, Field

from gamebridge.models.domain import OperationResult


class SaveGameDataRequest(BaseModel):
    """PUT /v1/users/{user_id}/game-data request body."""

    game_data: str = Field(..., description="Serialized game state, stored as-is")


class VerifyPurchaseRequest(BaseModel):
    """POST /v1/users/{user_id}/purchases request body."""

    receipt: str = Field(
        ...,
        min_length=1,
        description="Receipt string exactly as returned by the client purchasing library",
    )


class OperationResponse(BaseModel):
    """Result of every bridge operation."""

    success: bool
    message: str = ""
    payload: str | None = None

    @classmethod
    def from_result(cls, result: OperationResult) -> "OperationResponse":
        return cls(success=result.succeeded, message=result.message, payload=result.payload)


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str
    record_store: str
    version: str
