from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    """One user message lifted out of the provider envelope."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str = Field(alias="from")
    text: str = ""
    id: Optional[str] = None


class WebhookAck(BaseModel):
    status: str = "ok"


class UpdateWinnersRequest(BaseModel):
    winnerIds: List[str] = Field(default_factory=list)


class WinnerSummary(BaseModel):
    id: Optional[str] = None
    name: str
    phone: str
    city: str


class UpdateWinnersResponse(BaseModel):
    success: bool = True
    updatedCount: int
    winners: List[WinnerSummary]


class StatsResponse(BaseModel):
    registrations: int
    codeScansPerDay: int
    winnersSelected: List[Dict[str, Any]]
