# File: app/schemas/ticket.py
from typing import Any, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class UpgradeRequest(CamelModel):
    entity_type: str
    entity_id: str
    new_category: str
    amount: float = Field(0, ge=0)
    email: Optional[str] = None
    tx_id: Optional[str] = None
    coupon_code: Optional[str] = None


class UpgradeResponse(CamelModel):
    success: bool = True
    upgraded: bool
    category: str
    ticket_code: Optional[str] = None
    payment_required: Optional[bool] = None
    checkout_url: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[float] = None
    discount: Optional[float] = None


class ScanRequest(CamelModel):
    """Raw scanner data under ``payload``; ``ticketId`` and ``raw`` are older spellings."""

    payload: Any = None
    ticket_id: Any = None
    raw: Any = None

    def incoming(self) -> Any:
        for value in (self.payload, self.ticket_id, self.raw):
            if value is not None:
                return value
        return None


class TicketInfo(CamelModel):
    ticket_code: Optional[str] = None
    entity_type: str
    entity_id: str
    role: str
    category: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    company: Optional[str] = None
    matched_by: str


class ValidateResponse(CamelModel):
    success: bool = True
    ticket: TicketInfo
