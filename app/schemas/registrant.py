# File: app/schemas/registrant.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.schemas.common import CamelModel


class RegistrationResponse(CamelModel):
    success: bool = True
    id: str
    ticket_code: str
    existed: bool
    role: str


class Registrant(CamelModel):
    id: str
    role: str
    email: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    mobile: Optional[str] = None
    ticket_code: Optional[str] = None
    ticket_category: Optional[str] = None
    added_by_admin: bool = False
    tx_id: Optional[str] = None
    upgraded_at: Optional[datetime] = None
    status: str = "pending"
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    email_sent_at: Optional[datetime] = None
    email_failed: bool = False
    email_failed_at: Optional[datetime] = None
    data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class RegistrantUpdate(CamelModel):
    """Admin edit. The ticket code and role are not editable."""

    email: Optional[str] = None
    name: Optional[str] = None
    company: Optional[str] = None
    mobile: Optional[str] = None
    ticket_category: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class StatusChange(CamelModel):
    admin: Optional[str] = None


class RegistrantStats(CamelModel):
    total: int
    paid: int
    free: int


class NotifyRequest(CamelModel):
    """A stored registrant by id, or an unsaved form."""

    registrant_id: Optional[str] = None
    form: Optional[Dict[str, Any]] = None


class DeliveryReport(CamelModel):
    to: Optional[str] = None
    success: bool
    error: Optional[str] = None


class NotifyResponse(CamelModel):
    success: bool = True
    mail: DeliveryReport
    admin_results: List[DeliveryReport] = []


class ReminderResponse(CamelModel):
    success: bool = True
    sent: int
    failed: int
