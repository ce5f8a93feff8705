# File: app/models/ticket.py
from sqlalchemy import Column, String, JSON, UniqueConstraint, Index
from app.models.base import BaseModel


class Ticket(BaseModel):
    __tablename__ = "tickets"

    ticket_code = Column(String(64), nullable=False)
    entity_type = Column(String(50), nullable=False)  # registrant table name
    entity_id = Column(String(36), nullable=False)
    category = Column(String(100), nullable=False)

    # Snapshot of the holder at upgrade time
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)

    meta = Column(JSON, nullable=True)  # previous_category, upgraded_at, tx_id, coupon_code

    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_tickets_entity"),
        Index("uq_tickets_ticket_code", "ticket_code", unique=True),
    )
