# File: app/crud/ticket.py
from typing import Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.ticket import Ticket


class CRUDTicket(CRUDBase):

    def get_by_entity(self, db: Session, *, entity_type: str, entity_id: str) -> Optional[Ticket]:
        return (
            db.query(Ticket)
            .filter(Ticket.entity_type == entity_type, Ticket.entity_id == entity_id)
            .first()
        )

    def get_by_code(self, db: Session, *, ticket_code: str) -> Optional[Ticket]:
        return db.query(Ticket).filter(Ticket.ticket_code == ticket_code).first()


ticket = CRUDTicket(Ticket)
