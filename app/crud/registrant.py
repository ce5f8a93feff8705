# File: app/crud/registrant.py
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.registrant import RegistrantMixin
from app.services.roles import ROLE_MODELS, resolve_role


class CRUDRegistrant(CRUDBase):
    """One instance per role table; registrants are created by the allocator."""

    def get_by_email(self, db: Session, *, email: str) -> Optional[RegistrantMixin]:
        return db.query(self.model).filter(self.model.email == email.strip().lower()).first()

    def find_by_ticket(
        self, db: Session, *, ticket_code: str, number: Optional[int] = None
    ) -> Optional[RegistrantMixin]:
        """Match the code as stored, or its numeric projection for all-digit codes."""
        condition = self.model.ticket_code == ticket_code
        if number is not None:
            condition = or_(condition, self.model.ticket_code_num == number)
        return db.query(self.model).filter(condition).first()

    def count_by_ticket_code(self, db: Session, *, ticket_code: str) -> int:
        query = db.query(self.model).filter(self.model.ticket_code == ticket_code)
        return query.count()

    def get_newest(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[RegistrantMixin]:
        return (
            db.query(self.model)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_with_data(self, db: Session, *, limit: int) -> List[RegistrantMixin]:
        return (
            db.query(self.model)
            .filter(self.model.data.isnot(None))
            .order_by(self.model.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_with_email(self, db: Session) -> List[RegistrantMixin]:
        return db.query(self.model).filter(self.model.email.isnot(None), self.model.email != "").all()

    def set_status(self, db: Session, *, db_obj: RegistrantMixin, status: str, admin: str) -> RegistrantMixin:
        """``approved`` or ``cancelled``, stamped with who did it and when."""
        now = datetime.now(timezone.utc)
        db_obj.status = status
        if status == "approved":
            db_obj.approved_by = admin
            db_obj.approved_at = now
        else:
            db_obj.cancelled_by = admin
            db_obj.cancelled_at = now
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def stats(self, db: Session) -> Dict[str, int]:
        total = db.query(func.count(self.model.id)).scalar()
        paid = (
            db.query(func.count(self.model.id))
            .filter(self.model.tx_id.isnot(None), self.model.tx_id != "")
            .scalar()
        )
        category = func.lower(self.model.ticket_category)
        free = (
            db.query(func.count(self.model.id))
            .filter(or_(category.like("%free%"), category.like("%general%"), category == "0"))
            .scalar()
        )
        return {"total": total, "paid": paid, "free": free}


registrants: Dict[str, CRUDRegistrant] = {info.role: CRUDRegistrant(info.model) for info in ROLE_MODELS}


def for_role(role: str) -> CRUDRegistrant:
    return registrants[resolve_role(role).role]


def for_model(model: Type) -> CRUDRegistrant:
    for crud in registrants.values():
        if crud.model is model:
            return crud
    raise KeyError(model)


def find_by_email_any(db: Session, *, email: str, prefer_role: Optional[str] = None):
    """(role info, record) for the first table holding ``email``, preferred role first."""
    order = list(ROLE_MODELS)
    if prefer_role:
        preferred = resolve_role(prefer_role)
        order.remove(preferred)
        order.insert(0, preferred)
    for info in order:
        record = registrants[info.role].get_by_email(db, email=email)
        if record is not None:
            return info, record
    return None
